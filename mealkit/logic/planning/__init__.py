"""Week planning: projection of family plan flags, meal context and weekly rollover."""
