"""Heuristic progress staging for streamed AI responses.

The accumulated (partial, usually not yet valid) JSON text is searched for
fixed markers; the first time a stage's marker shows up its waypoint is
emitted. Each stage fires at most once and emitted progress never decreases:
a stage whose marker turns up after a later stage already fired is consumed
silently. A marker inside a string value counts the same as a structural one.
"""
import re
from typing import Iterable, List, Optional, Tuple

from mealkit.utilities.constants import GROCERY_PROGRESS_STAGES


class StageProgress:
    def __init__(self, stages: Optional[Iterable[Tuple[str, str, int, str]]] = None):
        raw = GROCERY_PROGRESS_STAGES if stages is None else stages
        self.stages = [(name, re.compile(pattern), progress, message) for name, pattern, progress, message in raw]
        self.text = ""
        self.fired = set()
        self.progress = 0

    def feed(self, chunk: str) -> List[Tuple[int, str]]:
        '''Append decoded text; return the (progress, message) waypoints reached by it.'''
        self.text += chunk
        reached = []
        for name, pattern, progress, message in self.stages:
            if name in self.fired or not pattern.search(self.text):
                continue
            self.fired.add(name)
            if progress > self.progress:
                self.progress = progress
                reached.append((progress, message))
        return reached


__all__ = ['StageProgress']
