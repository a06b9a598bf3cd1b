"""Background AI jobs: the operation tracker, progress staging and the job triggers."""
