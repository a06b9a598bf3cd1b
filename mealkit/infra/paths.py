from pathlib import Path

from mealkit.utilities.config import DATA_DIR as _CONFIG_DATA_DIR

# Centralized paths for data files (single source of truth)
DATA_DIR = Path(_CONFIG_DATA_DIR).resolve()
DOCUMENTS_DIR = DATA_DIR / 'documents'
PLAN_FILE = DATA_DIR / 'plan.json'

__all__ = ['DATA_DIR', 'DOCUMENTS_DIR', 'PLAN_FILE']
