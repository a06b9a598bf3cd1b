"""Configuration management for the mealkit grocery & planning engine."""
import os
from typing import Final
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file if it exists
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# Application Settings
APP_HOST: Final[str] = os.getenv('APP_HOST', '0.0.0.0')
APP_PORT: Final[int] = int(os.getenv('APP_PORT', '8000'))
DEBUG: Final[bool] = os.getenv('DEBUG', 'False').lower() == 'true'

# Base URL used by job triggers and the week archiver to reach the API
BASE_URL: Final[str] = os.getenv('MEALKIT_BASE_URL', 'http://localhost:8000/')

# AI Configuration
OPENAI_MODEL: Final[str] = os.getenv('OPENAI_MODEL', 'gpt-4o-mini')

# Background operations
COMPLETE_REMOVAL_DELAY: Final[float] = float(os.getenv('COMPLETE_REMOVAL_DELAY', '3.0'))
STALE_OPERATION_SECONDS: Final[float] = float(os.getenv('STALE_OPERATION_SECONDS', '45'))
HTTP_TIMEOUT_SECONDS: Final[float] = float(os.getenv('HTTP_TIMEOUT_SECONDS', '120'))

# Week rollover
ROLLOVER_ON_STARTUP: Final[bool] = os.getenv('ROLLOVER_ON_STARTUP', 'True').lower() == 'true'
ROLLOVER_STARTUP_DELAY: Final[float] = float(os.getenv('ROLLOVER_STARTUP_DELAY', '1.0'))

# File Paths
BASE_DIR: Final[Path] = Path(__file__).parent.parent
DATA_DIR: Final[Path] = Path(os.getenv('MEALKIT_DATA_DIR', str(BASE_DIR / 'data')))


def base_url() -> str:
    """Return BASE_URL with exactly one trailing slash."""
    return BASE_URL if BASE_URL.endswith('/') else f"{BASE_URL}/"
