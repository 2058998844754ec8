"""Configuration management"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Storage
DATA_PATH: Path = Path(os.getenv("DATA_PATH", "./data"))
STATE_FILE_NAME: str = os.getenv("STATE_FILE_NAME", "progression_state.json")

# Every persisted state slice is stored under "<prefix><slice>", e.g. "gamification_level"
STATE_KEY_PREFIX: str = os.getenv("STATE_KEY_PREFIX", "gamification_")

# Catalog (achievements, quests, challenge templates). Empty = bundled catalog.json
CATALOG_PATH: str = os.getenv("CATALOG_PATH", "")

# Event processing
RECENT_EVENTS_LIMIT: int = int(os.getenv("RECENT_EVENTS_LIMIT", "50"))

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Monitoring
ENABLE_METRICS: bool = os.getenv("ENABLE_METRICS", "true").lower() == "true"


# Validation
def validate_config() -> None:
    """Validate configuration values"""
    if RECENT_EVENTS_LIMIT <= 0:
        raise ValueError("RECENT_EVENTS_LIMIT must be positive")
    if not STATE_FILE_NAME:
        raise ValueError("STATE_FILE_NAME is required")
    if LOG_LEVEL.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(f"Invalid LOG_LEVEL: {LOG_LEVEL}")
    if CATALOG_PATH and not Path(CATALOG_PATH).is_file():
        raise ValueError(f"CATALOG_PATH does not point to a file: {CATALOG_PATH}")
