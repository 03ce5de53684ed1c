import tomllib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional
from dotenv import load_dotenv
import os

CONFIG_DIR = Path.home() / ".versecoach"
CONFIG_PATH = CONFIG_DIR / "config.toml"
PROJECT_CONFIG_EXAMPLE = Path(__file__).parent / "config.toml"

REVIEW_MODES = ("due", "random", "sequential")
INPUT_MODES = ("full", "firstLetter", "fillBlank")

def load_config() -> Dict[str, Any]:
    """Load config from ~/.versecoach/config.toml, copy example if missing, load .env overrides."""
    load_dotenv()  # Load .env for overrides (e.g., VERSECOACH_TIMEZONE env var)
    if not CONFIG_PATH.exists():
        CONFIG_DIR.mkdir(exist_ok=True)
        shutil.copy(PROJECT_CONFIG_EXAMPLE, CONFIG_PATH)
    with open(CONFIG_PATH, "rb") as f:
        config = tomllib.load(f)

    app_cfg = config.get("app", {})
    config["app"] = {
        "timezone": os.getenv("VERSECOACH_TIMEZONE", app_cfg.get("timezone", "UTC")),
        "port": int(os.getenv("VERSECOACH_PORT", app_cfg.get("port", 8000))),
    }
    logging_cfg = config.get("logging", {})
    config["logging"] = {
        "level": os.getenv("VERSECOACH_LOG_LEVEL", logging_cfg.get("level", "INFO")).upper(),
    }
    grading_cfg = config.get("grading", {})
    config["grading"] = {
        "levenshtein_perfect_threshold": float(os.getenv(
            "LEVENSHTEIN_PERFECT_THRESHOLD",
            grading_cfg.get("levenshtein_perfect_threshold", 0.98)
        )),
        "levenshtein_good_threshold": float(os.getenv(
            "LEVENSHTEIN_GOOD_THRESHOLD",
            grading_cfg.get("levenshtein_good_threshold", 0.85)
        )),
        "levenshtein_hard_threshold": float(os.getenv(
            "LEVENSHTEIN_HARD_THRESHOLD",
            grading_cfg.get("levenshtein_hard_threshold", 0.6)
        )),
    }
    scheduler_cfg = config.get("scheduler", {})
    config["scheduler"] = {
        "algorithm": os.getenv("SCHEDULER_ALGORITHM", scheduler_cfg.get("algorithm", "sm2")).lower(),
        "initial_ease": float(scheduler_cfg.get("initial_ease", 2.5)),
    }
    review_cfg = config.get("review", {})
    default_mode = review_cfg.get("default_mode", "due")
    input_mode = review_cfg.get("input_mode", "full")
    config["review"] = {
        "default_mode": default_mode if default_mode in REVIEW_MODES else "due",
        "input_mode": input_mode if input_mode in INPUT_MODES else "full",
        "cloze_rate": int(review_cfg.get("cloze_rate", 25)),
        "include_reference": bool(review_cfg.get("include_reference", False)),
    }
    return config

def get_config_value(section: str, key: str, default: Optional[Any] = None) -> Any:
    """Get nested config value, e.g., get_config_value('app', 'timezone')."""
    config = load_config()
    value = config.get(section, {}).get(key, default)
    return value
