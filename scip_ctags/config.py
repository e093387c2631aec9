"""Configuration for the scip-ctags command line.

Settings live in ``~/.scip-ctags/config.toml`` (or under ``$SCIP_CTAGS_HOME``)::

    [logging]
    level = "DEBUG"
    file = "/tmp/scip-ctags.log"

    [parser]
    languages = ["go", "python"]

The tag generator itself takes no configuration; these settings only affect
logging and which grammars the CLI enables.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("SCIP_CTAGS_HOME", str(Path.home() / ".scip-ctags"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass
class Settings:
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[Path] = None
    languages: Optional[List[str]] = None


def load_full_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config, or ``{}`` if it is missing or unreadable."""
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except (OSError, toml.TomlDecodeError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", config_path, exc)
        return {}


def load_settings(path: Optional[Path] = None) -> Settings:
    """Build :class:`Settings` from the config file, falling back to defaults."""
    full = load_full_config(path)
    log_section = full.get("logging")
    if not isinstance(log_section, dict):
        log_section = {}
    parser_section = full.get("parser")
    if not isinstance(parser_section, dict):
        parser_section = {}

    settings = Settings()
    level = log_section.get("level")
    if isinstance(level, str) and level:
        settings.log_level = level.upper()
    log_file = log_section.get("file")
    if isinstance(log_file, str) and log_file:
        settings.log_file = Path(log_file).expanduser()
    languages = parser_section.get("languages")
    if isinstance(languages, list):
        settings.languages = [str(lang) for lang in languages]
    return settings
