"""TinyML Configuration — project-level .tinymlrc.json support.

Loads parser settings from .tinymlrc.json (or tinyml.config.json) in the
project root or any directory above it.

Example .tinymlrc.json:
    {
      "max_depth": 120,
      "filename": "prelude.ml"
    }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100


@dataclass
class ParserConfig:
    """Settings shared by the lexer and parser."""
    # Deepest nesting of expressions, patterns or types before the parser
    # reports NESTING_TOO_DEEP.
    max_depth: int = DEFAULT_MAX_DEPTH
    # Name recorded in source locations.
    filename: str = "<stdin>"


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".tinymlrc.json",
    "tinyml.config.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> ParserConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, it cannot be read, or a setting has a bad
    value, returns defaults.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return ParserConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("ignoring config %s: %s", path, e)
        return ParserConfig()

    if not isinstance(data, dict):
        logger.warning("ignoring config %s: top level is not an object", path)
        return ParserConfig()

    try:
        return _dict_to_config(data)
    except (TypeError, ValueError) as e:
        logger.warning("ignoring config %s: %s", path, e)
        return ParserConfig()


def _dict_to_config(data: Dict[str, Any]) -> ParserConfig:
    """Convert a parsed dict to ParserConfig."""
    config = ParserConfig()

    if "max_depth" in data:
        depth = int(data["max_depth"])
        if depth < 1:
            raise ValueError(f"max_depth must be positive, got {depth}")
        config.max_depth = depth
    if "filename" in data:
        config.filename = str(data["filename"])

    return config
