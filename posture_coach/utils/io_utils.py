"""
I/O utilities for configuration tables and landmark dumps.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def load_config(config_path: PathLike) -> Dict:
    """
    Loads a configuration mapping from a YAML file.

    Args:
        config_path (str | Path): Path to the YAML configuration file.

    Returns:
        Dict: The loaded configuration (empty dict for an empty file).
    """
    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f)
    return config or {}


def load_optional_config(config_path: Optional[PathLike]) -> Dict:
    """Like ``load_config`` but returns ``{}`` when the file does not exist."""
    if config_path is None:
        return {}
    path = Path(config_path)
    if not path.exists():
        logger.warning("Config file %s not found; using built-in defaults.", path)
        return {}
    return load_config(path)


def load_json(path: PathLike) -> Any:
    """Read a UTF-8 JSON document."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(data: Any, path: PathLike) -> None:
    """Write *data* as indented JSON, creating parent folders as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    logger.info("Saved %s", path)
