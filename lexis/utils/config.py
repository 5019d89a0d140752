import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

RESOURCE_DIR_ENV = "LEXIS_RESOURCE_DIR"

DEFAULT_CONFIG: Dict[str, Any] = {
    "analysis": {
        "rarity_threshold": 5e-5,
        "batch_size": 32,
        "entity_labels": ["person", "location", "organization", "country", "city"],
        "entity_threshold": 0.5,
        "max_entity_sentence_length": 512,
        "segmentation_max_edit_distance": 2,
    },
    "resources": {
        "dir": str(Path.home() / ".lexis" / "resources"),
    },
    "runtime": {
        # None: one thread per physical core
        "threads": None,
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Check value ranges; raise ValueError on the first bad setting."""
    analysis = config["analysis"]

    # PyYAML reads "5e-5" (no dot) as a string
    if isinstance(analysis["rarity_threshold"], str):
        analysis["rarity_threshold"] = float(analysis["rarity_threshold"])
    threshold = analysis["rarity_threshold"]
    if not isinstance(threshold, (int, float)) or threshold <= 0:
        raise ValueError(f"analysis.rarity_threshold must be > 0, got {threshold!r}")

    batch_size = analysis["batch_size"]
    if not isinstance(batch_size, int) or batch_size < 1:
        raise ValueError(f"analysis.batch_size must be >= 1, got {batch_size!r}")

    if not analysis["entity_labels"]:
        raise ValueError("analysis.entity_labels must not be empty")

    distance = analysis["segmentation_max_edit_distance"]
    if not isinstance(distance, int) or distance < 0:
        raise ValueError(
            f"analysis.segmentation_max_edit_distance must be >= 0, got {distance!r}"
        )

    threads = config["runtime"]["threads"]
    if threads is not None and (not isinstance(threads, int) or threads < 1):
        raise ValueError(f"runtime.threads must be >= 1 or null, got {threads!r}")

    return config


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the effective configuration.

    Order of precedence (lowest first): DEFAULT_CONFIG, the YAML file at
    `path`, the LEXIS_RESOURCE_DIR environment variable, `overrides`.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if path is not None:
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        config = _deep_merge(config, data)
        logger.debug(f"Loaded config from {path}")

    env_dir = os.environ.get(RESOURCE_DIR_ENV)
    if env_dir:
        config["resources"]["dir"] = env_dir

    if overrides:
        config = _deep_merge(config, overrides)

    config["resources"]["dir"] = str(Path(config["resources"]["dir"]).expanduser())
    return validate_config(config)
