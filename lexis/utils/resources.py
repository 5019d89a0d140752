"""
Locations of the on-disk NLP artifacts and availability checks.

Artifacts are provisioned by an external component (downloaded into the
resource directory); this module only resolves paths and checks presence.

Layout under the resource directory:
    gliner/gliner_config.json
    gliner/tokenizer.json
    gliner/model.onnx | gliner/pytorch_model.bin | gliner/model.safetensors
    symspell/frequency_dictionary_en_82_765.txt
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

GLINER_SUBDIR = "gliner"
GLINER_CONFIG_FILE = "gliner_config.json"
GLINER_TOKENIZER_FILE = "tokenizer.json"
GLINER_WEIGHT_FILES = ("model.onnx", "pytorch_model.bin", "model.safetensors")

SYMSPELL_SUBDIR = "symspell"
SYMSPELL_DICT_FILE = "frequency_dictionary_en_82_765.txt"


def get_gliner_dir(resource_dir: Union[str, Path]) -> Path:
    return Path(resource_dir) / GLINER_SUBDIR


def get_symspell_dict_path(resource_dir: Union[str, Path]) -> Path:
    return Path(resource_dir) / SYMSPELL_SUBDIR / SYMSPELL_DICT_FILE


def find_gliner_weights(model_dir: Union[str, Path]) -> Optional[Path]:
    """Return the first weight file present in model_dir, ONNX preferred."""
    model_dir = Path(model_dir)
    for name in GLINER_WEIGHT_FILES:
        candidate = model_dir / name
        if candidate.is_file():
            return candidate
    return None


def has_gliner_artifacts(model_dir: Union[str, Path]) -> bool:
    model_dir = Path(model_dir)
    return (
        (model_dir / GLINER_CONFIG_FILE).is_file()
        and (model_dir / GLINER_TOKENIZER_FILE).is_file()
        and find_gliner_weights(model_dir) is not None
    )


def is_gliner_available(resource_dir: Union[str, Path]) -> bool:
    return has_gliner_artifacts(get_gliner_dir(resource_dir))


def is_symspell_available(resource_dir: Union[str, Path]) -> bool:
    return get_symspell_dict_path(resource_dir).is_file()


def resource_status(resource_dir: Union[str, Path]) -> Dict[str, Any]:
    """Summarize artifact availability for display."""
    model_dir = get_gliner_dir(resource_dir)
    weights = find_gliner_weights(model_dir)
    return {
        "resource_dir": str(resource_dir),
        "entity_model": {
            "path": str(model_dir),
            "available": is_gliner_available(resource_dir),
            "weights": weights.name if weights else None,
        },
        "segmentation_dictionary": {
            "path": str(get_symspell_dict_path(resource_dir)),
            "available": is_symspell_available(resource_dir),
        },
    }
