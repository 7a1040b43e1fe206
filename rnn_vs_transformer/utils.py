"""
Utility Functions

Functions:
    set_seed: Make the NumPy global random generator reproducible
    count_parameters: Total number of values in a parameter dictionary
    save_parameters: Save parameters (and optionally a config) to .npz
    load_parameters: Load what ``save_parameters`` wrote
"""

import logging
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

PARAM_PREFIX = "param_"
CONFIG_KEY = "config"


def set_seed(seed: int) -> None:
    """Seed ``np.random``; every layer initializer draws from it."""
    np.random.seed(seed)


def count_parameters(parameters: Dict[str, np.ndarray]) -> int:
    """Count total number of parameter values."""
    return int(sum(np.asarray(param).size for param in parameters.values()))


def save_parameters(
    parameters: Dict[str, np.ndarray], filepath: str, config: Optional[Any] = None
) -> None:
    """
    Save parameters to a .npz file.

    Each array is stored under ``param_<name>``. A dataclass or dict config
    is stored alongside as a pickled object array.

    Args:
        parameters: Name -> array, e.g. ``model.get_parameters()``
        filepath: Destination path (NumPy appends .npz if missing)
        config: Optional dataclass instance or dict
    """
    save_dict = {f"{PARAM_PREFIX}{name}": value for name, value in parameters.items()}

    if config is not None:
        config_dict = asdict(config) if is_dataclass(config) else dict(config)
        save_dict[CONFIG_KEY] = np.array([config_dict])  # Wrap in array for npz

    np.savez(filepath, **save_dict)
    logger.info("Saved %d parameter arrays to %s", len(parameters), filepath)


def load_parameters(filepath: str) -> Tuple[Dict[str, np.ndarray], Optional[Dict[str, Any]]]:
    """
    Load a file written by ``save_parameters``.

    Returns:
        (parameters, config_dict). ``config_dict`` is None if none was saved.

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    with np.load(filepath, allow_pickle=True) as data:
        parameters = {
            key[len(PARAM_PREFIX):]: data[key]
            for key in data.files
            if key.startswith(PARAM_PREFIX)
        }
        config = data[CONFIG_KEY][0] if CONFIG_KEY in data.files else None

    logger.info("Loaded %d parameter arrays from %s", len(parameters), filepath)
    return parameters, config
