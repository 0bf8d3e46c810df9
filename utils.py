# utils.py
"""
Utility functions for the swarm framework.

This module provides helper functions, such as logging setup, config
loading and small 2D vector helpers, that are used across different parts
of the application but do not belong to a specific domain like steering
or rendering.
"""
import logging
import logging.handlers
import json
import os
from typing import Dict, Any

import numpy as np

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary optionally containing a "logging" key with
#       "level", "format", and "log_file" sub-keys. A null "log_file"
#       disables the file handler.
#   - Outputs: None
#   - Side Effects: Configures the root Python logger. Creates a log
#     directory if it doesn't exist. Sets up a console handler and a
#     rotating file handler. Quietens numba's compiler logging.
#   - Invariants: After this function runs, the logging system is
#     initialized and ready for use throughout the application.
#
# limit(vec, max_mag) / set_magnitude(vec, mag) -> np.ndarray:
#   - Inputs: a float vector of shape (2,) and a non-negative magnitude.
#   - Outputs: a new vector; the input is never modified.
#   - Invariants: a zero vector stays zero (no division by zero).

def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to the console and, unless disabled, a rotating file.
    """
    log_config = config.get('logging', {})
    log_level = log_config.get('level', 'INFO').upper()
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/swarm.log')

    logger = logging.getLogger()
    logger.setLevel(log_level)

    # Clear existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(log_format)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file_path:
        log_dir = os.path.dirname(log_file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        # Rotates when the log reaches 1MB, keeps 5 backup logs.
        file_handler = logging.handlers.RotatingFileHandler(
            log_file_path, maxBytes=1024*1024, backupCount=5
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # numba logs every compilation pass at DEBUG.
    logging.getLogger('numba').setLevel(logging.WARNING)

    logging.info("Logging system initialized.")
    logging.debug(f"Log level set to {log_level}.")
    logging.debug(f"Log file path: {log_file_path or 'disabled'}")

def load_config(path: str) -> Dict[str, Any]:
    """Loads a JSON configuration file."""
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
        logging.info("Configuration loaded successfully.")
        return config
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError:
        logging.error(f"Error decoding JSON from {path}.")
        raise

def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))

def map_range(value: float, in_min: float, in_max: float,
              out_min: float, out_max: float, clamp_output: bool = False) -> float:
    """
    Linearly re-maps a value from one range to another.

    With clamp_output set, the result is constrained to the output range.
    """
    if in_max == in_min:
        return out_min
    result = out_min + (value - in_min) * (out_max - out_min) / (in_max - in_min)
    if clamp_output:
        low, high = min(out_min, out_max), max(out_min, out_max)
        result = clamp(result, low, high)
    return result

def limit(vec: np.ndarray, max_mag: float) -> np.ndarray:
    """Returns vec scaled down so its magnitude does not exceed max_mag."""
    mag_sq = vec[0] * vec[0] + vec[1] * vec[1]
    if mag_sq > max_mag * max_mag and mag_sq > 0:
        return vec * (max_mag / np.sqrt(mag_sq))
    return vec.copy()

def set_magnitude(vec: np.ndarray, mag: float) -> np.ndarray:
    """Returns vec rescaled to exactly mag. Zero vectors stay zero."""
    norm = np.hypot(vec[0], vec[1])
    if norm == 0:
        return np.zeros(2, dtype=np.float64)
    return vec * (mag / norm)

def from_angle(angle: float) -> np.ndarray:
    """Unit vector pointing along angle (radians)."""
    return np.array([np.cos(angle), np.sin(angle)], dtype=np.float64)
