# utils.py
"""
Utility functions for the splatter framework.

This module provides helper functions, such as logging setup and config
loading, that are used across different parts of the application but do
not belong to a specific domain like generation or rendering.
"""
import logging
import logging.handlers
import json
import os
from typing import Dict, Any

# --- Data Contracts ---
#
# setup_logging(config: Dict[str, Any]) -> None:
#   - Inputs:
#     - config: A dictionary containing a "logging" key with "level",
#       "format", and "log_file" sub-keys.
#   - Outputs: None
#   - Side Effects: Configures the root Python logger. Creates a log
#     directory if it doesn't exist. Sets up a console handler and a
#     rotating file handler.
#   - Invariants: After this function runs, the logging system is
#     initialized and ready for use throughout the application.
#
# load_config(path: str) -> Dict[str, Any]:
#   - Raises FileNotFoundError / json.JSONDecodeError after logging them,
#     and ValueError when the top level is not an object.
#   - Logs a warning for missing or unknown sections; components fall back
#     to their own defaults for anything missing.

# Top-level sections of config.json, one per component.
CONFIG_SECTIONS = (
    "logging", "run_control", "generation", "presets", "render_passes", "visualization",
)


def setup_logging(config: Dict[str, Any]) -> None:
    """
    Configures the logging system from a configuration dictionary.

    Sets up logging to both the console and a rotating file. An empty
    "log_file" disables the file handler.
    """
    log_config = config.get('logging', {})
    log_level = str(log_config.get('level', 'INFO')).upper()
    unknown_level = not isinstance(logging.getLevelName(log_level), int)
    if unknown_level:
        log_level = 'INFO'
    log_format = log_config.get('format', '%(asctime)s - %(levelname)s - %(message)s')
    log_file_path = log_config.get('log_file', 'logs/splatter.log')

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

    logging.info("Logging system initialized.")
    if unknown_level:
        logging.warning(f"Unknown log level '{log_config.get('level')}' in config, using INFO.")
    logging.debug(f"Log level set to {log_level}.")
    logging.debug(f"Log file path: {log_file_path or '<disabled>'}")

def load_config(path: str) -> Dict[str, Any]:
    """
    Loads the JSON configuration and checks its top-level shape.

    Sections absent from the file fall back to each component's defaults;
    they are reported here once so a typo in a section name is visible.
    """
    logging.info(f"Loading configuration from {path}...")
    try:
        with open(path, 'r') as f:
            config = json.load(f)
    except FileNotFoundError:
        logging.error(f"Configuration file not found at {path}.")
        raise
    except json.JSONDecodeError as e:
        logging.error(f"Error decoding JSON from {path}: {e}")
        raise

    if not isinstance(config, dict):
        logging.error(f"Configuration in {path} must be a JSON object, got {type(config).__name__}.")
        raise ValueError(f"{path}: top-level configuration must be an object")

    missing = [name for name in CONFIG_SECTIONS if name not in config]
    unknown = sorted(set(config) - set(CONFIG_SECTIONS))
    if missing:
        logging.warning(f"Config sections not set, using defaults: {', '.join(missing)}.")
    if unknown:
        logging.warning(f"Ignoring unknown config sections: {', '.join(unknown)}.")

    logging.info(f"Configuration loaded successfully ({len(config) - len(unknown)} sections).")
    return config
