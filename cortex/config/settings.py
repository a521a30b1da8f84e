"""Configuration utilities for cortex."""

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from .constants import (
    CORTEX_CONFIG_DIR,
    ENV_VAR_DEFINITIONS,
    PREFERENCES_FILENAME,
    UNDO_WINDOW_SECONDS,
)

logger = logging.getLogger(__name__)


def get_prefs_path() -> Path:
    """Get the preference file path, respecting CORTEX_PREFS_FILE.

    When running tests, set CORTEX_PREFS_FILE to a temp file path to prevent
    tests from touching the real preferences.
    """
    override = os.environ.get("CORTEX_PREFS_FILE")
    if override:
        return Path(override)

    CORTEX_CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CORTEX_CONFIG_DIR / PREFERENCES_FILENAME


def validate_env_var(name: str, value: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate a single environment variable value.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if name not in ENV_VAR_DEFINITIONS:
        return True, None

    if value is None:
        return True, None

    if name == "CORTEX_UNDO_WINDOW":
        try:
            seconds = float(value)
        except ValueError:
            return False, f"Invalid value '{value}' for {name}. Expected a number of seconds"
        if seconds <= 0:
            return False, f"Invalid value '{value}' for {name}. Must be positive"
        return True, None

    valid_values = ENV_VAR_DEFINITIONS[name].get("valid_values")
    if valid_values is None:
        return True, None

    if value.upper() not in [v.upper() for v in valid_values]:
        return False, f"Invalid value '{value}' for {name}. Valid values: {valid_values}"

    return True, None


def validate_all_env_vars() -> List[str]:
    """Validate all cortex environment variables.

    Returns:
        List of error messages (empty if all valid).
    """
    errors = []
    for name in ENV_VAR_DEFINITIONS:
        is_valid, error = validate_env_var(name, os.environ.get(name))
        if not is_valid:
            errors.append(error)
    return errors


def get_env_var(name: str, validate: bool = True) -> Optional[str]:
    """Get an environment variable with optional validation.

    Raises:
        ValueError: If validate=True and the value is invalid.
    """
    value = os.environ.get(name)

    if validate and value is not None:
        is_valid, error = validate_env_var(name, value)
        if not is_valid:
            raise ValueError(error)

    if value is None and name in ENV_VAR_DEFINITIONS:
        return ENV_VAR_DEFINITIONS[name].get("default")

    return value


def get_undo_window() -> float:
    """Seconds a delete stays undoable, falling back to the default on bad input."""
    try:
        value = get_env_var("CORTEX_UNDO_WINDOW")
    except ValueError as e:
        logger.warning(f"{e}; using {UNDO_WINDOW_SECONDS}s")
        return UNDO_WINDOW_SECONDS
    return float(value) if value else UNDO_WINDOW_SECONDS


def get_log_level() -> int:
    """Log level for the cortex logger."""
    try:
        value = get_env_var("CORTEX_LOG_LEVEL") or "INFO"
    except ValueError:
        value = "INFO"
    return getattr(logging, value.upper(), logging.INFO)

