# Configuration settings should be set in app.config
# The HyperAPI class attributes hold the defaults, the environment is used as a last resort
import os
import logging
from flask import current_app
import hyperapi
from typing import Any, Optional


def get_config(option: str) -> Optional[Any]:
    """Retrieve a configuration parameter from the app
    :param option: configuration parameter
    :return: configuration value
    """
    try:
        result = current_app.config[option]
    except (KeyError, RuntimeError):
        # KeyError: not configured in the app, RuntimeError: no app context
        result = getattr(hyperapi.HyperAPI, option, None)
    if result is None:
        result = os.environ.get(option, None)
    return result


def get_int_config(option: str, default: int) -> int:
    """
    :param option: configuration parameter
    :param default: used when the option isn't set or isn't an integer
    :return: integer configuration value
    """
    value = get_config(option)
    try:
        return int(value)
    except (TypeError, ValueError):
        hyperapi.log.warning(f"Invalid integer configuration {option}={value!r}, using {default}")
        return default


def get_bool_config(option: str) -> bool:
    value = get_config(option)
    if isinstance(value, str):
        return value.lower() in ("1", "true", "yes", "on")
    return bool(value)


def is_debug() -> bool:
    """
    We use the loglevel to check whether we're running in debug mode
    :return: whether the app is in debug mode
    """
    return hyperapi.log.getEffectiveLevel() < logging.INFO
