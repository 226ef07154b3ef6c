import logging
import os
import tomllib
from logging.handlers import TimedRotatingFileHandler
from typing import Dict, Optional

from pipecollect.util.constants import ENV_PREFIX, LOGGER_LEVELS, LOGGER_FILES

logger = logging.getLogger(__name__)

_config = None


def parse_key_value_str(field_list: str, require_value: bool = False) -> Dict[str, str]:
    """Parse a property assignment list into a dictionary.

    Args:
        field_list (str): A comma-separated string of key-value pairs in the format "key:value,key:value".
        require_value (bool, optional): If True, raises a ValueError when a key is missing a value.

    Returns:
        Dict[str, str]: A dictionary where keys are property names and values are assigned values.
            A key without a value maps to the last segment of its dotted path.

    Raises:
        ValueError: If require_value is True and a key is missing a value.
    """
    result = {}
    for prop in field_list.split(","):
        key, *value = prop.split(":", 1)
        key = key.strip()
        value = value[0].strip() if len(value) > 0 else None

        if value is None:
            if require_value:
                raise ValueError(f"Value required for property '{key}'")
            value = key.rsplit(".", 1)[-1]

        result[key] = value

    return result


def reset_config():
    """Reset the configuration to None.

    This function resets the global _config variable to None, forcing
    the next call to get_config() to reload configuration from disk
    and environment variables.
    """
    global _config
    _config = None


def get_config(reload=False, path="~/.pipecollect.toml", ignore_env=False):
    """Get the configuration from the config file and environment variables.

    Args:
        reload (bool, optional): Force reload config from disk. Defaults to False.
        path (str, optional): Path to config file. Defaults to "~/.pipecollect.toml".
        ignore_env (bool, optional): Skip the environment variable overlay.

    Returns:
        dict: Configuration dictionary combining file and environment settings.

    Notes:
        - Config file values are read from the TOML file if it exists
        - Environment variables prefixed with 'PIPECOLLECT_' take precedence
        - If config file doesn't exist, returns environment variables only
        - Configuration is cached after first load unless reload=True
    """
    global _config
    if _config is None or reload:
        logger.debug("Loading configuration")
        config_path = os.path.expanduser(path)
        if os.path.exists(config_path):
            logger.info(f"Reading config from {config_path}")
            with open(config_path, 'rb') as f:
                _config = tomllib.load(f)
                logger.debug(f"Loaded config: {_config}")
        else:
            logger.debug(f"Config file {config_path} not found, using empty config")
            _config = {}

        if not ignore_env:
            for env_var in os.environ:
                if env_var.startswith(ENV_PREFIX):
                    config_key = env_var[len(ENV_PREFIX):].lower()
                    _config[config_key] = os.environ[env_var]
                    logger.debug(f"Set {config_key} from environment variable {env_var}")

    return _config


def get_int_setting(key: str, default: Optional[int] = None) -> Optional[int]:
    """Look up an integer setting, coercing string values from the environment.

    Raises:
        ValueError: If the configured value is not an integer.
    """
    value = get_config().get(key, None)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValueError(f"Config value '{key}' must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Config value '{key}' must be an integer, got {value!r}") from e


def configure_logger(logger_levels: Optional[str] = None, base_level="WARNING", logger_files: Optional[str] = None):
    """Configure logging levels for specified loggers.

    Args:
        logger_levels (str): A string containing logger name and level pairs in the format
            "logger1:LEVEL1,logger2:LEVEL2". Use "root" as logger name for root logger.
            Valid levels are DEBUG, INFO, WARNING, ERROR, CRITICAL.
        base_level (str, optional): Default logging level. Defaults to "WARNING".
        logger_files (str, optional): A string mapping loggers to file paths in "logger:path" format.

    Examples:
        >>> configure_logger("root:INFO,pipecollect.pipe.core:DEBUG")
        >>> configure_logger(logger_files="pipecollect:/tmp/pipecollect.log")

    Note:
        - Each configured logger gets a StreamHandler with formatted output
        - Format: '%(asctime)s - %(levelname)s:%(name)s:%(message)s'
        - Levels are converted to uppercase automatically
    """

    if not logger_levels:
        logger_levels = get_config().get(LOGGER_LEVELS, None)

    if not logger_files:
        logger_files = get_config().get(LOGGER_FILES, None)

    logging.basicConfig(level=base_level.upper())

    formatter = logging.Formatter('%(asctime)s - %(levelname)s:%(name)s:%(message)s')

    if logger_levels:
        for logger_name, level in parse_key_value_str(logger_levels).items():
            level = level.upper()
            configured = logging.getLogger(logger_name if logger_name != "root" else None)
            configured.setLevel(level)

            # Remove existing handlers to prevent duplicate logs
            configured.handlers.clear()

            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)
            console_handler.setFormatter(formatter)
            configured.addHandler(console_handler)

    if logger_files:
        for logger_name, file_name in parse_key_value_str(logger_files, require_value=True).items():
            configured = logging.getLogger(logger_name if logger_name != "root" else None)

            file_handler = TimedRotatingFileHandler(file_name, when='midnight', backupCount=7)
            file_handler.setLevel(configured.level or base_level.upper())
            file_handler.setFormatter(formatter)
            configured.addHandler(file_handler)

