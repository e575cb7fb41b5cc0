import os

from services.common.core.logging_config import setup_logging as common_setup_logging

DEFAULT_LOG_CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "logging.yml")


def setup_logging(config_path: str = "", level: str = "INFO"):
    """
    Load the YAML config and initialize logging.

    LOG_CONFIG_PATH overrides the config bundled with the package.
    """
    path = config_path or os.getenv("LOG_CONFIG_PATH") or DEFAULT_LOG_CONFIG_PATH
    common_setup_logging(path, level=level)
