import os

from switchyard.common.core.logging_config import configure_queue_logging
from switchyard.common.core.logging_config import setup_logging as common_setup_logging

from ..config import config


def setup_logging():
    """
    Load the YAML config and initialize logging.
    Also move handlers behind a queue unless LOG_QUEUE is disabled.
    """
    config_path = os.getenv("LOG_CONFIG_PATH", config.LOG_CONFIG_PATH)
    common_setup_logging(config_path, log_level=config.LOG_LEVEL)

    if os.getenv("LOG_QUEUE", "1").lower() not in ("0", "false", "no"):
        configure_queue_logging()
