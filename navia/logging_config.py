"""
Logging Setup
=============

One stdout handler on the root logger, shared by the API server and
anything else that embeds the agent core.
"""

import logging
import sys
from typing import Optional

from navia.config import get_settings

_HANDLER_NAME = "navia-console"

NOISY_LOGGERS = ("httpx", "httpcore", "groq", "openai", "langchain", "sentence_transformers", "faiss")


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure logging for the application.

    Safe to call more than once: the console handler is only added the
    first time, later calls just update the level.

    Args:
        level: Override the level from settings
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level or get_settings().log_level)

    if not any(h.get_name() == _HANDLER_NAME for h in root_logger.handlers):
        formatter = logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.set_name(_HANDLER_NAME)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
