"""Structured logger setup shared across Lambdas."""

import logging
import os

from pythonjsonlogger.json import JsonFormatter


def get_logger(name: str) -> logging.Logger:
    """
    Configure a JSON logger once and reuse it.

    The level is read from LOG_LEVEL so noisy per-ticket debug lines can be
    switched on for a single function without a redeploy of the code.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    formatter = JsonFormatter("%(levelname)s %(name)s %(message)s %(asctime)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    logger.propagate = False
    return logger
