"""
Logging setup shared by every entry point.

Each pipeline run sets a run id in a ContextVar; RunIDFilter copies it onto
every log record so interleaved concurrent runs stay distinguishable.
"""

import contextvars
import logging
import os
from datetime import datetime

from .config import AppConfig

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(run_id)s] %(name)s:%(message)s"

run_id_ctx: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default="-")


class RunIDFilter(logging.Filter):
    """Injects the current run ID into every log record."""
    def filter(self, record):
        record.run_id = run_id_ctx.get("-")
        return True


def configure_logging(config: AppConfig) -> None:
    """Install the run-id formatter on the root logger and optional file output."""
    log_level = getattr(logging, config.log_level, logging.INFO)
    rid_filter = RunIDFilter()
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # If root has no handlers yet, add a console handler
    if not root_logger.handlers:
        console = logging.StreamHandler()
        console.setLevel(log_level)
        root_logger.addHandler(console)

    for handler in root_logger.handlers:
        handler.setFormatter(formatter)
        handler.addFilter(rid_filter)

    if config.log_file_dir:
        os.makedirs(config.log_file_dir, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
        log_file = os.path.join(config.log_file_dir, f"agentflow_{timestamp}.log")
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(rid_filter)
        root_logger.addHandler(file_handler)
        logger.info(f"Logging to file: {log_file}")
