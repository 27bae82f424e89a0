"""Rich logging with chain/task context and better formatting."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional


class ChainLogFormatter(logging.Formatter):
    """Custom formatter with chain and task context."""

    def __init__(self, component: str, use_colors: bool = True):
        super().__init__()
        self.component = component
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        chain_context = ""
        if hasattr(record, "chain_id"):
            chain_context = f"[{record.chain_id}] "

        task_context = ""
        if hasattr(record, "task_index"):
            task_context = f"[task {record.task_index}"
            if hasattr(record, "task_type"):
                task_context += f":{record.task_type}"
            task_context += "] "

        if self.use_colors:
            level_colors = {
                "DEBUG": "\033[36m",      # Cyan
                "INFO": "\033[32m",       # Green
                "WARNING": "\033[33m",    # Yellow
                "ERROR": "\033[31m",      # Red
                "CRITICAL": "\033[35m",   # Magenta
            }
            reset = "\033[0m"
            level_color = level_colors.get(record.levelname, "")
        else:
            level_color = ""
            reset = ""

        return (
            f"{timestamp} {level_color}{record.levelname:8s}{reset} "
            f"[{self.component}] {chain_context}{task_context}{record.getMessage()}"
        )


class ContextLogger(logging.LoggerAdapter):
    """Logger adapter that stamps chain/task context onto every record.

    One adapter per chain execution: concurrent chains must not share one.
    """

    def __init__(self, logger: logging.Logger, chain_id: Optional[str] = None):
        super().__init__(logger, {})
        self.chain_id = chain_id
        self.task_index: Optional[int] = None
        self.task_type: Optional[str] = None

    def set_task_context(self, task_index: Optional[int] = None, task_type: Optional[str] = None):
        self.task_index = task_index
        self.task_type = task_type

    def clear_context(self):
        self.task_index = None
        self.task_type = None

    def process(self, msg, kwargs):
        extra = kwargs.get("extra", {})

        if self.chain_id:
            extra["chain_id"] = self.chain_id
        if self.task_index is not None:
            extra["task_index"] = self.task_index
        if self.task_type:
            extra["task_type"] = self.task_type

        kwargs["extra"] = extra
        return msg, kwargs

    def chain_started(self, name: str, task_count: int):
        self.info(f"Starting chain '{name}' ({task_count} tasks)")

    def task_started(self, task_index: int, task_type: str, description: str):
        self.set_task_context(task_index=task_index, task_type=task_type)
        self.info(f"Running: {description}")

    def task_completed(self, duration_seconds: float):
        self.info(f"Task completed in {duration_seconds:.1f}s")
        self.clear_context()

    def task_failed(self, error: str):
        self.error(f"Task failed: {error}")
        self.clear_context()

    def chain_finished(self, status: str, duration_seconds: float):
        self.info(f"Chain {status} in {duration_seconds:.1f}s")


def setup_rich_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    component: str = "pyr-dev",
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the ``pyr_dev`` logger hierarchy.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Also write plain-text logs to this file
        component: Label shown in each formatted line
        use_colors: ANSI level colors on the console when it is a terminal

    Returns:
        The configured package logger
    """
    logger = logging.getLogger("pyr_dev")
    logger.setLevel(getattr(logging, log_level.upper()))

    # Close existing handlers before clearing (prevents file descriptor leak)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(ChainLogFormatter(component, use_colors=use_colors and sys.stderr.isatty()))
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(ChainLogFormatter(component, use_colors=False))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
