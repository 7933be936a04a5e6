"""
Logging for the Deep RL Arena.

Every module logs under the 'deeprl' namespace:

    from deeprl.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Epoch finished")

Nothing is printed or written until the entry point calls setup_logging().
LOG_LEVEL in config.py (or --log-level) sets the console verbosity; the
log file always receives DEBUG and above.
"""

import logging
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


ROOT_LOGGER_NAME = 'deeprl'
LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(message)s'


class LogLevel(Enum):
    """Console verbosity choices."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR

    @classmethod
    def from_name(cls, name: str) -> 'LogLevel':
        try:
            return cls[name.upper()]
        except KeyError:
            raise ValueError(f"Unknown log level: {name}") from None


class LevelColorFormatter(logging.Formatter):
    """Colours the level name when writing to a terminal."""

    LEVEL_COLORS = {
        logging.DEBUG: '\033[36m',
        logging.INFO: '\033[32m',
        logging.WARNING: '\033[33m',
        logging.ERROR: '\033[31m',
        logging.CRITICAL: '\033[35m',
    }
    RESET = '\033[0m'

    def __init__(self, fmt: str, stream=None):
        super().__init__(fmt)
        stream = stream or sys.stdout
        self.enabled = hasattr(stream, 'isatty') and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if not self.enabled:
            return super().format(record)
        # Copy so the file handler still sees the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


def setup_logging(log_dir: Optional[str] = 'logs', level: LogLevel = LogLevel.INFO) -> Optional[Path]:
    """
    Attach a console handler and, unless log_dir is None, a file handler
    to the 'deeprl' logger. Calling it again replaces both.

    Returns:
        Path of the log file, if one was opened
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level.value)
    console.setFormatter(LevelColorFormatter(LOG_FORMAT, sys.stdout))
    root.addHandler(console)

    log_path = None
    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        log_path = directory / f"arena_{datetime.now():%Y%m%d_%H%M%S}.log"
        file_handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    root.info(f"Logging to console at {level.name}" + (f", file {log_path}" if log_path else ""))
    return log_path


def get_logger(name: str) -> logging.Logger:
    """Logger for `name` inside the 'deeprl' namespace."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + '.'):
        return logging.getLogger(name)
    return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')


def log_training_metrics(
    epoch: int,
    clock: int,
    epsilon: float,
    loss: Optional[float] = None,
    memory: Optional[int] = None,
    scores: Optional[tuple] = None,
    name: str = '',
) -> None:
    """
    One INFO line of per-network progress, e.g.
    'net=hero | epoch=10 | clock=2500 | eps=0.8123 | loss=0.001200 | memory=900 | score=6:4'.
    """
    fields = [f"epoch={epoch}", f"clock={clock}", f"eps={epsilon:.4f}"]
    if name:
        fields.insert(0, f"net={name}")
    if loss is not None:
        fields.append(f"loss={loss:.6f}")
    if memory is not None:
        fields.append(f"memory={memory}")
    if scores is not None:
        fields.append("score=" + ":".join(str(s) for s in scores))
    get_logger('training').info(" | ".join(fields))


def log_model_event(event: str, path: str, **context) -> None:
    """INFO line for a checkpoint save or load."""
    parts = [event.upper(), str(path)] + [f"{k}={v}" for k, v in context.items()]
    get_logger('model').info(" | ".join(parts))
