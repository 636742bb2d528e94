"""
Logging setup and run-event logging for the optimizer.

Console and (optionally) rotating file output share one format:

    2024-05-01 12:00:00.123 [INFO    ] strategy_optimizer.run - PHASE grid: ... [phase=grid budget=30]

Anything passed through ``extra=`` is appended as ``key=value`` pairs, so
phase and budget information survives into log files without parsing the
message text.

Usage:
    from strategy_optimizer.lib.logging_utils import setup_logging, get_logger

    setup_logging(level="DEBUG", log_dir="./logs")
    logger = get_logger(__name__)
    logger.info("Refinement started", extra={"phase": "refinement"})
"""

import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional, Union


class LogLevel(Enum):
    """Standard levels, usable where a typed value is preferred over a string."""
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


# Attributes every LogRecord carries; anything else came in via ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None)).keys()
) | {"message", "asctime", "taskName"}

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s - %(message)s"


# =============================================================================
# Formatting
# =============================================================================

class OptimizerFormatter(logging.Formatter):
    """
    Formatter with millisecond timestamps and ``extra`` fields.

    Colour codes are only emitted when requested and stderr is a terminal,
    so files and captured output stay plain.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        use_colors: bool = False,
        use_utc: bool = False,
        include_extras: bool = True,
    ):
        super().__init__(DEFAULT_LOG_FORMAT)
        self.use_colors = use_colors
        self.use_utc = use_utc
        self.include_extras = include_extras

    def formatTime(self, record: logging.LogRecord, datefmt: Optional[str] = None) -> str:
        created = datetime.fromtimestamp(
            record.created, tz=timezone.utc if self.use_utc else None
        )
        return created.strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

    @staticmethod
    def extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
        return {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)

        fields = self.extra_fields(record) if self.include_extras else {}
        if fields:
            pairs = " ".join(f"{key}={value}" for key, value in fields.items())
            text += f" [{pairs}]"

        if not (self.use_colors and sys.stderr.isatty()):
            return text
        return self.LEVEL_COLORS.get(record.levelno, "") + text + self.RESET


# =============================================================================
# Setup
# =============================================================================

def _file_handler(
    log_dir: str,
    log_file: Optional[str],
    max_bytes: int,
    backup_count: int,
    use_utc: bool,
) -> RotatingFileHandler:
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    name = log_file or f"optimizer_{datetime.now():%Y-%m-%d}.log"

    handler = RotatingFileHandler(
        directory / name,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(OptimizerFormatter(use_utc=use_utc))
    return handler


def _resolve_level(level: Union[str, int, LogLevel]) -> int:
    if isinstance(level, LogLevel):
        return level.value
    if isinstance(level, int):
        return level
    resolved = getattr(logging, str(level).upper(), None)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Union[str, LogLevel] = "INFO",
    log_dir: Optional[str] = None,
    log_file: Optional[str] = None,
    use_colors: bool = True,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    use_utc: bool = False,
) -> logging.Logger:
    """
    Configure the root logger for an optimizer process.

    Existing root handlers are replaced. A stderr handler is always added;
    a size-rotated file handler is added when ``log_dir`` is given.

    Args:
        level: Level name or LogLevel; unknown names fall back to INFO
        log_dir: Directory for the log file (no file logging if None)
        log_file: File name inside log_dir (default optimizer_<date>.log)
        use_colors: Colour console output when attached to a terminal
        max_bytes: Rotate the file once it reaches this size
        backup_count: Rotated files to keep
        use_utc: Timestamp records in UTC instead of local time

    Returns:
        The root logger
    """
    log_level = _resolve_level(level)

    handlers = [logging.StreamHandler(sys.stderr)]
    handlers[0].setFormatter(OptimizerFormatter(use_colors=use_colors, use_utc=use_utc))
    if log_dir:
        handlers.append(_file_handler(log_dir, log_file, max_bytes, backup_count, use_utc))

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)
    for handler in handlers:
        handler.setLevel(log_level)
        root.addHandler(handler)

    return root


def get_logger(name: str) -> logging.Logger:
    """Return the named logger (normally called with ``__name__``)."""
    return logging.getLogger(name)


# =============================================================================
# Optimization Logger
# =============================================================================

class OptimizationLogger:
    """
    Specialized logger for optimization run events.

    Provides methods for logging:
    - Run start and finish
    - Phase start and finish
    - New best results
    - Individual evaluations (DEBUG)

    All methods accept extra fields as kwargs for structured logging.
    """

    def __init__(self, name: str = "strategy_optimizer.run"):
        self._logger = logging.getLogger(name)

    def run_start(
        self,
        depth: str,
        max_iterations: int,
        n_parameters: int,
        **kwargs: Any
    ) -> None:
        self._logger.info(
            f"RUN START: depth={depth} max_iterations={max_iterations} "
            f"parameters={n_parameters}",
            extra={"depth": depth, "max_iterations": max_iterations, **kwargs}
        )

    def run_end(
        self,
        state: str,
        evaluations: int,
        best_score: Optional[float],
        duration: float,
        **kwargs: Any
    ) -> None:
        best_str = f"{best_score:.4f}" if best_score is not None else "n/a"
        self._logger.info(
            f"RUN {state.upper()}: {evaluations} evaluations in {duration:.1f}s, "
            f"best={best_str}",
            extra={"state": state, "evaluations": evaluations, **kwargs}
        )

    def phase_start(self, phase: str, budget: int, **kwargs: Any) -> None:
        self._logger.info(
            f"PHASE {phase}: starting with budget {budget}",
            extra={"phase": phase, "budget": budget, **kwargs}
        )

    def phase_end(
        self,
        phase: str,
        evaluations: int,
        best_score: Optional[float],
        **kwargs: Any
    ) -> None:
        best_str = f"{best_score:.4f}" if best_score is not None else "n/a"
        self._logger.info(
            f"PHASE {phase}: finished after {evaluations} evaluations, best={best_str}",
            extra={"phase": phase, "evaluations": evaluations, **kwargs}
        )

    def phase_skipped(self, phase: str, reason: str) -> None:
        self._logger.info(f"PHASE {phase}: skipped ({reason})")

    def new_best(self, score: float, iteration: int, parameters: Dict[str, Any]) -> None:
        self._logger.info(
            f"New best: score={score:.4f} iteration={iteration} params={parameters}"
        )

    def evaluation(self, iteration: int, score: float, phase: str) -> None:
        self._logger.debug(
            f"Evaluation {iteration}: score={score:.4f}",
            extra={"phase": phase}
        )
