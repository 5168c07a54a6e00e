"""
Logging for the pipeline editor.

Everything logs through loguru. The backend client's HTTP libraries log
through the standard ``logging`` module; their records are routed into
loguru and kept at WARNING unless the editor itself runs at DEBUG, since
httpx reports every request at INFO.
"""

import inspect
import logging
import sys

from loguru import logger as _logger

from ..settings import Settings, settings

HTTP_LOGGERS = ("httpx", "httpcore")

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


class InterceptHandler(logging.Handler):
    """Route standard library log records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        level: str | int
        try:
            level = _logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so loguru reports the real caller
        frame, depth = inspect.currentframe(), 0
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        _logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(config: Settings, level: str | None = None) -> None:
    """
    Configure loguru sinks from settings.

    Args:
        config: Settings providing the log level, format and file options
        level: Override for ``config.log_level`` (the CLI's ``--verbose`` passes DEBUG)
    """
    level = (level or config.log_level).upper()

    _logger.remove()
    _logger.add(
        sys.stderr,
        level=level,
        format=config.log_format or CONSOLE_FORMAT,
        colorize=True,
        backtrace=level == "DEBUG",
        diagnose=False,
    )

    if config.log_to_file:
        log_path = config.get_log_dir() / "pipeline_editor.log"
        log_path.parent.mkdir(parents=True, exist_ok=True)
        _logger.add(
            str(log_path),
            level=level,
            format=config.log_format or FILE_FORMAT,
            rotation=config.log_rotation,
            retention=config.log_retention,
            compression="zip",
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    http_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in HTTP_LOGGERS:
        http_logger = logging.getLogger(name)
        http_logger.handlers = [InterceptHandler()]
        http_logger.setLevel(http_level)
        http_logger.propagate = False


setup_logging(settings)

logger = _logger
