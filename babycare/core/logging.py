import os
import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
import pytz
import functools
from typing import Callable

from babycare.core.config import settings

LOGGER_NAME = "babycare"

class ZoneFormatter(logging.Formatter):
    """Formatter that renders timestamps in a fixed timezone with 24-hour format."""

    def __init__(self, fmt=None, datefmt=None, tz_name: str = "UTC"):
        super().__init__(fmt, datefmt)
        self.tz = pytz.timezone(tz_name)
        self.tz_label = tz_name

    def converter(self, timestamp):
        dt = datetime.fromtimestamp(timestamp, tz=self.tz)
        return dt.timetuple()

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created, tz=self.tz)
        if datefmt:
            return dt.strftime(datefmt)
        else:
            return dt.strftime('%Y-%m-%d %H:%M:%S %Z')

def setup_logging(log_directory: str = None, level: str = None, to_file: bool = None) -> logging.Logger:
    """Setup application logging with file rotation and console output."""
    log_directory = log_directory or settings.LOG_DIR
    level = (level or settings.LOG_LEVEL).upper()
    to_file = settings.LOG_TO_FILE if to_file is None else to_file

    formatter = ZoneFormatter(
        '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(funcName)s() - %(message)s',
        tz_name=settings.LOG_TIMEZONE
    )

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level, logging.INFO))

    # Remove handlers from a previous setup
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    if to_file:
        if not os.path.exists(log_directory):
            os.makedirs(log_directory)

        file_handler = RotatingFileHandler(
            os.path.join(log_directory, "babycare.log"),
            maxBytes=1*1024*1024,  # 1 MB
            backupCount=3
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Prevent duplicate logs
    logger.propagate = False

    return logger

def log_async_function_call(func: Callable) -> Callable:
    """Decorator to log async function entry and exit with parameters."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        func_logger = logging.getLogger(func.__module__)

        args_str = ", ".join([str(arg)[:100] for arg in args])
        kwargs_str = ", ".join([f"{k}={str(v)[:100]}" for k, v in kwargs.items()])
        params = ", ".join(filter(None, [args_str, kwargs_str]))

        func_logger.debug(f"→ Entering {func.__name__}({params[:200]}{'...' if len(params) > 200 else ''})")

        try:
            result = await func(*args, **kwargs)
            func_logger.debug(f"← Exiting {func.__name__} successfully")
            return result
        except Exception as e:
            func_logger.error(f"✗ Error in {func.__name__}: {type(e).__name__}: {str(e)}")
            raise

    return wrapper


logger = logging.getLogger(LOGGER_NAME)
