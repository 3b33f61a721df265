import logging
import logging.config
from collections import OrderedDict
from pathlib import Path
from typing import Union


LOG_DIR = Path(__file__).resolve().parent / "logs"
LOG_DIR.mkdir(parents=True, exist_ok=True)

# One audit file per chat
CHAT_LOG_DIR = LOG_DIR / "chats"
CHAT_LOG_DIR.mkdir(parents=True, exist_ok=True)

# Least recently used chat loggers are closed beyond this many open files
MAX_OPEN_CHAT_LOGGERS = 64

_chat_loggers: "OrderedDict[str, logging.Logger]" = OrderedDict()


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure app-wide logging with rotation to file and console."""

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "default",
                "filename": str(LOG_DIR / "bot.log"),
                "maxBytes": 5 * 1024 * 1024,
                "backupCount": 3,
                "encoding": "utf-8",
            },
        },
        "loggers": {
            "uvicorn.error": {"level": level, "handlers": ["console", "file"], "propagate": False},
            "uvicorn.access": {"level": level, "handlers": ["console", "file"], "propagate": False},
            "httpx": {"level": "WARNING"},
        },
        "root": {
            "level": level,
            "handlers": ["console", "file"],
        },
    }

    logging.config.dictConfig(logging_config)
    return logging.getLogger("rekapan_bot")


def get_chat_logger(chat_id: Union[int, str], level: str = "INFO") -> logging.Logger:
    """
    Get or create the audit logger of a chat.

    Each chat gets its own log file in logs/chats/ recording who sent which
    command and how it ended. Records also propagate to the root logger.
    At most MAX_OPEN_CHAT_LOGGERS files stay open; the least recently used
    one is closed first and reopened in append mode when its chat returns.

    Args:
        chat_id: Telegram chat identifier
        level: Logging level (default: INFO)

    Returns:
        Logger instance for the chat
    """
    key = str(chat_id)
    if key in _chat_loggers:
        _chat_loggers.move_to_end(key)
        return _chat_loggers[key]

    while len(_chat_loggers) >= MAX_OPEN_CHAT_LOGGERS:
        close_chat_logger(next(iter(_chat_loggers)))

    chat_logger = logging.getLogger(f"rekapan_bot.chat.{key}")
    chat_logger.setLevel(level)

    file_handler = logging.FileHandler(str(CHAT_LOG_DIR / f"{key}.log"), mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    chat_logger.addHandler(file_handler)

    _chat_loggers[key] = chat_logger
    return chat_logger


def close_chat_logger(chat_id: Union[int, str]) -> None:
    """Close and forget the audit logger of a chat."""
    key = str(chat_id)
    chat_logger = _chat_loggers.pop(key, None)
    if chat_logger is None:
        return
    for handler in chat_logger.handlers[:]:
        handler.close()
        chat_logger.removeHandler(handler)


def close_all_chat_loggers() -> None:
    for key in list(_chat_loggers):
        close_chat_logger(key)
