"""loguru setup shared by the API, the in-process scheduler and Celery workers.

Every record carries ``extra["request_id"]``: the HTTP request id inside a
request, the cycle id inside a reminder cycle, ``"app"`` otherwise.
"""

import json
import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict

from loguru import logger

from lifestock.utils.context import get_request_id

DEFAULT_REQUEST_ID = "app"

# stdlib loggers whose output is routed into loguru
INTERCEPTED_LOGGERS = (
    "uvicorn",
    "uvicorn.error",
    "uvicorn.access",
    "fastapi",
    "celery",
    "celery.beat",
)


class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _bind_live_request_id(record: Dict[str, Any]) -> None:
    # Module level loggers are bound once at import; the live id wins.
    request_id = get_request_id()
    if request_id:
        record["extra"]["request_id"] = request_id
    else:
        record["extra"].setdefault("request_id", DEFAULT_REQUEST_ID)


class CustomizeLogger:
    @classmethod
    def make_logger(cls, config_path: Path, environment: str = "logger"):
        with open(config_path) as config_file:
            config = json.load(config_file)
        section = config.get(environment, config["logger"])

        level = os.getenv("LOG_LEVEL", section["level"]).upper()
        log_file = Path(section["log_dir"]) / (
            f"{date.today():%Y-%m-%d}-{section['filename']}"
        )

        logger.remove()
        logger.configure(patcher=_bind_live_request_id)
        logger.add(
            sys.stdout,
            enqueue=True,
            backtrace=True,
            level=level,
            format=section["console_format"],
            colorize=True,
        )

        file_sink: Dict[str, Any] = {
            "rotation": section["rotation"],
            "retention": section["retention"],
            "enqueue": True,
            "backtrace": True,
            "level": level,
            "colorize": False,
        }
        if section.get("use_json_logs") and section.get("file_format") == "json":
            file_sink["serialize"] = True
        else:
            file_sink["format"] = section["file_format"]
        logger.add(str(log_file), **file_sink)

        logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
        for name in INTERCEPTED_LOGGERS:
            logging.getLogger(name).handlers = [InterceptHandler()]

        return logger


config_path = Path(__file__).resolve().parents[2] / "logging_config.json"
environment = "production" if os.getenv("ENVIRONMENT") == "production" else "logger"
custom_logger = CustomizeLogger.make_logger(config_path, environment)


def get_logger():
    """Logger bound to the current request or cycle id."""
    return custom_logger.bind(request_id=get_request_id() or DEFAULT_REQUEST_ID)
