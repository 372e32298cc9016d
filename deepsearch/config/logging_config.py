"""Logging configuration for uvicorn and the application."""

import logging
import os

import structlog


def get_uvicorn_log_level():
    level = os.getenv("UVICORN_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level, logging.INFO)


def get_log_format():
    return os.getenv("LOG_FORMAT", "pretty").lower()


def get_log_colors():
    colors_env = os.getenv("LOG_COLORS", "true").lower()
    return colors_env in ("true", "1", "yes", "on")


class RenameLoggerProcessor:
    """Processor to rename confusing logger names."""

    def __call__(self, logger, name, event_dict):
        if event_dict.get("logger") == "uvicorn.error":
            event_dict["logger"] = "uvicorn.server"
        elif event_dict.get("logger") == "uvicorn.access":
            event_dict["logger"] = "uvicorn.http"
        return event_dict


def get_logging_config():
    """Get uvicorn logging configuration based on environment settings."""
    if get_log_format() == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=get_log_colors())

    quiet = {"handlers": ["default"], "level": "WARNING", "propagate": False}
    server = {
        "handlers": ["default"],
        "level": get_uvicorn_log_level(),
        "propagate": False,
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": renderer,
                "foreign_pre_chain": [
                    structlog.stdlib.add_logger_name,
                    structlog.stdlib.add_log_level,
                    RenameLoggerProcessor(),
                    structlog.stdlib.PositionalArgumentsFormatter(),
                    structlog.processors.TimeStamper(fmt="iso"),
                    structlog.processors.StackInfoRenderer(),
                    structlog.processors.UnicodeDecoder(),
                ],
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            "uvicorn": server,
            "uvicorn.access": server,
            "uvicorn.error": server,
            "httpx": quiet,
            "httpcore": quiet,
            "primp": quiet,
        },
    }
