"""Logging for the broker.

Every record carries the request ID (``-`` outside a request), so a sign-in
can be followed from the access log into the store calls it made.
"""

import logging.config

from scopegate.config import settings

FORMATS = {
    "development": "%(levelname)s:     [%(request_id)s] %(name)s - %(message)s",
    "production": "%(asctime)s - [%(request_id)s] %(name)s - %(levelname)s - %(message)s",
}

QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "aiosmtplib", "sqlalchemy.engine")


def _base_config() -> dict:
    log_format = FORMATS["development"] if settings.is_development else FORMATS["production"]
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "request_context": {"()": "scopegate.api.middleware.RequestContextFilter"},
        },
        "formatters": {"default": {"format": log_format}},
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "filters": ["request_context"],
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"handlers": ["default"], "level": settings.log_level},
    }


def get_uvicorn_log_config() -> dict:
    """The app config plus uvicorn's access log on its own handler."""
    config = _base_config()
    if settings.is_development:
        access_format = '%(levelprefix)s "%(request_line)s" %(status_code)s'
    else:
        access_format = '%(levelprefix)s %(client_addr)s - "%(request_line)s" %(status_code)s'

    config["formatters"]["access"] = {
        "()": "uvicorn.logging.AccessFormatter",
        "fmt": access_format,
    }
    config["handlers"]["access"] = {
        "class": "logging.StreamHandler",
        "formatter": "access",
        "stream": "ext://sys.stdout",
    }
    config["loggers"]["uvicorn.access"] = {
        "handlers": ["access"],
        "level": "INFO",
        "propagate": False,
    }
    config["loggers"]["uvicorn.error"] = {"level": "INFO"}
    return config


def setup_logging() -> None:
    logging.config.dictConfig(_base_config())
