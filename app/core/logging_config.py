import logging
import logging.config
import os
from datetime import datetime
from typing import Any, Dict
from app.core.config import settings

# Each category gets its own sub-directory under settings.LOG_DIR
LOG_CATEGORIES = ("app", "error", "access", "audit", "dispatch")

def _file_handler(category: str, level: str, formatter: str, current_date: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": os.path.join(settings.LOG_DIR, category, f"{category}-{current_date}.log"),
        "maxBytes": settings.LOG_MAX_BYTES,
        "backupCount": settings.LOG_BACKUP_COUNT,
        "encoding": "utf-8",
    }

def build_logging_config(current_date: str) -> Dict[str, Any]:
    """dictConfig for the service: console, per-category rotating files"""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "access": {
                "format": "%(asctime)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": settings.LOG_LEVEL,
                "formatter": "default",
                "stream": "ext://sys.stdout",
            },
            "app_file": _file_handler("app", settings.LOG_LEVEL, "detailed", current_date),
            "error_file": _file_handler("error", "ERROR", "detailed", current_date),
            "access_file": _file_handler("access", "INFO", "access", current_date),
            "audit_file": _file_handler("audit", "INFO", "default", current_date),
            # Supplier emails: who was sent what, and which deliveries need a resend
            "dispatch_file": _file_handler("dispatch", "INFO", "default", current_date),
        },
        "loggers": {
            "": {  # Root logger
                "level": settings.LOG_LEVEL,
                "handlers": ["console", "app_file", "error_file"],
                "propagate": False,
            },
            "app.audit": {
                "level": "INFO",
                "handlers": ["audit_file", "console"],
                "propagate": False,
            },
            "app.services.purchase.supplier_dispatch": {
                "level": "INFO",
                "handlers": ["dispatch_file", "app_file", "error_file"],
                "propagate": False,
            },
            "app.services.communication.email_service": {
                "level": "INFO",
                "handlers": ["dispatch_file", "error_file", "console"],
                "propagate": False,
            },
            "access": {
                "level": "INFO",
                "handlers": ["access_file"],
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": ["access_file"],
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "WARNING",  # Reduce DB query noise
                "handlers": ["app_file"],
                "propagate": False,
            },
        },
    }

def setup_logging():
    """Setup application logging configuration"""
    for category in LOG_CATEGORIES:
        os.makedirs(os.path.join(settings.LOG_DIR, category), exist_ok=True)

    logging.config.dictConfig(build_logging_config(datetime.now().strftime("%Y-%m-%d")))

    logger = logging.getLogger(__name__)
    logger.info(f"📝 Purchasing service logging configured (level {settings.LOG_LEVEL}, dir {settings.LOG_DIR}/)")
