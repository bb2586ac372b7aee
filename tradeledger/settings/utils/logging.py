import os
import sys
from pathlib import Path

# ─────────────────────────────────────────────────────
# Create a "logs" directory next to this settings file:
# ─────────────────────────────────────────────────────
LOG_DIR = Path(__file__).resolve().parent / "logs"

# One log file per engine area; loggers are named "<area>_performance"
PERFORMANCE_AREAS = ["offers", "orders", "disputes", "reviews"]

PERFORMANCE_LOG_PATHS = {
    area: LOG_DIR / f"{area}_performance.log" for area in PERFORMANCE_AREAS
}
EVENTS_LOG_PATH = LOG_DIR / "domain_events.log"
ERROR_LOG_PATH = LOG_DIR / "error.log"
INFO_LOG_PATH = LOG_DIR / "info.log"

# File handlers are dropped in CI and in tests, only create the folder
# when they will be used.
FILE_LOGGING = not (
    os.environ.get("GITHUB_ACTIONS") or os.environ.get("DISABLE_FILE_LOGGING")
)
if FILE_LOGGING:
    os.makedirs(LOG_DIR, exist_ok=True)

# ─────────────────────────────────────────────────────
# base logging config
# ─────────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "console": {"format": "%(name)-12s %(levelname)-8s %(message)s"},
        "file": {"format": "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"},
        "verbose": {
            "format": "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "console",
            "stream": sys.stdout,
        },
        "info_file": {
            "level": "INFO",
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "file",
            "filename": str(INFO_LOG_PATH),
            "maxBytes": 1_000_000,
            "backupCount": 10,
        },
        "error_file": {
            "level": "ERROR",
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "file",
            "filename": str(ERROR_LOG_PATH),
            "maxBytes": 1_000_000,
            "backupCount": 10,
        },
        **{
            f"{area}_performance_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": str(path),
                "formatter": "file",
                "maxBytes": 10 * 1024 * 1024,
                "backupCount": 5,
                "level": "INFO",
            }
            for area, path in PERFORMANCE_LOG_PATHS.items()
        },
        "events_file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": str(EVENTS_LOG_PATH),
            "formatter": "verbose",
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 3,
            "level": "INFO",
        },
    },
    "loggers": {
        # root logger
        "": {
            "level": "INFO",
            "handlers": ["console", "info_file", "error_file"],
            "propagate": True,
        },
        "trade_engine": {
            "handlers": ["console", "error_file"],
            "level": "INFO",
            "propagate": False,
        },
        **{
            f"{area}_performance": {
                "handlers": [f"{area}_performance_file", "error_file"],
                "level": "INFO",
                "propagate": False,
            }
            for area in PERFORMANCE_AREAS
        },
        "domain_events": {
            "handlers": ["events_file", "error_file"],
            "level": "INFO",
            "propagate": False,
        },
    },
}

# Without file logging, drop all file handlers and log to the console only:
if not FILE_LOGGING:
    for h in list(LOGGING["handlers"].keys()):
        if h.endswith("_file"):
            LOGGING["handlers"].pop(h, None)

    for logger_config in LOGGING["loggers"].values():
        logger_config["handlers"] = ["console"]
