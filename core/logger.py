# core/logger.py
import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Top-level logger names of this project; get_logger(__name__) lands under one of them
NAMESPACES = ("core", "fetchers", "widgets", "storefront", "__main__")

_configured = False


def _build_handlers(level: int):
    handlers = []
    formatter = logging.Formatter(LOG_FORMAT)

    if os.getenv("LOG_TO_STDOUT", "true").lower() == "true":
        stream = logging.StreamHandler(sys.stdout)
        stream.setFormatter(formatter)
        handlers.append(stream)

    if os.getenv("LOG_TO_FILE", "false").lower() == "true":
        log_file = os.getenv("LOG_FILE", "/data/storefront_wishlist.log")
        try:
            os.makedirs(os.path.dirname(log_file), exist_ok=True)
            rotating = RotatingFileHandler(
                log_file,
                maxBytes=int(os.getenv("LOG_MAX_BYTES", str(2 * 1024 * 1024))),
                backupCount=int(os.getenv("LOG_BACKUPS", "3")),
            )
            rotating.setFormatter(formatter)
            handlers.append(rotating)
        except OSError as e:
            sys.stderr.write(f"Could not open wishlist log file {log_file}: {e}\n")

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def setup_logging():
    """
    Configure the wishlist loggers once per process.

    Only this project's namespaces are touched. When the host application has
    already configured the root logger, records propagate to it and no handlers
    are added here, so nothing is printed twice.
    """
    global _configured
    if _configured:
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    host_configured = bool(logging.getLogger().handlers)
    handlers = [] if host_configured else _build_handlers(level)

    for name in NAMESPACES:
        ns_logger = logging.getLogger(name)
        ns_logger.setLevel(level)
        if handlers and not ns_logger.handlers:
            for handler in handlers:
                ns_logger.addHandler(handler)
            ns_logger.propagate = False

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
