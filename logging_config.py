"""
Centralized logging configuration for the Bookstore client.

Flask serves each request on a worker thread, and every signed-in user owns
an API client. Log records therefore carry the thread name so that the API
calls made on behalf of one request can be followed through the log.

Features:
    - Thread name in every log record
    - Console output (always enabled)
    - Rotating file logs (optional, for production)
    - Separate error log for ERROR/CRITICAL messages
    - Per-session loggers so one user's API traffic can be filtered out

Log Format:
    2026-10-19 10:15:30 [INFO    ] [MainThread] bookstore_client.app - Starting application
    2026-10-19 10:15:31 [DEBUG   ] [Thread-3] bookstore_client.core.api_client - GET /delivery/orders/ -> 200
    2026-10-19 10:15:32 [WARNING ] [Thread-3] bookstore_client.session.3f2a9c1e - Token refresh failed

Usage:
    # At application startup
    from logging_config import setup_logging, get_logger

    setup_logging(log_level=logging.INFO, enable_file_logging=True)

    # In modules
    logger = get_logger(__name__)
    logger.info("This message includes thread context automatically")

    # For one signed-in user's API client
    session_logger = get_session_logger("3f2a9c1e-...")
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


APP_LOGGER_NAME = "bookstore_client"


# =============================================================================
# THREAD CONTEXT FILTER
# =============================================================================

class ThreadContextFilter(logging.Filter):
    """
    Logging filter that adds thread context to all log records.

    Adds ``thread_name`` and ``thread_id`` to each record; both are used by
    the format string set up in setup_logging().
    """

    def filter(self, record: logging.LogRecord) -> bool:
        current_thread = threading.current_thread()
        record.thread_name = current_thread.name
        record.thread_id = threading.get_ident()

        # Context only, nothing is filtered out
        return True


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(
    app_name: str = APP_LOGGER_NAME,
    log_level: int = logging.INFO,
    log_dir: Optional[Path] = None,
    enable_file_logging: bool = True,
) -> logging.Logger:
    """
    Configure application logging with thread context.

    This sets up:
    1. Console handler (always enabled)
    2. Rotating file handler (optional) - for persistent logs
    3. Error file handler (optional) - for ERROR/CRITICAL only
    4. Thread context filter - adds thread name to all messages

    Args:
        app_name: Name of the root logger (default: "bookstore_client")
        log_level: Minimum log level (default: INFO)
        log_dir: Directory for log files (default: ./logs relative to this file)
        enable_file_logging: Whether to write to log files (default: True)

    Returns:
        Configured root logger instance

    Example:
        # Development
        logger = setup_logging(log_level=logging.DEBUG, enable_file_logging=False)

        # Production
        logger = setup_logging(log_level=logging.INFO, enable_file_logging=True)
    """
    logger = logging.getLogger(app_name)
    logger.setLevel(log_level)
    logger.propagate = False  # Prevent duplicate logs to root logger

    # Remove any existing handlers (allows re-configuration)
    logger.handlers.clear()

    # Format: timestamp [level] [thread_name] logger_name - message
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)-8s] [%(thread_name)s] %(name)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    thread_filter = ThreadContextFilter()

    # ---------------------------------------------------------------------
    # Console Handler (always enabled)
    # ---------------------------------------------------------------------
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(thread_filter)
    logger.addHandler(console_handler)

    # ---------------------------------------------------------------------
    # File Handlers (optional)
    # ---------------------------------------------------------------------
    if enable_file_logging:
        if log_dir is None:
            log_dir = Path(__file__).parent / "logs"

        log_dir.mkdir(parents=True, exist_ok=True)

        # Main application log (all levels)
        app_log_file = log_dir / f"{app_name}.log"
        file_handler = RotatingFileHandler(
            filename=app_log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB per file
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(thread_filter)
        logger.addHandler(file_handler)

        # Error log (ERROR and CRITICAL only)
        error_log_file = log_dir / f"{app_name}_error.log"
        error_handler = RotatingFileHandler(
            filename=error_log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        error_handler.addFilter(thread_filter)
        logger.addHandler(error_handler)

        logger.info(f"File logging enabled: {app_log_file}")

    logger.info(f"Logging configured at level {logging.getLevelName(log_level)}")
    return logger


# =============================================================================
# LOGGER FACTORY FUNCTIONS
# =============================================================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger with the application namespace.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger under "bookstore_client", inheriting setup_logging() handlers

    Example:
        # In services/orders_provider.py
        logger = get_logger(__name__)
        # Logger name: "bookstore_client.services.orders_provider"
    """
    if not name.startswith(APP_LOGGER_NAME):
        # e.g., "services.orders_provider" -> "bookstore_client.services.orders_provider"
        name = f"{APP_LOGGER_NAME}.{name}"

    return logging.getLogger(name)


def get_session_logger(session_key: str) -> logging.Logger:
    """
    Get a logger for one signed-in user's API client.

    The logger name includes the first 8 characters of the session key,
    which is enough to tell concurrent users apart in the log.

    Args:
        session_key: Registry key of the user's provider set

    Returns:
        Logger named "bookstore_client.session.<short key>"
    """
    short_key = session_key[:8] if len(session_key) >= 8 else session_key
    return logging.getLogger(f"{APP_LOGGER_NAME}.session.{short_key}")

