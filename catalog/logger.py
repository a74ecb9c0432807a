import logging
import os
import sys
from logging.handlers import RotatingFileHandler

_configured = False

# Chatty third-party loggers kept at WARNING unless LOG_LEVEL is DEBUG.
_NOISY_LOGGERS = ("urllib3", "asyncio")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def default_log_file() -> str:
    """Log next to the menu database unless LOG_FILE says otherwise."""
    db_dir = os.path.dirname(os.getenv("DB_PATH", "/data/little_lemon.sqlite3"))
    return os.path.join(db_dir or ".", "menu_cache.log")


def console_stream():
    # The search and interactive modes print menus on stdout.
    if os.getenv("LOG_STREAM", "stderr").strip().lower() == "stdout":
        return sys.stdout
    return sys.stderr


def setup_logging():
    global _configured
    if _configured:
        return

    level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_file = os.getenv("LOG_FILE") or default_log_file()

    root = logging.getLogger()
    root.setLevel(level)
    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    if not root.handlers:
        if _env_flag("LOG_TO_CONSOLE", "true"):
            ch = logging.StreamHandler(console_stream())
            ch.setLevel(level)
            ch.setFormatter(formatter)
            root.addHandler(ch)

        if _env_flag("LOG_TO_FILE", "true"):
            try:
                os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
                fh = RotatingFileHandler(
                    log_file,
                    maxBytes=int(os.getenv("LOG_MAX_BYTES", str(1024 * 1024))),
                    backupCount=int(os.getenv("LOG_BACKUPS", "3")),
                )
                fh.setLevel(level)
                fh.setFormatter(formatter)
                root.addHandler(fh)
            except OSError as e:
                root.warning("Failed to initialize file logging at %s: %s", log_file, e)

    if level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    setup_logging()
    return logging.getLogger(name)
