"""Persistent file logging for CLI runs, with secrets redacted."""

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta
from pathlib import Path

from ._compat import secure_file

LOG_DIR = Path.home() / ".directory-resources" / "logs"
LOG_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
MAX_LOG_AGE_DAYS = 14
REDACTED = "***REDACTED***"

logger = logging.getLogger(__name__)


def generate_run_id() -> str:
    """Return an 8-character hex run identifier."""
    return uuid.uuid4().hex[:8]


class SecretRedactionFilter(logging.Filter):
    """Logging filter replacing any of the given secrets with ``***REDACTED***``."""

    def __init__(self, secrets: Iterable[str | None]) -> None:
        super().__init__()
        self._secrets = [s for s in secrets if s]

    def _redact(self, value: object) -> object:
        text = str(value)
        if not any(s in text for s in self._secrets):
            return value
        for secret in self._secrets:
            text = text.replace(secret, REDACTED)
        return text

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        record.msg = self._redact(record.msg)
        if isinstance(record.args, tuple):
            record.args = tuple(self._redact(a) for a in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: self._redact(v) for k, v in record.args.items()}
        return True


def create_file_handler(
    run_id: str,
    secrets: Iterable[str | None] = (),
    level: int = logging.DEBUG,
    log_dir: Path | None = None,
) -> logging.FileHandler:
    """Create a file handler writing to ``~/.directory-resources/logs/<date>_<run_id>.log``.

    Also triggers cleanup of old log files.
    """
    directory = log_dir or LOG_DIR
    directory.mkdir(parents=True, exist_ok=True)

    date_str = datetime.now().strftime("%Y-%m-%d")
    log_path = directory / f"{date_str}_{run_id}.log"

    handler = logging.FileHandler(str(log_path), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(SecretRedactionFilter(secrets))
    secure_file(log_path)

    cleanup_old_logs(directory)

    return handler


def cleanup_old_logs(directory: Path | None = None, max_age_days: int = MAX_LOG_AGE_DAYS) -> int:
    """Delete ``*.log`` files older than *max_age_days*; returns the number removed."""
    directory = directory or LOG_DIR
    if not directory.is_dir():
        return 0

    cutoff = datetime.now() - timedelta(days=max_age_days)
    removed = 0
    for path in directory.glob("*.log"):
        # Filename format: YYYY-MM-DD_<run_id>.log
        date_part = path.stem.split("_", 1)[0]
        try:
            file_date = datetime.strptime(date_part, "%Y-%m-%d")
        except ValueError:
            logger.debug(f"Ignoring log file with unexpected name: {path.name}")
            continue
        if file_date < cutoff:
            path.unlink(missing_ok=True)
            removed += 1
    return removed
