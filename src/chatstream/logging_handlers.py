"""File logging for chat client runs."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path


class DateStampedFileHandler(logging.FileHandler):
    """Write each run to ``<directory>/<YYYY-MM-DD>/<prefix>_<time>.log`` (UTC)."""

    def __init__(
        self,
        directory: str | Path,
        *,
        prefix: str = "chat",
        encoding: str | None = "utf-8",
        delay: bool = False,
        current_time: datetime | None = None,
    ) -> None:
        timestamp = (current_time or datetime.now(timezone.utc)).astimezone(
            timezone.utc
        )
        date_folder = timestamp.strftime("%Y-%m-%d")
        file_name = f"{prefix}_{timestamp.strftime('%Y-%m-%d_%H-%M-%S')}_UTC.log"
        log_path = (Path(directory) / date_folder / file_name).resolve()

        log_path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(log_path, mode="a", encoding=encoding, delay=delay)


def cleanup_old_logs(
    log_directory: str | Path,
    retention_hours: int,
    logger: logging.Logger | None = None,
    *,
    now: datetime | None = None,
) -> int:
    """Delete ``*.log`` files older than ``retention_hours`` and empty date folders.

    Returns the number of files deleted. A retention of 0 disables cleanup.
    """

    if retention_hours <= 0:
        return 0

    dir_path = Path(log_directory).resolve()
    if not dir_path.exists():
        return 0

    cutoff_time = (now or datetime.now(timezone.utc)) - timedelta(hours=retention_hours)
    files_deleted = 0

    for log_file in dir_path.rglob("*.log"):
        mtime = datetime.fromtimestamp(log_file.stat().st_mtime, tz=timezone.utc)
        if mtime >= cutoff_time:
            continue
        try:
            log_file.unlink()
        except OSError as exc:
            if logger:
                logger.warning("Failed to delete %s: %s", log_file, exc)
            continue
        files_deleted += 1
        if logger:
            logger.debug("Deleted old log file: %s", log_file)

    for date_dir in dir_path.iterdir():
        if date_dir.is_dir() and not any(date_dir.iterdir()):
            date_dir.rmdir()

    if logger and files_deleted:
        logger.info("Log cleanup complete: %d file(s) deleted", files_deleted)

    return files_deleted


__all__ = ["DateStampedFileHandler", "cleanup_old_logs"]
