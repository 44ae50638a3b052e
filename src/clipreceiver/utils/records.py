"""Small decimal-text record files (PID and port records)."""

import logging
import os
import re
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Type

from clipreceiver.errors import RecordFileError, RecordParseError

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

OWNER_ONLY = 0o600
WORLD_READABLE = 0o644

DECIMAL = re.compile(r"[0-9]+")


def read_record(
    path: Path,
    io_error: Type[RecordFileError] = RecordFileError,
    parse_error: Type[RecordParseError] = RecordParseError,
) -> Optional[int]:
    """Return the integer stored in ``path`` or ``None`` if the file is missing."""
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        raise io_error(f"cannot read {path}: {e}") from e

    try:
        text = raw.decode("ascii").strip()
    except UnicodeDecodeError as e:
        raise parse_error(f"{path} is not decimal text: {raw!r}") from e

    if not DECIMAL.fullmatch(text):
        raise parse_error(f"{path} does not contain a decimal integer: {text!r}")
    return int(text)


@contextmanager
def record_lock(path: Path, io_error: Type[RecordFileError] = RecordFileError) -> Iterator[None]:
    """Hold an exclusive advisory lock on ``<path>.lock`` for the block.

    Every read, remove and create of the record done inside the block is
    one step as seen by other processes taking the same lock.
    """
    lock_path = path.with_name(path.name + ".lock")
    try:
        fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, OWNER_ONLY)
    except OSError as e:
        raise io_error(f"cannot open {lock_path}: {e}") from e

    with os.fdopen(fd, "r+b") as fh:
        try:
            if sys.platform == "win32":
                msvcrt.locking(fh.fileno(), msvcrt.LK_LOCK, 1)
            else:
                fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
        except OSError as e:
            raise io_error(f"cannot lock {lock_path}: {e}") from e

        try:
            yield
        finally:
            if sys.platform == "win32":
                fh.seek(0)
                msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)
            else:
                fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


def write_record(
    path: Path,
    value: int,
    mode: int,
    io_error: Type[RecordFileError] = RecordFileError,
) -> None:
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "w", encoding="ascii") as fh:
            fh.write(str(value))
        os.chmod(path, mode)
    except OSError as e:
        raise io_error(f"cannot write {path}: {e}") from e
    logger.debug(f"Wrote {value} to {path}")


def create_record_exclusive(
    path: Path,
    value: int,
    mode: int,
    io_error: Type[RecordFileError] = RecordFileError,
) -> bool:
    """Create ``path`` holding ``value``; ``False`` if the file already exists.

    Creation and existence check are a single ``O_EXCL`` open.
    """
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    except FileExistsError:
        return False
    except OSError as e:
        raise io_error(f"cannot create {path}: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="ascii") as fh:
            fh.write(str(value))
        os.chmod(path, mode)
    except OSError as e:
        raise io_error(f"cannot write {path}: {e}") from e
    logger.debug(f"Created {path} with {value}")
    return True


def remove_record(path: Path, io_error: Type[RecordFileError] = RecordFileError) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError as e:
        raise io_error(f"cannot remove {path}: {e}") from e
    logger.debug(f"Removed {path}")
