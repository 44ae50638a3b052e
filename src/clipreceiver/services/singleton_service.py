import logging
import os
from pathlib import Path
from typing import Optional

import psutil

from clipreceiver.errors import PidFileError, PidParseError
from clipreceiver.models import AcquireResult
from clipreceiver.utils.process import ProcessLiveness
from clipreceiver.utils.records import (
    OWNER_ONLY,
    create_record_exclusive,
    read_record,
    record_lock,
    remove_record,
)

logger = logging.getLogger(__name__)

MAX_CLAIM_ATTEMPTS = 5


class SingletonCoordinator:
    """Decides, through the PID record, which process owns the receiver role.

    The whole read, staleness check, removal and create sequence runs under
    an advisory lock on a sibling ``.lock`` file, so a starter that finds a
    stale record cannot remove a claim another starter made in the meantime.
    The create itself is still exclusive.
    """

    def __init__(self, liveness: Optional[ProcessLiveness] = None, pid: Optional[int] = None):
        self.liveness = liveness or ProcessLiveness()
        self.pid = pid if pid is not None else os.getpid()

    def acquire_or_detect(self, pid_file: Path) -> AcquireResult:
        with record_lock(pid_file, io_error=PidFileError):
            return self._acquire_locked(pid_file)

    def _acquire_locked(self, pid_file: Path) -> AcquireResult:
        for _ in range(MAX_CLAIM_ATTEMPTS):
            if create_record_exclusive(pid_file, self.pid, OWNER_ONLY, io_error=PidFileError):
                logger.info(f"Claimed {pid_file} for pid {self.pid}")
                return AcquireResult(already_running=False, pid=self.pid)

            stored_pid = read_record(
                pid_file, io_error=PidFileError, parse_error=PidParseError)
            if stored_pid is None:
                # removed outside the lock between create and read
                continue

            if self._owner_alive(stored_pid):
                logger.info(f"Receiver already running with pid {stored_pid}")
                return AcquireResult(already_running=True, pid=stored_pid)

            logger.info(f"Removing stale pid record for {stored_pid}")
            remove_record(pid_file, io_error=PidFileError)

        raise PidFileError(
            f"could not claim {pid_file} after {MAX_CLAIM_ATTEMPTS} attempts")

    def _owner_alive(self, stored_pid: int) -> bool:
        if stored_pid == self.pid:
            return False
        try:
            return self.liveness.is_alive(stored_pid)
        except (psutil.Error, OSError) as e:
            logger.warning(f"Cannot verify pid {stored_pid}, treating record as stale: {e}")
            return False
