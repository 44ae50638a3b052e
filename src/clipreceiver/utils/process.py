import logging

import psutil

logger = logging.getLogger(__name__)


class ProcessLiveness:
    """Process-table lookup used to decide whether a PID record is stale."""

    def is_alive(self, pid: int) -> bool:
        """Report whether ``pid`` names a running, non-zombie process.

        Raises ``psutil.Error`` (e.g. ``AccessDenied``) when the process
        exists but cannot be inspected.
        """
        if pid <= 0:
            return False
        try:
            proc = psutil.Process(pid)
        except psutil.NoSuchProcess:
            return False

        if not proc.is_running():
            return False
        try:
            return proc.status() != psutil.STATUS_ZOMBIE
        except psutil.NoSuchProcess:
            return False
