import socket
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class ServiceInstance:
    """The running (or about to bind) receiver as shown in the startup report."""
    pid: int
    address: str
    port: int
    # fields taken from this invocation's settings rather than the owner
    requested: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AcquireResult:
    already_running: bool
    pid: int


@dataclass
class PortReservation:
    port: int
    sock: Optional[socket.socket] = None

    def release(self) -> None:
        if self.sock is not None:
            self.sock.close()
            self.sock = None
