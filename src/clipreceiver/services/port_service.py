import logging
import socket
from pathlib import Path
from typing import Optional

from clipreceiver.errors import BindError
from clipreceiver.models import PortReservation
from clipreceiver.utils.records import WORLD_READABLE, read_record, remove_record, write_record

logger = logging.getLogger(__name__)


class PortAllocator:

    def __init__(self, address: str = "0.0.0.0"):
        self.address = address

    def resolve(self, explicit_port: int, use_random: bool, port_file: Path) -> PortReservation:
        """Pick the port to serve on.

        An OS-assigned port comes back with its listening socket still open so
        the listener can serve on it directly; nothing else can grab the port
        between allocation and serving.
        """
        if not use_random:
            remove_record(port_file)
            return PortReservation(port=explicit_port)

        sock = self._bind_ephemeral()
        port = sock.getsockname()[1]
        try:
            write_record(port_file, port, WORLD_READABLE)
        except Exception:
            sock.close()
            raise
        logger.info(f"Allocated random port {port}")
        return PortReservation(port=port, sock=sock)

    def _bind_ephemeral(self) -> socket.socket:
        try:
            infos = socket.getaddrinfo(
                self.address or None, 0, type=socket.SOCK_STREAM, flags=socket.AI_PASSIVE)
        except socket.gaierror as e:
            raise BindError(f"invalid address {self.address!r}: {e}") from e

        family, socktype, proto, _, sockaddr = infos[0]
        sock = socket.socket(family, socktype, proto)
        try:
            sock.bind(sockaddr)
            sock.listen(socket.SOMAXCONN)
        except OSError as e:
            sock.close()
            raise BindError(f"cannot bind {self.address}:0: {e}") from e
        sock.setblocking(False)
        return sock

    @staticmethod
    def read_recorded_port(port_file: Path) -> Optional[int]:
        return read_record(port_file)
