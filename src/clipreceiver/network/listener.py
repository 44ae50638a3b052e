import asyncio
import enum
import logging
import socket
from typing import Awaitable, Callable, Optional

from clipreceiver.errors import BindError

logger = logging.getLogger(__name__)

ConnectionCallback = Callable[[asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]]


class ListenerState(enum.Enum):
    UNBOUND = "unbound"
    BOUND = "bound"
    ACCEPTING = "accepting"


class ConnectionListener:
    """TCP accept loop.

    ``asyncio.start_server`` runs every accepted connection as its own task,
    so the loop never waits on a handler and puts no cap on how many run.
    """

    def __init__(self, on_connection: ConnectionCallback):
        self.on_connection = on_connection
        self.state = ListenerState.UNBOUND
        self.server: Optional[asyncio.Server] = None

    async def bind(self, address: str, port: int, sock: Optional[socket.socket] = None) -> int:
        try:
            if sock is not None:
                self.server = await asyncio.start_server(
                    self.on_connection, sock=sock, start_serving=False)
            else:
                self.server = await asyncio.start_server(
                    self.on_connection, address, port, start_serving=False)
        except OSError as e:
            raise BindError(f"cannot listen on {address}:{port}: {e}") from e

        self.state = ListenerState.BOUND
        logger.info(f"Bound to {address}:{self.bound_port}")
        return self.bound_port

    @property
    def bound_port(self) -> Optional[int]:
        if self.server is None or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()[1]

    async def start_accepting(self) -> None:
        try:
            await self.server.start_serving()
        except OSError as e:
            raise BindError(f"cannot listen on port {self.bound_port}: {e}") from e
        self.state = ListenerState.ACCEPTING
        logger.info(f"Accepting connections on port {self.bound_port}")

    async def serve(self, address: str, port: int, sock: Optional[socket.socket] = None) -> None:
        if self.server is None:
            await self.bind(address, port, sock)
        await self.start_accepting()

        async with self.server:
            await self.server.serve_forever()

    async def close(self) -> None:
        if self.server is not None:
            self.server.close()
            await self.server.wait_closed()
            self.server = None
        self.state = ListenerState.UNBOUND
