import asyncio
import logging
from typing import Optional

from ulid import ULID

from clipreceiver.config import RECEIVE_BUFFER_SIZE
from clipreceiver.errors import ConnectionReadError, MessageTooLargeError, RecoverableError
from clipreceiver.services.clipboard_service import ClipboardWriter

logger = logging.getLogger(__name__)


class ConnectionHandler:
    """Reads one connection to EOF and hands the bytes to the clipboard once.

    Nothing is delivered until the peer closes its sending side. A read
    error or an oversized message drops everything received so far.
    """

    def __init__(
        self,
        clipboard: ClipboardWriter,
        max_bytes: Optional[int] = None,
        chunk_size: int = RECEIVE_BUFFER_SIZE,
    ):
        self.clipboard = clipboard
        self.max_bytes = max_bytes
        self.chunk_size = chunk_size

    async def __call__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        conn_id = str(ULID())
        peer = writer.get_extra_info("peername")
        logger.debug(f"[{conn_id}] Connection from {peer}")

        try:
            payload = await self.read_message(reader)
        except RecoverableError as e:
            logger.warning(f"[{conn_id}] Dropped data from {peer}: {e}")
            return
        finally:
            await self._close(writer, conn_id)

        logger.debug(f"[{conn_id}] Received {len(payload)} bytes from {peer}")
        await self.clipboard.write(payload, tag=conn_id)

    async def read_message(self, reader: asyncio.StreamReader) -> bytes:
        received = bytearray()
        while True:
            try:
                chunk = await reader.read(self.chunk_size)
            except OSError as e:
                raise ConnectionReadError(str(e) or e.__class__.__name__) from e

            if not chunk:
                break

            received.extend(chunk)
            if self.max_bytes and len(received) > self.max_bytes:
                raise MessageTooLargeError(self.max_bytes)

        return bytes(received)

    @staticmethod
    async def _close(writer: asyncio.StreamWriter, conn_id: str) -> None:
        writer.close()
        try:
            await writer.wait_closed()
        except OSError as e:
            logger.debug(f"[{conn_id}] Error while closing: {e}")
