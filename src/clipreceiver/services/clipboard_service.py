import asyncio
import logging
from typing import Optional

from clipreceiver.clipboard import ClipboardSink

logger = logging.getLogger(__name__)


class ClipboardWriter:
    """Single point through which every received message reaches the sink.

    At most one sink write is in flight. Waiting deliveries are admitted in
    the order they arrived, so the clipboard ends up holding the message whose
    connection closed last.
    """

    def __init__(self, sink: ClipboardSink):
        self.sink = sink
        self._lock: Optional[asyncio.Lock] = None

    async def write(self, payload: bytes, tag: str = "") -> bool:
        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            loop = asyncio.get_running_loop()
            try:
                ok = await loop.run_in_executor(None, self.sink.write, payload)
            except Exception as e:
                logger.error(f"[{tag}] Clipboard sink raised: {e}")
                return False

        if ok:
            logger.info(f"[{tag}] Clipboard updated ({len(payload)} bytes)")
        else:
            logger.error(f"[{tag}] Clipboard write failed ({len(payload)} bytes)")
        return bool(ok)
