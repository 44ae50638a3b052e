import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"


def sniff_metadata(payload: bytes) -> Dict[str, Any]:
    if payload.startswith(PNG_SIGNATURE):
        return {"type": "image", "mime": "image/png", "file_size": len(payload)}
    if payload.startswith(JPEG_SIGNATURE):
        return {"type": "image", "mime": "image/jpeg", "file_size": len(payload)}
    return {"type": "text", "length": len(payload)}


def as_text(payload: bytes) -> str:
    return payload.decode("utf-8", errors="replace")


class ClipboardSink(ABC):
    """Write-only access to the system clipboard."""

    @classmethod
    @abstractmethod
    def is_available(cls) -> bool:
        pass

    @abstractmethod
    def _set_clipboard(self, payload: bytes, metadata: Dict[str, Any]) -> bool:
        pass

    def write(self, payload: bytes) -> bool:
        metadata = sniff_metadata(payload)
        try:
            return self._set_clipboard(payload, metadata)
        except Exception as e:
            logger.error(f"Clipboard write failed ({metadata['type']}): {e}")
            return False
