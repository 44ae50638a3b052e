import logging
import shutil
import subprocess
from typing import Any, Dict

try:
    from AppKit import NSPasteboard, NSPasteboardTypePNG, NSPasteboardTypeString
    from Foundation import NSData
    HAS_APPKIT = True
except ImportError:
    HAS_APPKIT = False

from clipreceiver.clipboard.base import ClipboardSink, as_text

logger = logging.getLogger(__name__)

# NSPasteboard has no JPEG type constant
NSPasteboardTypeJPEG = "public.jpeg"


class MacOSClipboard(ClipboardSink):

    @classmethod
    def is_available(cls) -> bool:
        return HAS_APPKIT or shutil.which("pbcopy") is not None

    def _set_clipboard(self, payload: bytes, metadata: Dict[str, Any]) -> bool:
        if not HAS_APPKIT:
            return self._pbcopy(payload)

        pasteboard = NSPasteboard.generalPasteboard()
        pasteboard.clearContents()

        if metadata.get("type") == "image":
            ns_data = NSData.dataWithBytes_length_(payload, len(payload))
            if "png" in metadata.get("mime", ""):
                return bool(pasteboard.setData_forType_(ns_data, NSPasteboardTypePNG))
            return bool(pasteboard.setData_forType_(ns_data, NSPasteboardTypeJPEG))

        return bool(pasteboard.setString_forType_(as_text(payload), NSPasteboardTypeString))

    def _pbcopy(self, payload: bytes) -> bool:
        try:
            subprocess.run(
                ["pbcopy"],
                input=as_text(payload).encode("utf-8"),
                check=True,
                timeout=5.0,
            )
            return True
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.error(f"pbcopy failed: {e}")
            return False
