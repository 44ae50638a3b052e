import io
import logging
import time
from typing import Any, Dict

import win32clipboard as wc
import win32con
from PIL import Image

from clipreceiver.clipboard.base import ClipboardSink, as_text

logger = logging.getLogger(__name__)


class WindowsClipboard(ClipboardSink):

    @classmethod
    def is_available(cls) -> bool:
        return True

    def _set_clipboard(self, payload: bytes, metadata: Dict[str, Any]) -> bool:
        opened = False
        for _ in range(3):
            try:
                wc.OpenClipboard()
                opened = True
                break
            except Exception:
                time.sleep(0.05)

        if not opened:
            logger.error("Could not open the Windows clipboard")
            return False

        try:
            wc.EmptyClipboard()

            if metadata.get("type") == "image":
                dib_data = self._to_dib(payload)
                if dib_data is not None:
                    wc.SetClipboardData(win32con.CF_DIB, dib_data)
                    return True
                logger.warning("Undecodable image payload, storing as text")

            wc.SetClipboardData(wc.CF_UNICODETEXT, as_text(payload))
            return True
        finally:
            try:
                wc.CloseClipboard()
            except Exception as e:
                logger.debug(f"CloseClipboard failed: {e}")

    @staticmethod
    def _to_dib(payload: bytes):
        try:
            image = Image.open(io.BytesIO(payload))
            if image.mode == "RGBA":
                background = Image.new("RGB", image.size, (255, 255, 255))
                background.paste(image, mask=image.split()[3])
                image = background
            elif image.mode != "RGB":
                image = image.convert("RGB")

            output = io.BytesIO()
            image.save(output, "BMP")
            bmp_data = output.getvalue()
        except Exception as e:
            logger.debug(f"Image conversion failed: {e}")
            return None

        # strip the 14 byte BMP file header
        if len(bmp_data) <= 14:
            return None
        return bmp_data[14:]
