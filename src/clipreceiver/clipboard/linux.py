import logging
import os
import shutil
import subprocess
from typing import Any, Dict, List, Optional

from clipreceiver.clipboard.base import ClipboardSink, as_text

logger = logging.getLogger(__name__)


class LinuxClipboard(ClipboardSink):

    @classmethod
    def is_available(cls) -> bool:
        return cls._backend() is not None

    @staticmethod
    def _backend() -> Optional[str]:
        if os.environ.get("WAYLAND_DISPLAY") and shutil.which("wl-copy"):
            return "wl-copy"
        if shutil.which("xclip"):
            return "xclip"
        if shutil.which("xsel"):
            return "xsel"
        return None

    def _set_clipboard(self, payload: bytes, metadata: Dict[str, Any]) -> bool:
        backend = self._backend()
        if backend is None:
            logger.error("No clipboard tool found (wl-copy, xclip or xsel)")
            return False

        clip_type = metadata.get("type", "text")
        mime = metadata.get("mime")

        if clip_type == "image" and backend == "xsel":
            logger.warning("xsel cannot hold images, storing payload as text")
            clip_type = "text"

        if clip_type == "image":
            if backend == "wl-copy":
                command = ["wl-copy", "--type", mime]
            else:
                command = ["xclip", "-selection", "clipboard", "-t", mime]
            return self._run_command(command, payload)

        data = as_text(payload).encode("utf-8")
        if backend == "wl-copy":
            command = ["wl-copy"]
        elif backend == "xclip":
            command = ["xclip", "-selection", "clipboard"]
        else:
            command = ["xsel", "--clipboard", "--input"]
        return self._run_command(command, data)

    def _run_command(self, command: List[str], data: bytes) -> bool:
        try:
            subprocess.run(
                command,
                input=data,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=True,
                timeout=5.0,
            )
            return True
        except subprocess.CalledProcessError as e:
            logger.error(f"{command[0]} exited with {e.returncode}")
            return False
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            logger.error(f"{command[0]} failed: {e}")
            return False
