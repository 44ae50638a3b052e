import platform
from typing import Type

from clipreceiver.clipboard.base import ClipboardSink
from clipreceiver.errors import ClipboardUnavailableError


def get_clipboard_class() -> Type[ClipboardSink]:
    system = platform.system()

    if system == "Windows":
        from clipreceiver.clipboard.windows import WindowsClipboard
        return WindowsClipboard
    elif system == "Linux":
        from clipreceiver.clipboard.linux import LinuxClipboard
        return LinuxClipboard
    elif system == "Darwin":
        from clipreceiver.clipboard.macos import MacOSClipboard
        return MacOSClipboard
    else:
        raise ClipboardUnavailableError(f"Platform '{system}' is not supported")


def get_clipboard_sink() -> ClipboardSink:
    try:
        clipboard_class = get_clipboard_class()
    except ImportError as e:
        raise ClipboardUnavailableError(f"clipboard backend cannot be loaded: {e}") from e

    if not clipboard_class.is_available():
        raise ClipboardUnavailableError(
            f"{clipboard_class.__name__} has no usable clipboard backend")
    return clipboard_class()
