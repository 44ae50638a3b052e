from clipreceiver.clipboard.base import ClipboardSink
from clipreceiver.clipboard.factory import get_clipboard_class, get_clipboard_sink

__all__ = [
    'ClipboardSink',
    'get_clipboard_class',
    'get_clipboard_sink',
]
