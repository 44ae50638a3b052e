"""Service layer for clipboard-data-receiver."""

from .clipboard_service import ClipboardWriter
from .port_service import PortAllocator
from .singleton_service import SingletonCoordinator

__all__ = ["ClipboardWriter", "PortAllocator", "SingletonCoordinator"]
