"""
Network package.

TCP listener and per-connection handler for incoming clipboard data.
"""

from clipreceiver.network.handler import ConnectionHandler
from clipreceiver.network.listener import ConnectionListener, ListenerState

__all__ = [
    'ConnectionHandler',
    'ConnectionListener',
    'ListenerState',
]
