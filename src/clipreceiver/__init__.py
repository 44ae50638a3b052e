"""clipboard-data-receiver: receive clipboard data from a remote machine."""

__version__ = "1.0.0"
APP_NAME = "clipboard-data-receiver"
