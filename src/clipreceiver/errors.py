"""Error hierarchy.

Fatal errors mean a startup precondition is broken; they are raised up to
``main()`` which turns them into a non-zero exit. Recoverable errors belong to
a single connection and are logged by the handler that hit them.
"""


class ReceiverError(Exception):
    pass


class FatalError(ReceiverError):
    pass


class RecoverableError(ReceiverError):
    pass


class RecordFileError(FatalError):
    """A record file could not be read, written or removed."""


class RecordParseError(FatalError):
    """A record file does not hold a decimal integer."""


class PidFileError(RecordFileError):
    pass


class PidParseError(RecordParseError):
    pass


class BindError(FatalError):
    pass


class ClipboardUnavailableError(FatalError):
    pass


class ConnectionReadError(RecoverableError):
    pass


class MessageTooLargeError(RecoverableError):

    def __init__(self, limit: int):
        super().__init__(f"message exceeds {limit} bytes")
        self.limit = limit


class ClipboardWriteError(RecoverableError):
    pass
