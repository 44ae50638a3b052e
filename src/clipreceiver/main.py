#!/usr/bin/env python3

import argparse
import asyncio
import logging
import signal
import sys
from importlib import resources
from pathlib import Path
from typing import List, Optional, TextIO

from pydantic import ValidationError

from clipreceiver import APP_NAME, __version__
from clipreceiver.clipboard import ClipboardSink, get_clipboard_sink
from clipreceiver.config import (
    DEFAULT_ADDRESS,
    DEFAULT_PORT,
    ENV_ADDRESS,
    ENV_MAX_BYTES,
    ENV_PORT,
    ENV_RANDOM_PORT,
    ReceiverSettings,
    default_pid_file,
    default_port_file,
)
from clipreceiver.errors import FatalError, PidFileError
from clipreceiver.models import PortReservation, ServiceInstance
from clipreceiver.network import ConnectionHandler, ConnectionListener
from clipreceiver.services import ClipboardWriter, PortAllocator, SingletonCoordinator
from clipreceiver.utils.records import remove_record

logger = logging.getLogger(__name__)


class ClipReceiverApp:

    def __init__(
        self,
        settings: ReceiverSettings,
        sink: Optional[ClipboardSink] = None,
        coordinator: Optional[SingletonCoordinator] = None,
        out: Optional[TextIO] = None,
    ):
        self.settings = settings
        self.sink = sink
        self.coordinator = coordinator or SingletonCoordinator()
        self.allocator = PortAllocator(settings.address)
        self.out = out or sys.stdout
        self.listener: Optional[ConnectionListener] = None
        self.instance: Optional[ServiceInstance] = None

    def report(self, instance: ServiceInstance, status: str) -> None:
        def mark(field: str) -> str:
            return " (requested)" if field in instance.requested else ""

        print(
            f"{APP_NAME}\n"
            f"  status : {status}\n"
            f"  pid    : {instance.pid}\n"
            f"  address: {instance.address}{mark('address')}\n"
            f"  port   : {instance.port}{mark('port')}",
            file=self.out,
            flush=True,
        )

    def detect_running(self) -> Optional[ServiceInstance]:
        """Claim the PID record, or return the instance that already owns it.

        The owner's address is never recorded, so the report shows the
        requested one. The port comes from the port record when there is one.
        """
        result = self.coordinator.acquire_or_detect(self.settings.pid_file)
        if not result.already_running:
            return None

        requested = ["address"]
        port = self.allocator.read_recorded_port(self.settings.port_file)
        if port is None:
            logger.warning(
                f"No port record for pid {result.pid}, showing requested port {self.settings.port}")
            port = self.settings.port
            requested.append("port")
        return ServiceInstance(
            pid=result.pid, address=self.settings.address, port=port, requested=tuple(requested))

    def run(self) -> int:
        owner = self.detect_running()
        if owner is not None:
            self.report(owner, "already running")
            return 0

        try:
            if self.sink is None:
                self.sink = get_clipboard_sink()
            reservation = self.allocator.resolve(
                self.settings.port, self.settings.random_port, self.settings.port_file)
        except FatalError:
            self._release_pid_record()
            raise

        try:
            asyncio.run(self.serve(reservation))
        except FatalError:
            self._release_pid_record()
            raise
        finally:
            reservation.release()
        return 0

    async def serve(self, reservation: PortReservation) -> None:
        handler = ConnectionHandler(
            ClipboardWriter(self.sink), max_bytes=self.settings.size_limit)
        self.listener = ConnectionListener(handler)

        address = self.settings.address
        port = await self.listener.bind(address, reservation.port, reservation.sock)
        await self.listener.start_accepting()
        self.instance = ServiceInstance(pid=self.coordinator.pid, address=address, port=port)
        self.report(self.instance, "listening")

        await self.listener.serve(address, port)

    def _release_pid_record(self) -> None:
        try:
            remove_record(self.settings.pid_file, io_error=PidFileError)
        except PidFileError as e:
            logger.warning(f"Could not remove pid record: {e}")


def read_license_text() -> str:
    return resources.files("clipreceiver").joinpath("NOTICE.txt").read_text(encoding="utf-8")


def parse_args(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Receive clipboard data from remote machine."
    )

    parser.add_argument(
        "--address",
        type=str,
        default=ENV_ADDRESS,
        help=f"Listen address (default: {DEFAULT_ADDRESS})"
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=ENV_PORT,
        help=f"Listen port (default: {DEFAULT_PORT})"
    )

    parser.add_argument(
        "-r", "--random-port",
        action="store_true",
        default=ENV_RANDOM_PORT,
        help="Ignore --port and listen on a port chosen by the OS"
    )

    parser.add_argument(
        "--pid-file",
        type=Path,
        default=None,
        help="PID record path (default: in the user cache directory)"
    )

    parser.add_argument(
        "--port-file",
        type=Path,
        default=None,
        help="Port record path (default: in the user cache directory)"
    )

    parser.add_argument(
        "--max-bytes",
        type=int,
        default=ENV_MAX_BYTES,
        help="Largest accepted message in bytes, 0 for no limit"
    )

    parser.add_argument(
        "--license",
        action="store_true",
        help="Show license notices and exit"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose debug logging"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser.parse_args(argv)


def run(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.license:
        print(read_license_text())
        return 0

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        settings = ReceiverSettings(
            address=args.address,
            port=args.port,
            random_port=args.random_port,
            pid_file=args.pid_file or default_pid_file(),
            port_file=args.port_file or default_port_file(),
            max_bytes=args.max_bytes,
        )
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    except OSError as e:
        logger.error(f"Cache directory unavailable: {e}")
        return 1

    app = ClipReceiverApp(settings)
    try:
        return app.run()
    except FatalError as e:
        logger.error(f"Fatal error: {e}")
        return 1


def main():
    logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')

    def signal_handler(signum, frame):
        sys.exit(0)

    signal.signal(signal.SIGTERM, signal_handler)

    try:
        sys.exit(run())
    except KeyboardInterrupt:
        print("\nStopping...", file=sys.stderr)
        sys.exit(0)


if __name__ == "__main__":
    main()
