"""
Command line front end for tetrapy.

Runs the PEI driver, prints events and info records, and reads SDS
injection lines and raw AT commands from stdin.
"""

import asyncio
import logging
import sys
from typing import Optional

from .config import load_config
from .exceptions import ConfigError, SdsError, TetraError
from .radio import TetraRadio
from .version import __version__


class TetraCLI:
    """Line oriented front end around a TetraRadio."""

    def __init__(self, config, show_info: bool = True, log_events: bool = False):
        """
        Initialize CLI.

        Args:
            config: Loaded PeiConfig
            show_info: Print info records (Sds:info, QsoInfo:state, ...)
            log_events: Log events at INFO level
        """
        self.config = config
        self.show_info = show_info
        self.log_events = log_events
        self.radio: Optional[TetraRadio] = None
        self.event_count = 0
        self._done: Optional[asyncio.Event] = None

    def _display_event(self, event: str):
        self.event_count += 1
        print(f"[EVENT {self.event_count}] {event}")

    def _display_info(self, name: str, text: str):
        if self.show_info:
            print(f"[INFO] {name} {text}")

    def _on_disconnect(self, error: Exception):
        print(f"\nDevice disconnected: {error}")
        self._done.set()

    def _on_stdin(self):
        line = sys.stdin.readline()
        if not line:
            self._done.set()
            return
        self.handle_line(line.strip())

    def handle_line(self, line: str):
        """
        Handle one line of user input.

        Lines starting with "AT" go to the radio unchanged, everything
        else is an SDS injection line "<tsi>,<T|R>,<payload>".
        """
        if not line:
            return
        if line.lower() in ("quit", "exit", "q"):
            self._done.set()
        elif line.lower() == "help":
            self._print_help()
        elif line.lower() == "users":
            for user in self.radio.users:
                print(f"  {user.tsi} {user.call} {user.name}")
        elif line.lower() == "queue":
            for entry in self.radio.sds_queue.entries:
                print(f"  {entry.id} {entry.tsi} {entry.kind.name} tries={entry.tries}")
        elif line.upper().startswith("AT"):
            self.radio.send_command(line)
        else:
            try:
                count = self.radio.sds.inject(line)
                print(f"Queued ({count} in queue)")
            except SdsError as e:
                print(f"Error: {e}")

    def _print_help(self):
        print("""
Available commands:
  <tsi>,T,<text>   - Queue a text SDS
  <tsi>,R,<hex>    - Queue a raw SDS payload
  AT...            - Send a raw command to the radio
  users            - List known users
  queue            - Show the SDS queue
  help             - Show this help message
  quit/exit/q      - Exit
        """)

    async def _run(self) -> int:
        loop = asyncio.get_running_loop()
        self._done = asyncio.Event()

        self.radio = TetraRadio(
            self.config,
            loop=loop,
            on_disconnect=self._on_disconnect,
            log_events=self.log_events
        )
        self.radio.register_event_callback("", self._display_event)
        self.radio.register_info_callback(self._display_info)

        await self.radio.open()
        self.radio.start()
        print("Connected. Type 'help' for commands, 'quit' to exit\n")

        loop.add_reader(sys.stdin, self._on_stdin)
        try:
            await self._done.wait()
        finally:
            loop.remove_reader(sys.stdin)
            print("\nClosing connection...")
            self.radio.close()
        return 0

    def run(self) -> int:
        """Run until stdin closes, the user quits or the device goes away."""
        print(f"tetrapy v{__version__}")
        print(f"Connecting to {self.config.port} at {self.config.baudrate} baud...")

        try:
            return asyncio.run(self._run())
        except KeyboardInterrupt:
            return 0
        except TetraError as e:
            print(f"\nError: {e}")
            return 1
        except Exception as e:
            print(f"\nUnexpected error: {e}")
            logging.exception("CLI error")
            return 1
        finally:
            print("Goodbye!")


def main(argv=None):
    """Main entry point for CLI."""
    import argparse

    parser = argparse.ArgumentParser(
        description="tetrapy - TETRA PEI driver",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tetra-pei tetra.json
  tetra-pei tetra.json --port /dev/ttyUSB1
  tetra-pei tetra.json -v --log-events
        """
    )

    parser.add_argument(
        "config",
        help="JSON configuration file"
    )
    parser.add_argument(
        "-p", "--port",
        help="Serial port, overrides the configuration"
    )
    parser.add_argument(
        "-b", "--baudrate",
        type=int,
        help="Baud rate, overrides the configuration"
    )
    parser.add_argument(
        "--no-info",
        action="store_true",
        help="Do not print info records"
    )
    parser.add_argument(
        "--log-events",
        action="store_true",
        help="Log events at INFO level"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args(argv)

    # Setup logging
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    else:
        logging.basicConfig(
            level=logging.WARNING,
            format='%(levelname)s: %(message)s'
        )

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    if args.port:
        config.port = args.port
    if args.baudrate:
        config.baudrate = args.baudrate

    cli = TetraCLI(config, show_info=not args.no_info, log_events=args.log_events)
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
