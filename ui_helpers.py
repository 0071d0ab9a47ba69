import argparse
import logging
import os
import select
import sys
import threading
import time
from argparse import Namespace
from sys import stdout

from tox_client.constants import Constants
from tox_client.interfaces import IDisplay
from tox_client.messenger import Messenger


def handle_terminal(argv: list[str] | None = None) -> Namespace:
    parser = argparse.ArgumentParser(description="Terminal Tox client.")
    parser.add_argument("-f", dest="data_file", nargs="?", const="", default=None,
                        help="Session file to load from and save to.")
    parser.add_argument("-n", dest="load_from_file", action="store_false",
                        help="Don't load or save the session.")
    parser.add_argument("-s", "--servers", required=False, default=None,
                        help="Bootstrap server list to connect with.")
    parser.add_argument("-p", "--port", type=int, required=False, default=None,
                        help="Port to listen for other clients on.")
    parser.add_argument("-v", "--verbose", action="store_true", required=False, default=False,
                        help="If logs should be verbose.")

    args = parser.parse_args(argv)

    # "-f" without a path: warn later, fall back to the default session file.
    args.missing_file_argument = args.data_file == ""
    if args.missing_file_argument:
        args.data_file = None
    return args


def create_logger(verbose: bool) -> logging.Logger:
    logger = logging.getLogger("__main__")

    # clear the log file
    with open(Constants.LOG_FILE, "w"):
        pass

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(filename=Constants.LOG_FILE, level=level,
                        format="%(asctime)s [%(levelname)s] %(message)s")
    logger.setLevel(level)

    # The terminal belongs to the status display, only echo logs there when asked to.
    if verbose:
        handler = logging.StreamHandler(stdout)
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', datefmt="%H:%M:%S")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


class TerminalDisplay(IDisplay):
    def __init__(self, stream=stdout):
        self.stream = stream

    def write(self, text: str) -> None:
        self.stream.write(f"\n{text}\n")
        self.stream.flush()

    def close(self) -> None:
        self.stream.flush()


def handle_command(line: str, messenger: Messenger, display: IDisplay, stop_event: threading.Event) -> None:
    """
    Handles one typed line: "/quit", or "/add <public key hex> [name]".
    """
    words = line.split()
    if not words:
        return

    if words[0] == "/quit":
        stop_event.set()
    elif words[0] == "/add" and len(words) >= 2:
        try:
            index = messenger.add_friend(bytes.fromhex(words[1]), name=" ".join(words[2:]))
        except ValueError as e:
            display.write(f"Could not add friend: {e}")
        else:
            display.write(f"Friend added as {index}.")
    else:
        display.write(f"Unknown command: {words[0]}")


def make_redraw(messenger: Messenger, display: IDisplay, stop_event: threading.Event,
                timeout: float = Constants.TICK_TIMEOUT_SEC):
    """
    Returns the per-tick redraw hook: waits up to timeout for a typed line, then handles it.
    """
    can_select = os.name != "nt" and sys.stdin is not None and sys.stdin.isatty()

    def redraw() -> None:
        if not can_select:
            time.sleep(timeout)
            return

        readable, _, _ = select.select([sys.stdin], [], [], timeout)
        if readable:
            line = sys.stdin.readline()
            if not line:  # EOF
                stop_event.set()
                return
            handle_command(line, messenger, display, stop_event)

    return redraw
