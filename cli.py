import logging
import sys
import threading

import ui_helpers
from tox_client.client import Client
from tox_client.config import resolve_config
from tox_client.errors import FatalPersistenceError
from tox_client.messenger import Messenger

logger = logging.getLogger("__main__")


def init_messenger(display: ui_helpers.TerminalDisplay) -> Messenger:
    messenger = Messenger(name="Cool guy")

    def on_friend_added(m: Messenger, index: int) -> None:
        friend = m.friends[index]
        display.write(f"Friend {index}: {friend.name or friend.public_key.hex()}")

    messenger.callback_friend_added(on_friend_added)
    return messenger


def main(argv: list[str] | None = None, stop_event: threading.Event | None = None) -> int:
    args = ui_helpers.handle_terminal(argv)
    ui_helpers.create_logger(args.verbose)
    config = resolve_config(args)

    display = ui_helpers.TerminalDisplay()
    messenger = init_messenger(display)

    client = Client(config, messenger, display)
    try:
        client.start()
    except FatalPersistenceError as error:
        logger.critical(f"Could not load session: {error}")
        messenger.cleanup()
        display.close()
        print(f"Could not load session: {error}", file=sys.stderr)
        return 1

    # The restored session may have replaced our identity, so serve it only now.
    if config.port is not None:
        messenger.start_server(port=config.port)

    display.write(f"Your public key: {messenger.public_key.hex().upper()}")

    stop_event = stop_event or threading.Event()
    redraw = ui_helpers.make_redraw(messenger, display, stop_event)
    try:
        client.run(redraw, stop_event=stop_event)
    except KeyboardInterrupt:
        stop_event.set()

    client.shutdown(save=True)
    display.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
