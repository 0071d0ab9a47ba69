import logging
import threading
from functools import partial
from typing import Callable

from tox_client.bootstrap import init_connection
from tox_client.config import ClientConfig
from tox_client.errors import SessionSaveError
from tox_client.interfaces import INetworkCore, IDisplay
from tox_client.monitor import ConnectionMonitor
from tox_client.session import SessionStore

logger = logging.getLogger("__main__")


class Client:
    """
    Ties the session store, connection monitor and network core together
    into one run loop.
    """

    def __init__(self,
                 config: ClientConfig,
                 core: INetworkCore,
                 display: IDisplay,
                 monitor: ConnectionMonitor | None = None):
        self.config = config
        self.core = core
        self.display = display
        self.session = SessionStore(core, config)
        self.monitor = monitor or ConnectionMonitor(
            core, display, connect=partial(init_connection, core, config.server_list)
        )

    def warn(self, text: str) -> None:
        logger.warning(text)
        self.display.write(text)

    def start(self) -> None:
        """
        Restores the session, then shows any configuration warnings.
        :raises FatalPersistenceError: see SessionStore.load
        """
        if self.config.load_from_file:
            self.session.load()

        if self.config.missing_file_argument:
            self.warn("You passed '-f' without giving an argument.\n"
                      "defaulting to 'data' for a keyfile...")

        if self.config.config_unresolved:
            self.warn("Unable to determine configuration directory.\n"
                      "defaulting to 'data' for a keyfile...")

    def tick(self) -> None:
        self.monitor.poll()
        self.core.per_tick_update()

    def run(self,
            redraw: Callable[[], None],
            stop_event: threading.Event | None = None,
            max_ticks: int | None = None) -> int:
        """
        Runs the main loop, ticking then redrawing, until stop_event is set or
        max_ticks ticks have run. With neither, runs until the process is killed.
        :return: Number of ticks run.
        """
        ticks = 0
        logger.info("Entering main loop.")
        while not (stop_event and stop_event.is_set()):
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.tick()
            redraw()
            ticks += 1
        logger.info(f"Main loop stopped after {ticks} ticks.")
        return ticks

    def shutdown(self, save: bool = True) -> None:
        """
        Saves the session (reporting, not raising, failures) and tears the core down.
        """
        if save:
            try:
                self.session.save()
            except SessionSaveError as error:
                logger.error(str(error))
                self.display.write(str(error))
        self.core.cleanup()
