import logging
from enum import Enum
from typing import Callable

from tox_client.constants import Constants
from tox_client.errors import BootstrapError
from tox_client.interfaces import INetworkCore, IDisplay

logger = logging.getLogger("__main__")


class ConnectionState(Enum):
    DISCONNECTED_IDLE = "disconnected"
    DISCONNECTED_ATTEMPTING = "connecting"
    CONNECTED = "connected"


class ConnectionMonitor:
    """
    Polled once per main loop tick. Tracks whether the core is connected, reports
    transitions on the display, and kicks off a bootstrap attempt every
    Constants.CONNECT_INTERVAL_TICKS ticks while disconnected.

    Once an attempt has failed, no further attempts are made; the core is left to
    connect through bootstrap requests it has already sent.
    """

    def __init__(self,
                 core: INetworkCore,
                 display: IDisplay,
                 connect: Callable[[], object],
                 interval_ticks: int = Constants.CONNECT_INTERVAL_TICKS):
        if interval_ticks <= 0:
            raise ValueError("interval_ticks must be > 0")
        self.core = core
        self.display = display
        self.connect = connect
        self.interval_ticks = interval_ticks

        self.ticks: int = 0
        self.last_error: int = 0
        self.__state: ConnectionState = ConnectionState.DISCONNECTED_IDLE

    @property
    def state(self) -> ConnectionState:
        return self.__state

    def __notify(self, text: str) -> None:
        logger.info(text)
        self.display.write(text)

    def poll(self) -> ConnectionState:
        self.ticks += 1
        connected = self.core.is_connected()

        if self.__state == ConnectionState.CONNECTED:
            if not connected:
                self.__state = ConnectionState.DISCONNECTED_IDLE
                self.__notify("DHT disconnected. Attempting to reconnect.")

        elif connected:
            self.__state = ConnectionState.CONNECTED
            self.__notify("DHT connected.")

        elif self.ticks % self.interval_ticks == 0 and not self.last_error:
            self.__attempt()

        return self.__state

    def __attempt(self) -> None:
        self.__notify("Establishing connection...")
        try:
            outcome = self.connect()
        except BootstrapError as error:
            logger.error(str(error))
            self.last_error = error.code
            self.__state = ConnectionState.DISCONNECTED_IDLE
            self.__notify(f"Auto-connect failed with error code {error.code}")
            return

        logger.debug(f"Bootstrap attempt finished: {outcome}")
        self.last_error = 0
        self.__state = ConnectionState.DISCONNECTED_ATTEMPTING
