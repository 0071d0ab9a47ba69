import json

from tox_client.constants import Constants
from tox_client.errors import DataDecodingError
from tox_client.interfaces import INetworkCore, IDisplay


class VirtualNetworkCore(INetworkCore):
    """
    For unit testing, an in-memory core with no networking. It connects
    when told to, records bootstrap calls and restored friend indices, and
    serializes its friends as JSON.
    """

    def __init__(self, connected: bool = False, friends: list[str] | None = None):
        self.connected = connected
        self.friends: list[str] = list(friends or [])
        self.bootstrap_calls: list[tuple[str, int, bytes]] = []
        self.restored: list[int] = []
        self.ticks = 0
        self.cleaned_up = False

    def is_connected(self) -> bool:
        return self.connected

    def bootstrap(self, address: str, port: int, public_key: bytes) -> None:
        self.bootstrap_calls.append((address, port, public_key))

    def __encode(self) -> bytes:
        return json.dumps({"friends": self.friends}).encode(Constants.ENCODING)

    def serialized_length(self) -> int:
        return len(self.__encode())

    def serialize(self, buffer: bytearray) -> None:
        buffer[:] = self.__encode()

    def deserialize(self, buffer: bytes) -> None:
        try:
            self.friends = list(json.loads(bytes(buffer).decode(Constants.ENCODING))["friends"])
        except (ValueError, KeyError, TypeError) as error:
            raise DataDecodingError("Invalid virtual session.") from error
        self.restored = []

    def per_tick_update(self) -> None:
        self.ticks += 1

    @property
    def friend_count(self) -> int:
        return len(self.friends)

    def on_friend_restored(self, index: int) -> None:
        self.restored.append(index)

    def cleanup(self) -> None:
        self.cleaned_up = True


class ListDisplay(IDisplay):
    """Collects status lines in a list."""

    def __init__(self):
        self.lines: list[str] = []
        self.closed = False

    def write(self, text: str) -> None:
        self.lines.append(text)

    def close(self) -> None:
        self.closed = True
