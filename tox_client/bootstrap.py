import logging
import random
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from tox_client.constants import Constants
from tox_client.errors import CannotOpenListError, EmptyListError, MalformedEntryError
from tox_client.interfaces import INetworkCore

logger = logging.getLogger("__main__")


class BootstrapOutcome(Enum):
    ALREADY_CONNECTED = "already connected"
    BOOTSTRAPPED = "bootstrapped"
    UNRESOLVED = "unresolved"


@dataclass
class BootstrapEntry:
    address: str
    port: int
    public_key: bytes

    @classmethod
    def parse(cls, line: str) -> "BootstrapEntry":
        """
        Parses "address port public_key_hex" into an entry.
        Raises MalformedEntryError if any of the three fields is missing or invalid.
        """
        fields = line.split()
        if len(fields) < 3:
            raise MalformedEntryError(f"Expected 3 fields, found {len(fields)}.")

        address, port, key = fields[:3]

        if not port.isdigit() or not 0 <= int(port) <= 65535:
            raise MalformedEntryError(f"Invalid port \"{port}\".")

        try:
            public_key = bytes.fromhex(key)
        except ValueError as error:
            raise MalformedEntryError("Public key is not valid hex.") from error

        if len(public_key) != Constants.PUBLIC_KEY_LENGTH_BYTES:
            raise MalformedEntryError(
                f"Public key should be {Constants.PUBLIC_KEY_LENGTH_BYTES} bytes, found {len(public_key)}."
            )

        return cls(address=address, port=int(port), public_key=public_key)


def read_server_list(path: str) -> list[str]:
    """
    Reads candidate server lines from the list at path.

    Lines shorter than Constants.MIN_LINE_LENGTH or longer than Constants.MAX_LINE_LENGTH
    (newline excluded) are skipped, and reading stops after Constants.MAX_SERVERS lines
    have been accepted.

    :param path: Path to the server list.
    :return: Accepted lines, in file order.
    """
    servers: list[str] = []
    try:
        with open(path, "r", encoding=Constants.ENCODING, errors="replace") as f:
            for line in f:
                if len(servers) >= Constants.MAX_SERVERS:
                    break

                line = line.rstrip("\r\n")
                if len(line) < Constants.MIN_LINE_LENGTH:
                    continue
                if len(line) > Constants.MAX_LINE_LENGTH:
                    logger.debug(f"Skipping oversized server line ({len(line)} characters).")
                    continue
                servers.append(line)
    except OSError as error:
        raise CannotOpenListError(f"Could not open server list {path}.") from error

    logger.debug(f"Read {len(servers)} candidate servers from {path}.")
    return servers


def init_connection(core: INetworkCore,
                    server_list_path: str,
                    rng: random.Random | None = None,
                    resolver: Callable[[str], str] = socket.gethostbyname) -> BootstrapOutcome:
    """
    Bootstraps the core from a random server in the list, unless it's already connected.

    An address that doesn't resolve isn't an error, DNS seed entries fail often enough
    that it's reported as BootstrapOutcome.UNRESOLVED and the next attempt picks again.

    :param core: Network core to bootstrap.
    :param server_list_path: Path to the server list.
    :param rng: Random source for picking the server.
    :param resolver: Maps an address to an IP string, raising OSError on failure.
    :return: What happened.
    """
    if core.is_connected():
        return BootstrapOutcome.ALREADY_CONNECTED

    servers = read_server_list(server_list_path)
    if not servers:
        raise EmptyListError(f"No usable servers in {server_list_path}.")

    rng = rng or random
    server: str = rng.choice(servers)
    entry = BootstrapEntry.parse(server)

    try:
        ip = resolver(entry.address)
    except (OSError, UnicodeError):
        logger.warning(f"Could not resolve bootstrap address {entry.address}.")
        return BootstrapOutcome.UNRESOLVED

    logger.info(f"Bootstrapping from {ip}:{entry.port}.")
    core.bootstrap(ip, entry.port, entry.public_key)
    return BootstrapOutcome.BOOTSTRAPPED
