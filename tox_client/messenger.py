import logging
import queue
import threading
from datetime import datetime
from typing import Callable

import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from tox_client import pickler
from tox_client.constants import Constants
from tox_client.contact import Contact, Friend
from tox_client.errors import DataDecodingError
from tox_client.interfaces import INetworkCore
from tox_client.networking import PingServer

logger = logging.getLogger("__main__")


def _raw_private_bytes(key: X25519PrivateKey) -> bytes:
    return key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption()
    )


def _raw_public_bytes(key: X25519PrivateKey) -> bytes:
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw
    )


class Messenger(INetworkCore):
    """
    A small network core: an X25519 identity, a profile and friends list, and a
    set of DHT contacts kept alive by HTTP pings.

    Contacts can be added from the server thread (see start_server), so every
    access to them holds self._lock.
    """

    def __init__(self, name: str = ""):
        self.__secret_key: X25519PrivateKey = X25519PrivateKey.generate()
        self.name = name
        self.status_message = ""
        self.friends: list[Friend] = []

        self._lock = threading.Lock()
        self._contacts: list[Contact] = []
        self.__snapshot: bytes | None = None
        self.__friend_added_callbacks: list[Callable[["Messenger", int], None]] = []

        self.port: int | None = None
        # Peers are reached directly, never through proxies from the environment.
        self.__http = requests.Session()
        self.__http.trust_env = False
        self.__server: PingServer | None = None
        self.__server_thread: threading.Thread | None = None

        # Pings run on a pool of worker threads, so a tick never waits on the network.
        self.__ping_queue: queue.Queue[Contact | None] = queue.Queue()
        self.__ping_threads: list[threading.Thread] = []
        self.__pending: set[Contact] = set()

    @property
    def public_key(self) -> bytes:
        return _raw_public_bytes(self.__secret_key)

    @property
    def contacts(self) -> list[Contact]:
        with self._lock:
            return list(self._contacts)

    # -------- Profile and friends --------
    def set_status_message(self, status_message: str) -> None:
        self.status_message = status_message

    def callback_friend_added(self, function: Callable[["Messenger", int], None]) -> None:
        self.__friend_added_callbacks.append(function)

    def add_friend(self, public_key: bytes, name: str = "") -> int:
        """
        Adds a friend, returning its index.
        """
        if len(public_key) != Constants.PUBLIC_KEY_LENGTH_BYTES:
            raise ValueError(f"Public key should be {Constants.PUBLIC_KEY_LENGTH_BYTES} bytes.")
        if public_key == self.public_key:
            raise ValueError("Cannot add ourselves as a friend.")

        friend = Friend(public_key=public_key, name=name)
        if friend in self.friends:
            raise ValueError("Friend already added.")

        self.friends.append(friend)
        index = len(self.friends) - 1
        logger.info(f"Added friend {public_key.hex()[:8]}... at index {index}.")
        self.__notify_friend_added(index)
        return index

    def delete_friend(self, index: int) -> None:
        friend = self.friends.pop(index)
        logger.info(f"Deleted friend {friend.public_key.hex()[:8]}...")

    @property
    def friend_count(self) -> int:
        return len(self.friends)

    def on_friend_restored(self, index: int) -> None:
        self.__notify_friend_added(index)

    def __notify_friend_added(self, index: int) -> None:
        for function in self.__friend_added_callbacks:
            function(self, index)

    # -------- DHT --------
    def add_contact(self, address: str, port: int, public_key: bytes) -> Contact:
        contact = Contact(address, port, public_key)
        with self._lock:
            for existing in self._contacts:
                if existing == contact:
                    return existing
            self._contacts.append(contact)
        logger.debug(f"Added DHT contact {contact}.")
        return contact

    def bootstrap(self, address: str, port: int, public_key: bytes) -> None:
        self.add_contact(address, port, public_key)

    def is_connected(self) -> bool:
        with self._lock:
            return any(c.seen_within(Constants.NODE_TIMEOUT_SEC) for c in self._contacts)

    def per_tick_update(self) -> None:
        """
        Queues a ping for every contact that is due one and returns without waiting
        for the answers, which arrive on the ping worker threads.
        """
        now = datetime.now()
        with self._lock:
            due = [
                c for c in self._contacts
                if c not in self.__pending and c.ping_due(Constants.PING_INTERVAL_SEC)
            ]
            for contact in due:
                contact.last_pinged = now
                self.__pending.add(contact)

        if not due:
            return

        self.__initialise_thread_pool()
        for contact in due:
            self.__ping_queue.put(contact)

    def wait_for_pings(self) -> None:
        """
        Blocks until every queued ping has been answered or has failed.
        """
        self.__ping_queue.join()

    def __initialise_thread_pool(self) -> None:
        """
        Starts Constants.MAX_PING_THREADS workers running self.__pinger, once.
        """
        if self.__ping_threads:
            return
        for _ in range(Constants.MAX_PING_THREADS):
            thread = threading.Thread(target=self.__pinger, daemon=True)
            self.__ping_threads.append(thread)
            thread.start()

    def __pinger(self) -> None:
        """
        Runs on each worker until it dequeues None. Sessions aren't shared
        between threads, so each worker holds its own.
        """
        http = requests.Session()
        http.trust_env = False
        try:
            while True:
                contact = self.__ping_queue.get()
                if contact is None:
                    self.__ping_queue.task_done()
                    return
                try:
                    self.ping(contact, http)
                except Exception as e:
                    logger.error(f"[Client] Ping worker failed on {contact}: {e}")
                finally:
                    with self._lock:
                        self.__pending.discard(contact)
                    self.__ping_queue.task_done()
        finally:
            http.close()

    def ping(self, contact: Contact, http: requests.Session | None = None) -> bool:
        """
        Pings contact over HTTP, touching it if it answers with the public key we expect.
        Doesn't update contact.last_pinged, per_tick_update does that when it queues the ping.
        :param contact: Contact to ping.
        :param http: Session to send with, defaults to the messenger's own.
        :return: If the contact answered correctly.
        """
        http = http or self.__http
        encoded_data = pickler.encode_data({"public_key": self.public_key, "port": self.port})

        try:
            logger.debug(f"[Client] Sending ping to {contact}")
            ret = http.post(
                url=f"http://{contact.address}:{contact.port}/ping",
                data=encoded_data,
                timeout=Constants.REQUEST_TIMEOUT_SEC
            )
        except requests.Timeout:
            logger.debug(f"[Client] Ping to {contact} timed out.")
            return False
        except requests.RequestException as e:
            logger.debug(f"[Client] Ping to {contact} failed: {e}")
            return False

        if ret.status_code != 200:
            logger.warning(f"[Client] Ping to {contact} returned code {ret.status_code}")
            return False

        try:
            response = pickler.decode_data(ret.content)
            their_key = bytes.fromhex(response["public_key"])
        except (DataDecodingError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Client] Bad ping response from {contact}: {e}")
            return False

        if their_key != contact.public_key:
            logger.warning(f"[Client] Public key mismatch from {contact}.")
            return False

        with self._lock:
            contact.touch()
        return True

    # -------- Hosting --------
    def start_server(self, host: str = "0.0.0.0", port: int = 33445) -> None:
        self.__server = PingServer((host, port), lambda: self.public_key, on_ping=self.add_contact)
        self.port = self.__server.server_address[1]
        self.__server_thread = self.__server.thread_start()

    def cleanup(self) -> None:
        for _ in self.__ping_threads:
            self.__ping_queue.put(None)
        for thread in self.__ping_threads:
            thread.join()
        self.__ping_threads = []

        self.__http.close()
        if self.__server and self.__server_thread:
            self.__server.thread_stop(self.__server_thread)
            self.__server = None
            self.__server_thread = None

    # -------- Session state --------
    def __encode(self) -> bytes:
        with self._lock:
            contacts = [
                {"address": c.address, "port": c.port, "public_key": c.public_key}
                for c in self._contacts
            ]
        return pickler.encode_data({
            "version": Constants.SESSION_VERSION,
            "secret_key": _raw_private_bytes(self.__secret_key),
            "name": self.name,
            "status_message": self.status_message,
            "friends": self.friends,
            "contacts": contacts
        })

    def serialized_length(self) -> int:
        self.__snapshot = self.__encode()
        return len(self.__snapshot)

    def serialize(self, buffer: bytearray) -> None:
        data = self.__snapshot if self.__snapshot is not None else self.__encode()
        self.__snapshot = None
        if len(buffer) != len(data):
            raise ValueError(f"Buffer is {len(buffer)} bytes, session is {len(data)} bytes.")
        buffer[:] = data

    def deserialize(self, buffer: bytes) -> None:
        state = pickler.decode_data(buffer)
        try:
            if state["version"] != Constants.SESSION_VERSION:
                raise ValueError(f"Unsupported session version {state['version']}.")
            secret_key = X25519PrivateKey.from_private_bytes(bytes.fromhex(state["secret_key"]))
            friends = [Friend.decode(f) for f in state.get("friends", [])]
            contacts = [
                Contact(c["address"], int(c["port"]), bytes.fromhex(c["public_key"]))
                for c in state.get("contacts", [])
            ]
            name = str(state.get("name", ""))
            status_message = str(state.get("status_message", ""))
        except (KeyError, TypeError, ValueError) as error:
            raise DataDecodingError("Session state is invalid.") from error

        self.__secret_key = secret_key
        self.name = name
        self.status_message = status_message
        self.friends = friends
        with self._lock:
            self._contacts = contacts
