import os
import socket
import tempfile
import threading
import time
import unittest

import requests

import ui_helpers
from tox_client import pickler
from tox_client.config import ClientConfig
from tox_client.constants import Constants
from tox_client.errors import DataDecodingError
from tox_client.messenger import Messenger
from tox_client.session import SessionStore
from tox_client.virtual import ListDisplay


def closed_port() -> int:
    """A loopback port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class MessengerSessionTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.config = ClientConfig(data_file=os.path.join(self.tmp.name, "data"), server_list="DHTservers")

    def test_round_trip(self):
        messenger = Messenger(name="Cool guy")
        messenger.set_status_message("Testing")
        messenger.add_friend(b"\x01" * 32, name="alice")
        messenger.add_friend(b"\x02" * 32)
        messenger.bootstrap("127.0.0.1", 33445, b"\x03" * 32)
        SessionStore(messenger, self.config).save()

        restored = Messenger()
        indices = []
        restored.callback_friend_added(lambda m, i: indices.append(i))
        count = SessionStore(restored, self.config).load()

        self.assertEqual(count, 2)
        self.assertEqual(indices, [0, 1])
        self.assertEqual(restored.public_key, messenger.public_key, "Identity should survive a restart.")
        self.assertEqual(restored.name, "Cool guy")
        self.assertEqual(restored.status_message, "Testing")
        self.assertEqual(restored.friends[0].name, "alice")
        self.assertEqual(restored.friends[1].public_key, b"\x02" * 32)
        self.assertEqual([c.port for c in restored.contacts], [33445])

    def test_serialize_matches_length(self):
        messenger = Messenger()
        buffer = bytearray(messenger.serialized_length())
        messenger.serialize(buffer)
        self.assertEqual(pickler.decode_data(buffer)["version"], Constants.SESSION_VERSION)

    def test_serialize_rejects_wrong_buffer(self):
        messenger = Messenger()
        with self.assertRaises(ValueError):
            messenger.serialize(bytearray(messenger.serialized_length() + 1))

    def test_deserialize_garbage(self):
        messenger = Messenger()
        for garbage in [b"", b"\xff\xfe", b"[1, 2]", b'{"version": 1}', b'{"version": 99, "secret_key": ""}']:
            with self.assertRaises(DataDecodingError):
                messenger.deserialize(garbage)

    def test_add_friend_validation(self):
        messenger = Messenger()
        with self.assertRaises(ValueError):
            messenger.add_friend(b"\x01" * 31)
        with self.assertRaises(ValueError):
            messenger.add_friend(messenger.public_key)
        messenger.add_friend(b"\x01" * 32)
        with self.assertRaises(ValueError):
            messenger.add_friend(b"\x01" * 32)

    def test_delete_friend(self):
        messenger = Messenger()
        messenger.add_friend(b"\x01" * 32)
        messenger.delete_friend(0)
        self.assertEqual(messenger.friend_count, 0)


class MessengerNetworkTests(unittest.TestCase):
    def setUp(self):
        self.bootstrap_node = Messenger(name="node")
        self.bootstrap_node.start_server(host="127.0.0.1", port=0)
        self.addCleanup(self.bootstrap_node.cleanup)

    def new_messenger(self) -> Messenger:
        messenger = Messenger()
        self.addCleanup(messenger.cleanup)
        return messenger

    def test_bootstrap_connects(self):
        messenger = self.new_messenger()
        self.assertFalse(messenger.is_connected())

        messenger.bootstrap("127.0.0.1", self.bootstrap_node.port, self.bootstrap_node.public_key)
        messenger.per_tick_update()
        messenger.wait_for_pings()

        self.assertTrue(messenger.is_connected(), "Expected a pong from the bootstrap node.")

    def test_ping_registers_listening_sender(self):
        messenger = self.new_messenger()
        messenger.start_server(host="127.0.0.1", port=0)

        messenger.bootstrap("127.0.0.1", self.bootstrap_node.port, self.bootstrap_node.public_key)
        messenger.per_tick_update()
        messenger.wait_for_pings()

        contacts = self.bootstrap_node.contacts
        self.assertEqual(len(contacts), 1)
        self.assertEqual(contacts[0].port, messenger.port)
        self.assertEqual(contacts[0].public_key, messenger.public_key)

    def test_wrong_key_does_not_connect(self):
        messenger = self.new_messenger()
        messenger.bootstrap("127.0.0.1", self.bootstrap_node.port, b"\x09" * 32)
        messenger.per_tick_update()
        messenger.wait_for_pings()
        self.assertFalse(messenger.is_connected())

    def test_ping_is_rate_limited(self):
        messenger = self.new_messenger()
        contact = messenger.add_contact("127.0.0.1", self.bootstrap_node.port, self.bootstrap_node.public_key)
        messenger.per_tick_update()
        messenger.wait_for_pings()
        first_ping = contact.last_pinged
        messenger.per_tick_update()
        messenger.wait_for_pings()
        self.assertEqual(contact.last_pinged, first_ping, "Contact should not be pinged again so soon.")

    def test_unreachable_node(self):
        messenger = self.new_messenger()
        messenger.bootstrap("127.0.0.1", closed_port(), b"\x09" * 32)
        messenger.per_tick_update()
        messenger.wait_for_pings()
        self.assertFalse(messenger.is_connected())

    def test_server_answers_with_restored_identity(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        config = ClientConfig(data_file=os.path.join(tmp.name, "data"), server_list="DHTservers")

        saved = Messenger()
        SessionStore(saved, config).save()
        saved.cleanup()

        # The server is already up when the session replaces the node's identity.
        SessionStore(self.bootstrap_node, config).load()
        self.assertEqual(self.bootstrap_node.public_key, saved.public_key)

        messenger = self.new_messenger()
        messenger.bootstrap("127.0.0.1", self.bootstrap_node.port, self.bootstrap_node.public_key)
        messenger.per_tick_update()
        messenger.wait_for_pings()

        self.assertTrue(messenger.is_connected(), "Server should answer with the restored public key.")

    def test_tick_does_not_wait_for_pings(self):
        # Accepts connections into the backlog but never answers them.
        silent = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        silent.bind(("127.0.0.1", 0))
        silent.listen(16)
        self.addCleanup(silent.close)
        port = silent.getsockname()[1]

        messenger = self.new_messenger()
        for i in range(5):
            messenger.bootstrap("127.0.0.1", port, bytes([i + 1]) * 32)

        start = time.monotonic()
        messenger.per_tick_update()
        elapsed = time.monotonic() - start

        self.assertLess(elapsed, Constants.REQUEST_TIMEOUT_SEC,
                        "A tick should queue its pings instead of waiting on them.")

        messenger.wait_for_pings()
        self.assertFalse(messenger.is_connected())

    def test_pending_ping_is_not_queued_twice(self):
        silent = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        silent.bind(("127.0.0.1", 0))
        silent.listen(16)
        self.addCleanup(silent.close)

        messenger = self.new_messenger()
        contact = messenger.add_contact("127.0.0.1", silent.getsockname()[1], b"\x09" * 32)
        messenger.per_tick_update()
        first_ping = contact.last_pinged

        # Forces the contact due again while its first ping is still in flight.
        contact.last_pinged = None
        messenger.per_tick_update()
        self.assertIsNone(contact.last_pinged, "A contact with a ping in flight should not be queued again.")

        messenger.wait_for_pings()
        self.assertIsNotNone(first_ping)

    def test_bad_request(self):
        http = requests.Session()
        http.trust_env = False
        self.addCleanup(http.close)

        ret = http.post(f"http://127.0.0.1:{self.bootstrap_node.port}/ping", data=b"nonsense",
                            timeout=Constants.REQUEST_TIMEOUT_SEC)
        self.assertEqual(ret.status_code, 400)

        ret = http.post(f"http://127.0.0.1:{self.bootstrap_node.port}/store", data=b"{}",
                            timeout=Constants.REQUEST_TIMEOUT_SEC)
        self.assertEqual(ret.status_code, 404)


class HandleCommandTests(unittest.TestCase):
    def setUp(self):
        self.messenger = Messenger()
        self.display = ListDisplay()
        self.stop_event = threading.Event()

    def test_quit(self):
        ui_helpers.handle_command("/quit\n", self.messenger, self.display, self.stop_event)
        self.assertTrue(self.stop_event.is_set())

    def test_add(self):
        ui_helpers.handle_command(f"/add {'01' * 32} alice smith", self.messenger, self.display, self.stop_event)
        self.assertEqual(self.messenger.friends[0].name, "alice smith")
        self.assertEqual(self.display.lines, ["Friend added as 0."])

    def test_add_invalid(self):
        ui_helpers.handle_command("/add nothex", self.messenger, self.display, self.stop_event)
        self.assertEqual(self.messenger.friend_count, 0)
        self.assertTrue(self.display.lines[0].startswith("Could not add friend"))

    def test_unknown(self):
        ui_helpers.handle_command("hello", self.messenger, self.display, self.stop_event)
        self.assertFalse(self.stop_event.is_set())
        self.assertEqual(self.display.lines, ["Unknown command: hello"])


if __name__ == "__main__":
    unittest.main()
