import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable

from tox_client import pickler
from tox_client.constants import Constants
from tox_client.errors import DataDecodingError

logger = logging.getLogger("__main__")


class PingRequestHandler(BaseHTTPRequestHandler):

    def _send(self, code: int, response: dict) -> None:
        encoded_response = pickler.encode_data(response)
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(encoded_response)))
        self.end_headers()
        try:
            self.wfile.write(encoded_response)
        except ConnectionError as e:
            logger.error(f"[Server] Connection lost while responding - we may have timed out: {e}")

    def do_POST(self):
        self.server: PingServer
        if self.path != "/ping":
            self._send(404, {"error_message": f"Unknown path {self.path}."})
            return

        try:
            content_length = int(self.headers.get("Content-Length", 0))
            request = pickler.decode_data(self.rfile.read(content_length))
            sender_key = bytes.fromhex(request["public_key"])
            sender_port = request.get("port")
        except (DataDecodingError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"[Server] Bad ping request: {e}")
            self._send(400, {"error_message": "Bad ping request."})
            return

        logger.debug(f"[Server] Ping from {self.client_address[0]}:{sender_port}")
        if sender_port and len(sender_key) == Constants.PUBLIC_KEY_LENGTH_BYTES:
            self.server.on_ping(self.client_address[0], int(sender_port), sender_key)

        self._send(200, {"public_key": self.server.public_key().hex()})

    def log_message(self, format, *args):
        logger.debug(f"[Server] {self.address_string()} {format % args}")


class PingServer(ThreadingHTTPServer):
    """
    Answers /ping with our public key, so other clients can bootstrap from us.
    """

    def __init__(self, server_address: tuple[str, int], public_key: Callable[[], bytes], on_ping=None):
        """
        :param public_key: Returns our current public key; read on every ping, since a
            session restore can replace the identity while the server runs.
        :param on_ping: Called with (address, port, public_key) of pingers that listen.
        """
        logger.info(f"[Server] Server socket address: {server_address}")
        ThreadingHTTPServer.__init__(
            self,
            server_address=server_address,
            RequestHandlerClass=PingRequestHandler
        )
        self.public_key = public_key
        self._on_ping = on_ping

    def on_ping(self, address: str, port: int, public_key: bytes) -> None:
        if self._on_ping:
            self._on_ping(address, port, public_key)

    def thread_start(self) -> threading.Thread:
        """
        Starts the server on a daemon thread that is returned.
        :return: Thread the server is running on
        """
        logger.info("[Server] Starting server...")
        thread = threading.Thread(target=self.serve_forever, daemon=True)
        thread.start()
        return thread

    def thread_stop(self, thread: threading.Thread) -> None:
        """
        Stops the server and waits for its thread to finish.
        :param thread:
        :return:
        """
        self.shutdown()
        self.server_close()
        thread.join()
        logger.info("[Server] Server stopped.")
