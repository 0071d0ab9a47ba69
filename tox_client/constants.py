from dataclasses import dataclass


@dataclass
class Constants:
    # Bootstrap server list
    MIN_LINE_LENGTH = 70  # address + port + 64 hex characters
    MAX_LINE_LENGTH = 90
    MAX_SERVERS = 50

    CONNECT_INTERVAL_TICKS = 100  # one bootstrap attempt every 100 ticks
    PUBLIC_KEY_LENGTH_BYTES = 32

    TICK_TIMEOUT_SEC = 0.1  # 100ms
    REQUEST_TIMEOUT_SEC = 0.5  # 500ms
    PING_INTERVAL_SEC = 20
    NODE_TIMEOUT_SEC = 60
    MAX_PING_THREADS = 8

    DATA_FILE_NAME = "data"
    SERVER_LIST_NAME = "DHTservers"
    CONFIG_DIR_NAME = "tox"
    LOG_FILE = "toxic.log"

    ENCODING = "utf-8"
    SESSION_VERSION = 1
