from datetime import datetime


class Contact:
    """A DHT node we can ping: where it lives and the key it should answer with."""

    def __init__(self, address: str, port: int, public_key: bytes):
        self.address = address
        self.port = port
        self.public_key = public_key
        self.last_seen: datetime | None = None
        self.last_pinged: datetime | None = None

    def touch(self) -> None:
        """Updates the last time the contact was seen."""
        self.last_seen = datetime.now()

    def seen_within(self, seconds: float) -> bool:
        if self.last_seen is None:
            return False
        return (datetime.now() - self.last_seen).total_seconds() <= seconds

    def ping_due(self, interval_sec: float) -> bool:
        if self.last_pinged is None:
            return True
        return (datetime.now() - self.last_pinged).total_seconds() >= interval_sec

    def __eq__(self, other):
        if not isinstance(other, Contact):
            return NotImplemented
        return (self.address, self.port, self.public_key) == (other.address, other.port, other.public_key)

    def __hash__(self):
        return hash((self.address, self.port, self.public_key))

    def __repr__(self):
        return f"Contact({self.address}:{self.port}, {self.public_key.hex()[:8]}...)"


class Friend:

    def __init__(self, public_key: bytes, name: str = "", status_message: str = ""):
        self.public_key = public_key
        self.name = name
        self.status_message = status_message

    def encode_into_json(self) -> dict:
        return {
            "public_key": self.public_key.hex(),
            "name": self.name,
            "status_message": self.status_message
        }

    @classmethod
    def decode(cls, encoded_data: dict) -> "Friend":
        return cls(
            public_key=bytes.fromhex(encoded_data["public_key"]),
            name=encoded_data.get("name", ""),
            status_message=encoded_data.get("status_message", "")
        )

    def __eq__(self, other):
        if not isinstance(other, Friend):
            return NotImplemented
        return self.public_key == other.public_key

    def __hash__(self):
        return hash(self.public_key)
