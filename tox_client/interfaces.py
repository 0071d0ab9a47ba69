from abc import abstractmethod


class INetworkCore:
    """
    Interface for the peer-to-peer core the client drives. The client only ever
    calls these methods; peer tables, handshakes and routing stay behind them.
    """

    @abstractmethod
    def is_connected(self) -> bool:
        """
        Returns if the core is currently connected to the DHT.
        :return:
        """
        pass

    @abstractmethod
    def bootstrap(self, address: str, port: int, public_key: bytes) -> None:
        """
        Sends a bootstrap request to the node at address:port, owning public_key.
        Fire-and-forget: success is only observable later through is_connected().
        :param address: Resolved IP address.
        :param port:
        :param public_key: Raw key bytes of the bootstrap node.
        :return:
        """
        pass

    @abstractmethod
    def serialized_length(self) -> int:
        """
        Returns the number of bytes serialize() will write.
        :return:
        """
        pass

    @abstractmethod
    def serialize(self, buffer: bytearray) -> None:
        """
        Writes the session state into buffer, which is exactly serialized_length() bytes long.
        :param buffer:
        :return:
        """
        pass

    @abstractmethod
    def deserialize(self, buffer: bytes) -> None:
        """
        Replaces the session state with the one held in buffer.
        :param buffer:
        :return:
        """
        pass

    @abstractmethod
    def per_tick_update(self) -> None:
        """
        Does one round of network work, called once per main loop iteration.
        :return:
        """
        pass

    @property
    @abstractmethod
    def friend_count(self) -> int:
        pass

    @abstractmethod
    def on_friend_restored(self, index: int) -> None:
        """
        Notifies the core that the friend at index was restored from a session.
        :param index:
        :return:
        """
        pass

    def cleanup(self) -> None:
        """Tears the core down, releasing sockets and threads."""
        pass


class IDisplay:
    """
    Append-only sink for status text.
    """

    @abstractmethod
    def write(self, text: str) -> None:
        pass

    def close(self) -> None:
        """Restores the terminal, if the display took it over."""
        pass
