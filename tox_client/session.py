import logging
import os

from tox_client.config import ClientConfig
from tox_client.errors import (CannotOpenDestinationError, FatalPersistenceError, OutOfMemoryError,
                               SessionSaveError, WriteFailedError)
from tox_client.helpers import make_sure_filepath_exists
from tox_client.interfaces import INetworkCore

logger = logging.getLogger("__main__")


class SessionStore:
    """
    Saves the network core's serialized state to disk and restores it.

    Save failures are recoverable and raised as SessionSaveError subclasses, the caller
    reports them and carries on. Load failures on an existing file, and failing to
    create the initial file, raise FatalPersistenceError: the caller is expected to
    restore the terminal and exit.

    When config.load_from_file is False, both operations do nothing.
    """

    def __init__(self, core: INetworkCore, config: ClientConfig):
        self.core = core
        self.config = config

    @property
    def enabled(self) -> bool:
        return self.config.load_from_file

    def save(self, path: str | None = None) -> None:
        """
        Stores the core's state at path (default: config.data_file).
        :raises OutOfMemoryError: The buffer couldn't be allocated.
        :raises CannotOpenDestinationError: path couldn't be opened for writing.
        :raises WriteFailedError: The buffer wasn't written in full.
        """
        if not self.enabled:
            return
        path = path or self.config.data_file

        length = self.core.serialized_length()
        try:
            buffer = bytearray(length)
        except MemoryError as error:
            raise OutOfMemoryError(path, f"could not allocate {length} bytes") from error

        self.core.serialize(buffer)

        try:
            make_sure_filepath_exists(path)
            f = open(path, "wb")
        except OSError as error:
            raise CannotOpenDestinationError(path, str(error)) from error

        with f:
            try:
                written = f.write(buffer)
            except OSError as error:
                raise WriteFailedError(path, str(error)) from error
            if written != length:
                raise WriteFailedError(path, f"wrote {written} of {length} bytes")

        logger.info(f"Saved session ({length} bytes) to {path}.")

    def load(self, path: str | None = None) -> int:
        """
        Restores the core's state from path (default: config.data_file), then notifies
        the core of every restored friend in index order. If the file can't be opened,
        this is treated as a first run and an initial session file is saved instead.

        :return: Number of friends restored.
        :raises FatalPersistenceError: on any failure reading an existing file, or if
            the initial session file can't be saved.
        """
        if not self.enabled:
            return 0
        path = path or self.config.data_file

        try:
            f = open(path, "rb")
        except OSError:
            logger.info(f"No session at {path}, creating one.")
            try:
                self.save(path)
            except SessionSaveError as error:
                logger.critical(str(error))
                raise FatalPersistenceError(path, str(error)) from error
            return 0

        with f:
            length = os.fstat(f.fileno()).st_size
            try:
                buffer = bytearray(length)
            except MemoryError as error:
                raise FatalPersistenceError(path, "Could not allocate session buffer.") from error

            try:
                read = f.readinto(buffer)
            except OSError as error:
                raise FatalPersistenceError(path, "Reading session failed.") from error
            if read != length:
                raise FatalPersistenceError(path, f"Read {read} of {length} session bytes.")

        try:
            self.core.deserialize(bytes(buffer))
        except Exception as error:
            logger.critical(f"Could not restore session from {path}: {error}")
            raise FatalPersistenceError(path, "Session could not be restored.") from error

        # The peer table is complete by now, so notifications see a consistent core.
        friend_count = self.core.friend_count
        for i in range(friend_count):
            self.core.on_friend_restored(i)

        logger.info(f"Loaded session from {path}, restored {friend_count} friends.")
        return friend_count
