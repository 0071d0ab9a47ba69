class ToxClientError(Exception):
    pass


class DataDecodingError(ToxClientError):
    pass


class BootstrapError(ToxClientError):
    """
    Retryable connection errors, each carrying the numeric code shown to the user.
    """
    code = 0

    def __init__(self, message: str | None = None):
        super().__init__(message)
        self.message: str | None = message

    def __str__(self):
        if self.message:
            return f"Bootstrap error {self.code}: {self.message}"
        return f"Bootstrap error {self.code}."


class CannotOpenListError(BootstrapError):
    """Raised when the bootstrap server list is missing or unreadable."""
    code = 1


class EmptyListError(BootstrapError):
    """Raised when the server list was opened but held no usable lines."""
    code = 2


class MalformedEntryError(BootstrapError):
    """Raised when the selected server line cannot be split into address, port and key."""
    code = 3


class SessionSaveError(ToxClientError):
    """
    Recoverable failures while storing the session.
    """
    code = 0

    def __init__(self, path: str, message: str | None = None):
        super().__init__(message)
        self.path = path
        self.message: str | None = message

    def __str__(self):
        if self.message:
            return f"Store messenger failed with return code: {self.code} ({self.message})"
        return f"Store messenger failed with return code: {self.code}"


class OutOfMemoryError(SessionSaveError):
    code = 1


class CannotOpenDestinationError(SessionSaveError):
    code = 2


class WriteFailedError(SessionSaveError):
    code = 3


class FatalPersistenceError(ToxClientError):
    """
    Raised when loading an existing session fails, or an initial session file cannot be made.
    Running past one of these would hand a half-loaded state to the network core.
    """

    def __init__(self, path: str, reason: str):
        super().__init__(reason)
        self.path = path
        self.reason = reason

    def __str__(self):
        return f"{self.reason} ({self.path})"
