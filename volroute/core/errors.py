"""Domain-specific errors for volroute."""


class VolrouteError(Exception):
    """Base error for volroute."""


class ConfigurationError(VolrouteError):
    """Raised when configuration is missing values a command needs."""


class ConfigValidationError(ConfigurationError):
    """Raised when a configuration file does not conform to schema or semantics."""


class BindingError(VolrouteError):
    """Base error for MAC binding verification."""


class BindingResolutionError(BindingError):
    """Raised when the MAC address for the configured TV address cannot be resolved."""


class BindingMismatchError(BindingError):
    """Raised when the device at the configured address has an unexpected MAC."""

    def __init__(self, address: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Device at {address} has MAC {actual}, expected {expected}. "
            "Update the configuration so both IP and MAC refer to the same TV."
        )
        self.address = address
        self.expected = expected
        self.actual = actual


class NotPairedError(VolrouteError):
    """Raised when a command needs a client key and none is stored."""


class TransportError(VolrouteError):
    """Base transport error."""


class TransportConnectError(TransportError):
    """Raised on connection failures."""


class TransportUpgradeError(TransportError):
    """Raised when the server does not accept the WebSocket upgrade."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportSendError(TransportError):
    """Raised when sending a frame fails."""


class TransportReceiveError(TransportError):
    """Raised when receiving a frame fails or times out."""


class TransportClosedError(TransportReceiveError):
    """Raised when the peer sent a close frame instead of data."""


class ProtocolError(VolrouteError):
    """Raised on malformed or unexpected responses."""


class PairingError(ProtocolError):
    """Raised when pairing does not produce a client key."""


class PairingTimeoutError(PairingError):
    """Raised when no client key arrived within the bounded number of frames."""


class HostAudioError(VolrouteError):
    """Raised when the host endpoint level cannot be read or written."""


class HookUnavailableError(VolrouteError):
    """Raised when the global volume key hook cannot be installed."""
