"""Custom exceptions for nostrcast."""


class NostrcastError(Exception):
    """Base exception for all nostrcast errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.suggestion = suggestion


class ConfigError(NostrcastError):
    """Configuration-related errors."""

    pass


class InvalidConfigError(ConfigError):
    """Invalid configuration data."""

    pass


class Nip19Error(NostrcastError):
    """Invalid or undecodable NIP-19 entity (npub, nevent, naddr)."""

    pass


class RelayError(NostrcastError):
    """Relay communication errors."""

    def __init__(self, message: str, relay_url: str | None = None) -> None:
        super().__init__(message)
        self.relay_url = relay_url


class RelayConnectionError(RelayError):
    """Connection to a relay failed or dropped."""

    pass


class FeedError(NostrcastError):
    """Feed generation errors."""

    pass


class OutputError(NostrcastError):
    """Writing generated artifacts to disk failed."""

    pass
