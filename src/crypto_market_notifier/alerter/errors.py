"""Exceptions raised by the alerting layer."""


class DeliveryError(Exception):
    """Raised by a channel when a message could not be delivered."""

    def __init__(self, channel: str, message: str) -> None:
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class ConfigurationError(Exception):
    """Raised when a logical target cannot be resolved to a channel."""
