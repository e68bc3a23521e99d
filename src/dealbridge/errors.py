"""Error taxonomy shared by the clients, the store and the workflow."""

from __future__ import annotations


class DealBridgeError(Exception):
    """Base class for all dealbridge errors."""


class RemoteError(DealBridgeError):
    """Non-success response (or transport failure) from HubSpot or Basecamp.

    Args:
        service: Name of the remote service ("hubspot", "basecamp", ...).
        status_code: HTTP status of the response, None for transport errors.
        message: Short description, usually the response body excerpt.
    """

    def __init__(self, service: str, status_code: int | None, message: str = "") -> None:
        self.service = service
        self.status_code = status_code
        self.message = message
        super().__init__(f"{service} request failed (status={status_code}): {message}")


class StorageError(DealBridgeError):
    """Read, parse or write failure on the project store file."""


class MalformedEvent(DealBridgeError):
    """Inbound webhook payload that cannot be interpreted as deal events."""
