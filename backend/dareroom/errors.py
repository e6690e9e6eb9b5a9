"""Exception taxonomy shared by the transport, domain and store layers."""

from __future__ import annotations


class DareRoomError(Exception):
	"""Base class for service errors."""


class AuthenticationError(DareRoomError):
	"""Handshake credentials are missing or do not match the registry."""


class StoreError(DareRoomError):
	"""The durable backend is unreachable or an operation failed."""

	def __init__(self, operation: str, message: str | None = None) -> None:
		self.operation = operation
		super().__init__(message or f"store operation failed: {operation}")


class ConfigurationError(DareRoomError):
	"""Startup configuration is missing or invalid."""


class InvalidPayloadError(DareRoomError):
	"""An inbound event payload does not have the expected shape."""

	def __init__(self, event: str, detail: str) -> None:
		self.event = event
		self.detail = detail
		super().__init__(f"{event}: {detail}")
