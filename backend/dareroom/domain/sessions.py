"""Per-connection session state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional


class ConnectionState(str, Enum):
	CONNECTING = "connecting"
	AUTHENTICATED = "authenticated"
	ACTIVE = "active"
	CLOSED = "closed"


_TRANSITIONS = {
	ConnectionState.CONNECTING: {ConnectionState.AUTHENTICATED, ConnectionState.CLOSED},
	ConnectionState.AUTHENTICATED: {ConnectionState.ACTIVE, ConnectionState.CLOSED},
	ConnectionState.ACTIVE: {ConnectionState.CLOSED},
	ConnectionState.CLOSED: set(),
}


@dataclass(slots=True)
class Session:
	"""Binds one socket to a profile id.

	Only the id is kept; display data is re-read from the store on every
	operation because another session may rename the profile.
	"""

	sid: str
	profile_id: Optional[str] = None
	state: ConnectionState = ConnectionState.CONNECTING
	lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

	def _advance(self, target: ConnectionState) -> None:
		if target not in _TRANSITIONS[self.state]:
			raise RuntimeError(f"session {self.sid}: illegal transition {self.state.value} -> {target.value}")
		self.state = target

	def authenticate(self, profile_id: str) -> None:
		self._advance(ConnectionState.AUTHENTICATED)
		self.profile_id = profile_id

	def activate(self) -> None:
		self._advance(ConnectionState.ACTIVE)

	def close(self) -> None:
		if self.state is not ConnectionState.CLOSED:
			self._advance(ConnectionState.CLOSED)

	@property
	def is_active(self) -> bool:
		return self.state is ConnectionState.ACTIVE


class SessionRegistry:
	def __init__(self) -> None:
		self._sessions: Dict[str, Session] = {}

	def add(self, session: Session) -> None:
		self._sessions[session.sid] = session

	def get(self, sid: str) -> Optional[Session]:
		return self._sessions.get(sid)

	def pop(self, sid: str) -> Optional[Session]:
		return self._sessions.pop(sid, None)

	def __contains__(self, sid: object) -> bool:
		return sid in self._sessions

	def __iter__(self) -> Iterator[Session]:
		return iter(list(self._sessions.values()))

	def __len__(self) -> int:
		return len(self._sessions)
