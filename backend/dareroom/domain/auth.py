"""Handshake authentication against the configured participant registry."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

from dareroom.domain.models import Profile
from dareroom.domain.schemas import parse_handshake
from dareroom.errors import AuthenticationError, InvalidPayloadError, StoreError
from dareroom.infra.store import Store

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Participant:
	id: str
	password: str
	username: str


class CredentialRegistry:
	"""Fixed id -> credential mapping handed to the authenticator."""

	def __init__(self, participants: Iterable[Participant]) -> None:
		self._participants: Dict[str, Participant] = {p.id: p for p in participants}

	@classmethod
	def from_mapping(cls, mapping: Mapping[str, Any]) -> "CredentialRegistry":
		participants = []
		for participant_id, entry in (mapping or {}).items():
			if isinstance(entry, Mapping):
				password = str(entry["password"])
				username = str(entry.get("username") or participant_id)
			else:
				password = str(entry)
				username = participant_id
			participants.append(Participant(id=str(participant_id), password=password, username=username))
		return cls(participants)

	def __contains__(self, participant_id: object) -> bool:
		return participant_id in self._participants

	def __iter__(self) -> Iterator[Participant]:
		return iter(self._participants.values())

	def __len__(self) -> int:
		return len(self._participants)

	def get(self, participant_id: str) -> Optional[Participant]:
		return self._participants.get(participant_id)

	def verify(self, participant_id: str, password: str) -> Participant:
		participant = self._participants.get(participant_id)
		if participant is None:
			raise AuthenticationError("unknown participant")
		if not hmac.compare_digest(participant.password.encode(), password.encode()):
			raise AuthenticationError("credential mismatch")
		return participant


class SessionAuthenticator:
	def __init__(self, registry: CredentialRegistry, store: Store) -> None:
		self._registry = registry
		self._store = store

	@property
	def registry(self) -> CredentialRegistry:
		return self._registry

	async def authenticate(self, credentials: Optional[Mapping[str, Any]]) -> Profile:
		"""Resolve handshake credentials to a stored profile.

		Raises ``AuthenticationError`` for a missing, malformed or
		mismatched credential pair. A participant that passes the check but
		has no profile yet gets one with empty collections. Store failures
		propagate as ``StoreError``.
		"""
		try:
			handshake = parse_handshake(credentials)
		except InvalidPayloadError as exc:
			raise AuthenticationError(exc.detail) from None
		participant = self._registry.verify(handshake.id, handshake.password)
		profile = await self._store.get_profile(participant.id)
		if profile is None:
			logger.info("creating profile for %s on first login", participant.id)
			profile = await self._store.create_profile(self._blank_profile(participant))
		return profile

	async def seed_profiles(self) -> int:
		"""Make sure every registered participant has a stored profile."""
		created = 0
		for participant in self._registry:
			try:
				existing = await self._store.get_profile(participant.id)
				if existing is None:
					await self._store.create_profile(self._blank_profile(participant))
					created += 1
			except StoreError:
				logger.warning("seeding profile %s failed", participant.id, exc_info=True)
		return created

	@staticmethod
	def _blank_profile(participant: Participant) -> Profile:
		return Profile.blank(participant.id, username=participant.username, password=participant.password)
