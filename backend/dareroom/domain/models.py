"""Domain models for profiles, their private items and the shared log."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional, Tuple

import ulid


class ItemKind(str, Enum):
	DARE = "dare"
	TRUTH = "truth"

	@property
	def collection(self) -> str:
		"""Name of the profile collection holding this kind."""
		return "dares" if self is ItemKind.DARE else "truths"

	@property
	def update_event(self) -> str:
		return "updateOwnDares" if self is ItemKind.DARE else "updateOwnTruths"


def new_item_id() -> str:
	return str(ulid.new())


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


@dataclass(slots=True, frozen=True)
class Item:
	id: str
	text: str

	@classmethod
	def create(cls, text: str) -> "Item":
		return cls(id=new_item_id(), text=text)

	@classmethod
	def from_dict(cls, raw: Mapping[str, Any]) -> "Item":
		return cls(id=str(raw["id"]), text=str(raw.get("text") or ""))

	def to_dict(self) -> dict:
		return {"id": self.id, "text": self.text}


def items_from_raw(raw: Optional[Iterable[Mapping[str, Any]]]) -> Tuple[Item, ...]:
	return tuple(Item.from_dict(entry) for entry in (raw or ()))


@dataclass(slots=True, frozen=True)
class Profile:
	"""A registered participant. ``id`` equals the login identifier."""

	id: str
	username: str
	password: str = ""
	dares: Tuple[Item, ...] = ()
	truths: Tuple[Item, ...] = ()

	def items(self, kind: ItemKind) -> Tuple[Item, ...]:
		return self.dares if kind is ItemKind.DARE else self.truths

	def with_items(self, kind: ItemKind, items: Iterable[Item]) -> "Profile":
		return replace(self, **{kind.collection: tuple(items)})

	def all_items(self) -> List[Tuple[ItemKind, Item]]:
		return [(ItemKind.DARE, item) for item in self.dares] + [
			(ItemKind.TRUTH, item) for item in self.truths
		]

	@classmethod
	def blank(cls, profile_id: str, *, username: str, password: str = "") -> "Profile":
		return cls(id=profile_id, username=username, password=password)

	@classmethod
	def from_dict(cls, raw: Mapping[str, Any]) -> "Profile":
		return cls(
			id=str(raw["id"]),
			username=str(raw.get("username") or raw["id"]),
			password=str(raw.get("password") or ""),
			dares=items_from_raw(raw.get("dares")),
			truths=items_from_raw(raw.get("truths")),
		)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"password": self.password,
			"username": self.username,
			"dares": [item.to_dict() for item in self.dares],
			"truths": [item.to_dict() for item in self.truths],
		}

	def roster_entry(self) -> dict:
		return {"id": self.id, "username": self.username}


@dataclass(slots=True, frozen=True)
class Message:
	"""A chat line. ``username`` is a snapshot taken when the line was sent."""

	username: str
	message: str
	timestamp: datetime = field(default_factory=utcnow)
	id: str = field(default_factory=new_item_id)

	def renamed(self, username: str) -> "Message":
		return replace(self, username=username)

	def to_payload(self) -> dict:
		return {
			"username": self.username,
			"message": self.message,
			"timestamp": self.timestamp.isoformat(),
		}

	def to_dict(self) -> dict:
		payload = self.to_payload()
		payload["id"] = self.id
		return payload

	@classmethod
	def from_dict(cls, raw: Mapping[str, Any]) -> "Message":
		timestamp = raw.get("timestamp")
		if isinstance(timestamp, str):
			timestamp = datetime.fromisoformat(timestamp)
		elif isinstance(timestamp, (int, float)):
			timestamp = datetime.fromtimestamp(timestamp, tz=timezone.utc)
		if timestamp is None:
			timestamp = utcnow()
		if timestamp.tzinfo is None:
			timestamp = timestamp.replace(tzinfo=timezone.utc)
		return cls(
			username=str(raw.get("username") or ""),
			message=str(raw.get("message") or ""),
			timestamp=timestamp,
			id=str(raw.get("id") or new_item_id()),
		)


def ordered_messages(messages: Iterable[Message]) -> List[Message]:
	return sorted(messages, key=lambda message: message.timestamp)
