"""In-process store used for local development and tests."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

from dareroom.domain.models import Item, ItemKind, Message, Profile, ordered_messages


class MemoryStore:
	"""Dict-backed store; a single lock makes each operation atomic."""

	backend = "memory"

	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self._profiles: Dict[str, Profile] = {}
		self._messages: List[Message] = []

	async def connect(self) -> None:
		return None

	async def ping(self) -> None:
		return None

	async def close(self) -> None:
		return None

	async def get_profile(self, profile_id: str) -> Optional[Profile]:
		async with self._lock:
			return self._profiles.get(profile_id)

	async def list_profiles(self) -> List[Profile]:
		async with self._lock:
			return list(self._profiles.values())

	async def create_profile(self, profile: Profile) -> Profile:
		async with self._lock:
			return self._profiles.setdefault(profile.id, profile)

	async def push_item(self, profile_id: str, kind: ItemKind, item: Item) -> Optional[Profile]:
		async with self._lock:
			profile = self._profiles.get(profile_id)
			if profile is None:
				return None
			updated = profile.with_items(kind, profile.items(kind) + (item,))
			self._profiles[profile_id] = updated
			return updated

	async def set_item_text(
		self, profile_id: str, kind: ItemKind, item_id: str, text: str
	) -> Optional[Profile]:
		async with self._lock:
			profile = self._profiles.get(profile_id)
			if profile is None:
				return None
			items = [
				Item(id=item.id, text=text) if item.id == item_id else item
				for item in profile.items(kind)
			]
			updated = profile.with_items(kind, items)
			self._profiles[profile_id] = updated
			return updated

	async def pull_item(self, profile_id: str, kind: ItemKind, item_id: str) -> Optional[Profile]:
		async with self._lock:
			profile = self._profiles.get(profile_id)
			if profile is None:
				return None
			updated = profile.with_items(
				kind, [item for item in profile.items(kind) if item.id != item_id]
			)
			self._profiles[profile_id] = updated
			return updated

	async def set_display_name(self, profile_id: str, username: str) -> Optional[Profile]:
		async with self._lock:
			profile = self._profiles.get(profile_id)
			if profile is None:
				return None
			updated = Profile(
				id=profile.id,
				username=username,
				password=profile.password,
				dares=profile.dares,
				truths=profile.truths,
			)
			self._profiles[profile_id] = updated
			return updated

	async def create_message(self, message: Message) -> Message:
		async with self._lock:
			self._messages.append(message)
			return message

	async def list_messages(self) -> List[Message]:
		async with self._lock:
			return ordered_messages(self._messages)

	async def rename_message_authors(self, old_username: str, new_username: str) -> int:
		async with self._lock:
			renamed = 0
			for index, message in enumerate(self._messages):
				if message.username == old_username:
					self._messages[index] = message.renamed(new_username)
					renamed += 1
			return renamed

	async def delete_messages(self) -> int:
		async with self._lock:
			count = len(self._messages)
			self._messages.clear()
			return count
