"""Redis-backed store.

Each profile is one JSON document under ``dareroom:profile:<id>`` and every
mutation of it runs as one optimistic WATCH/MULTI transaction, which gives
the same single-document atomicity a document store would. A concurrent
write fails the call instead of retrying it. The shared log is a sorted set
scored by the message's epoch timestamp; each member is prefixed with a
zero-padded insertion sequence so equal timestamps keep arrival order.
"""

from __future__ import annotations

import json
from typing import Callable, List, Optional

import redis.asyncio as redis
from redis.exceptions import WatchError

from dareroom.domain.models import Item, ItemKind, Message, Profile, ordered_messages
from dareroom.errors import StoreError
from dareroom.infra.store import store_call

KEY_PREFIX = "dareroom"
_SEQ_WIDTH = 16


def _encode_profile(profile: Profile) -> str:
	return json.dumps(profile.to_dict(), separators=(",", ":"))


def _encode_message(message: Message, seq: str) -> str:
	return f"{seq}:" + json.dumps(message.to_dict(), separators=(",", ":"))


def _split_member(raw: str) -> tuple[str, Message]:
	seq, _, body = raw.partition(":")
	return seq, Message.from_dict(json.loads(body))


def _decode_message(raw: str) -> Message:
	return _split_member(raw)[1]


class RedisStore:
	backend = "redis"

	def __init__(self, client: redis.Redis, *, prefix: str = KEY_PREFIX) -> None:
		self._client = client
		self._prefix = prefix

	@classmethod
	def from_url(cls, url: str) -> "RedisStore":
		return cls(redis.from_url(url, decode_responses=True))

	def _profile_key(self, profile_id: str) -> str:
		return f"{self._prefix}:profile:{profile_id}"

	@property
	def _profile_ids_key(self) -> str:
		return f"{self._prefix}:profiles"

	@property
	def _messages_key(self) -> str:
		return f"{self._prefix}:messages"

	@property
	def _message_seq_key(self) -> str:
		return f"{self._prefix}:messages:seq"

	async def connect(self) -> None:
		await self.ping()

	async def ping(self) -> None:
		with store_call(self.backend, "ping"):
			await self._client.ping()

	async def close(self) -> None:
		await self._client.aclose()

	async def get_profile(self, profile_id: str) -> Optional[Profile]:
		with store_call(self.backend, "get_profile"):
			raw = await self._client.get(self._profile_key(profile_id))
		if raw is None:
			return None
		return Profile.from_dict(json.loads(raw))

	async def list_profiles(self) -> List[Profile]:
		with store_call(self.backend, "list_profiles"):
			ids = sorted(await self._client.smembers(self._profile_ids_key))
			if not ids:
				return []
			raws = await self._client.mget([self._profile_key(profile_id) for profile_id in ids])
		return [Profile.from_dict(json.loads(raw)) for raw in raws if raw is not None]

	async def create_profile(self, profile: Profile) -> Profile:
		key = self._profile_key(profile.id)
		with store_call(self.backend, "create_profile"):
			async with self._client.pipeline(transaction=True) as pipe:
				pipe.set(key, _encode_profile(profile), nx=True)
				pipe.sadd(self._profile_ids_key, profile.id)
				created, _ = await pipe.execute()
			if created:
				return profile
			raw = await self._client.get(key)
		return Profile.from_dict(json.loads(raw)) if raw is not None else profile

	async def _mutate(
		self, op: str, profile_id: str, change: Callable[[Profile], Profile]
	) -> Optional[Profile]:
		key = self._profile_key(profile_id)
		with store_call(self.backend, op):
			async with self._client.pipeline(transaction=True) as pipe:
				try:
					await pipe.watch(key)
					raw = await pipe.get(key)
					if raw is None:
						return None
					updated = change(Profile.from_dict(json.loads(raw)))
					pipe.multi()
					pipe.set(key, _encode_profile(updated))
					await pipe.execute()
				except WatchError:
					raise StoreError(op, f"profile {profile_id} changed concurrently") from None
				return updated

	async def push_item(self, profile_id: str, kind: ItemKind, item: Item) -> Optional[Profile]:
		return await self._mutate(
			"push_item",
			profile_id,
			lambda profile: profile.with_items(kind, profile.items(kind) + (item,)),
		)

	async def set_item_text(
		self, profile_id: str, kind: ItemKind, item_id: str, text: str
	) -> Optional[Profile]:
		def change(profile: Profile) -> Profile:
			return profile.with_items(
				kind,
				[Item(id=entry.id, text=text) if entry.id == item_id else entry for entry in profile.items(kind)],
			)

		return await self._mutate("set_item_text", profile_id, change)

	async def pull_item(self, profile_id: str, kind: ItemKind, item_id: str) -> Optional[Profile]:
		return await self._mutate(
			"pull_item",
			profile_id,
			lambda profile: profile.with_items(
				kind, [entry for entry in profile.items(kind) if entry.id != item_id]
			),
		)

	async def set_display_name(self, profile_id: str, username: str) -> Optional[Profile]:
		def change(profile: Profile) -> Profile:
			return Profile(
				id=profile.id,
				username=username,
				password=profile.password,
				dares=profile.dares,
				truths=profile.truths,
			)

		return await self._mutate("set_display_name", profile_id, change)

	async def create_message(self, message: Message) -> Message:
		with store_call(self.backend, "create_message"):
			seq = await self._client.incr(self._message_seq_key)
			member = _encode_message(message, str(seq).zfill(_SEQ_WIDTH))
			await self._client.zadd(self._messages_key, {member: message.timestamp.timestamp()})
		return message

	async def list_messages(self) -> List[Message]:
		with store_call(self.backend, "list_messages"):
			raws = await self._client.zrange(self._messages_key, 0, -1)
		return ordered_messages(_decode_message(raw) for raw in raws)

	async def rename_message_authors(self, old_username: str, new_username: str) -> int:
		with store_call(self.backend, "rename_message_authors"):
			entries = await self._client.zrange(self._messages_key, 0, -1, withscores=True)
			pipe = self._client.pipeline(transaction=False)
			renamed = 0
			for raw, score in entries:
				seq, message = _split_member(raw)
				if message.username != old_username:
					continue
				pipe.zrem(self._messages_key, raw)
				pipe.zadd(self._messages_key, {_encode_message(message.renamed(new_username), seq): score})
				renamed += 1
			if renamed:
				await pipe.execute()
		return renamed

	async def delete_messages(self) -> int:
		with store_call(self.backend, "delete_messages"):
			count = await self._client.zcard(self._messages_key)
			await self._client.delete(self._messages_key)
		return int(count)
