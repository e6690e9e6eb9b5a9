"""AsyncPG-backed store."""

from __future__ import annotations

import json
from typing import Any, List, Optional

import asyncpg

from dareroom.domain.models import Item, ItemKind, Message, Profile
from dareroom.errors import StoreError
from dareroom.infra.store import store_call

_PROFILE_COLUMNS = "id, password, username, dares, truths"

SCHEMA = """
CREATE TABLE IF NOT EXISTS dareroom_profiles (
	id TEXT PRIMARY KEY,
	password TEXT NOT NULL DEFAULT '',
	username TEXT NOT NULL,
	dares JSONB NOT NULL DEFAULT '[]'::jsonb,
	truths JSONB NOT NULL DEFAULT '[]'::jsonb
);
CREATE TABLE IF NOT EXISTS dareroom_messages (
	id TEXT PRIMARY KEY,
	username TEXT NOT NULL,
	message TEXT NOT NULL,
	created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
CREATE INDEX IF NOT EXISTS dareroom_messages_created_idx ON dareroom_messages (created_at, id);
CREATE INDEX IF NOT EXISTS dareroom_messages_username_idx ON dareroom_messages (username);
"""


def _json_list(raw: Any) -> list:
	if isinstance(raw, str):
		return json.loads(raw) if raw else []
	return list(raw or [])


def _row_to_profile(row) -> Profile:
	return Profile.from_dict(
		{
			"id": row["id"],
			"password": row["password"],
			"username": row["username"],
			"dares": _json_list(row["dares"]),
			"truths": _json_list(row["truths"]),
		}
	)


def _row_to_message(row) -> Message:
	return Message(
		id=str(row["id"]),
		username=row["username"],
		message=row["message"],
		timestamp=row["created_at"],
	)


def _affected(status: str) -> int:
	"""Row count from an asyncpg command tag such as ``UPDATE 3``."""
	try:
		return int(str(status).rsplit(" ", 1)[-1])
	except ValueError:
		return 0


class PostgresStore:
	backend = "postgres"

	def __init__(self, dsn: str, *, min_size: int = 0, max_size: int = 5) -> None:
		self._dsn = dsn
		self._min_size = min_size
		self._max_size = max_size
		self._pool: Optional[asyncpg.pool.Pool] = None

	def set_pool(self, pool: Optional[asyncpg.pool.Pool]) -> None:
		self._pool = pool

	async def connect(self) -> None:
		with store_call(self.backend, "connect"):
			if self._pool is None:
				self._pool = await asyncpg.create_pool(
					dsn=self._dsn,
					min_size=self._min_size,
					max_size=self._max_size,
				)
			async with self._pool.acquire() as conn:
				await conn.execute(SCHEMA)

	def _require_pool(self) -> asyncpg.pool.Pool:
		if self._pool is None:
			raise StoreError("acquire", "postgres pool is not initialised")
		return self._pool

	async def ping(self) -> None:
		with store_call(self.backend, "ping"):
			async with self._require_pool().acquire() as conn:
				await conn.execute("SELECT 1")

	async def close(self) -> None:
		if self._pool is not None:
			await self._pool.close()
			self._pool = None

	async def get_profile(self, profile_id: str) -> Optional[Profile]:
		with store_call(self.backend, "get_profile"):
			async with self._require_pool().acquire() as conn:
				row = await conn.fetchrow(
					f"SELECT {_PROFILE_COLUMNS} FROM dareroom_profiles WHERE id = $1",
					profile_id,
				)
		return _row_to_profile(row) if row else None

	async def list_profiles(self) -> List[Profile]:
		with store_call(self.backend, "list_profiles"):
			async with self._require_pool().acquire() as conn:
				rows = await conn.fetch(
					f"SELECT {_PROFILE_COLUMNS} FROM dareroom_profiles ORDER BY id"
				)
		return [_row_to_profile(row) for row in rows]

	async def create_profile(self, profile: Profile) -> Profile:
		with store_call(self.backend, "create_profile"):
			async with self._require_pool().acquire() as conn:
				row = await conn.fetchrow(
					f"""
					INSERT INTO dareroom_profiles (id, password, username, dares, truths)
					VALUES ($1, $2, $3, $4::jsonb, $5::jsonb)
					ON CONFLICT (id) DO NOTHING
					RETURNING {_PROFILE_COLUMNS}
					""",
					profile.id,
					profile.password,
					profile.username,
					json.dumps([item.to_dict() for item in profile.dares]),
					json.dumps([item.to_dict() for item in profile.truths]),
				)
				if row is None:
					row = await conn.fetchrow(
						f"SELECT {_PROFILE_COLUMNS} FROM dareroom_profiles WHERE id = $1",
						profile.id,
					)
		return _row_to_profile(row) if row else profile

	async def push_item(self, profile_id: str, kind: ItemKind, item: Item) -> Optional[Profile]:
		column = kind.collection
		with store_call(self.backend, "push_item"):
			async with self._require_pool().acquire() as conn:
				row = await conn.fetchrow(
					f"""
					UPDATE dareroom_profiles
					SET {column} = {column} || jsonb_build_array(jsonb_build_object('id', $2::text, 'text', $3::text))
					WHERE id = $1
					RETURNING {_PROFILE_COLUMNS}
					""",
					profile_id,
					item.id,
					item.text,
				)
		return _row_to_profile(row) if row else None

	async def set_item_text(
		self, profile_id: str, kind: ItemKind, item_id: str, text: str
	) -> Optional[Profile]:
		column = kind.collection
		with store_call(self.backend, "set_item_text"):
			async with self._require_pool().acquire() as conn:
				row = await conn.fetchrow(
					f"""
					UPDATE dareroom_profiles
					SET {column} = (
						SELECT COALESCE(
							jsonb_agg(
								CASE WHEN entry->>'id' = $2
									THEN jsonb_set(entry, '{{text}}', to_jsonb($3::text))
									ELSE entry
								END
								ORDER BY pos
							),
							'[]'::jsonb
						)
						FROM jsonb_array_elements({column}) WITH ORDINALITY AS entries(entry, pos)
					)
					WHERE id = $1
					RETURNING {_PROFILE_COLUMNS}
					""",
					profile_id,
					item_id,
					text,
				)
		return _row_to_profile(row) if row else None

	async def pull_item(self, profile_id: str, kind: ItemKind, item_id: str) -> Optional[Profile]:
		column = kind.collection
		with store_call(self.backend, "pull_item"):
			async with self._require_pool().acquire() as conn:
				row = await conn.fetchrow(
					f"""
					UPDATE dareroom_profiles
					SET {column} = (
						SELECT COALESCE(jsonb_agg(entry ORDER BY pos), '[]'::jsonb)
						FROM jsonb_array_elements({column}) WITH ORDINALITY AS entries(entry, pos)
						WHERE entry->>'id' <> $2
					)
					WHERE id = $1
					RETURNING {_PROFILE_COLUMNS}
					""",
					profile_id,
					item_id,
				)
		return _row_to_profile(row) if row else None

	async def set_display_name(self, profile_id: str, username: str) -> Optional[Profile]:
		with store_call(self.backend, "set_display_name"):
			async with self._require_pool().acquire() as conn:
				row = await conn.fetchrow(
					f"UPDATE dareroom_profiles SET username = $2 WHERE id = $1 RETURNING {_PROFILE_COLUMNS}",
					profile_id,
					username,
				)
		return _row_to_profile(row) if row else None

	async def create_message(self, message: Message) -> Message:
		with store_call(self.backend, "create_message"):
			async with self._require_pool().acquire() as conn:
				await conn.execute(
					"""
					INSERT INTO dareroom_messages (id, username, message, created_at)
					VALUES ($1, $2, $3, $4)
					""",
					message.id,
					message.username,
					message.message,
					message.timestamp,
				)
		return message

	async def list_messages(self) -> List[Message]:
		with store_call(self.backend, "list_messages"):
			async with self._require_pool().acquire() as conn:
				rows = await conn.fetch(
					"""
					SELECT id, username, message, created_at
					FROM dareroom_messages
					ORDER BY created_at ASC, id ASC
					"""
				)
		return [_row_to_message(row) for row in rows]

	async def rename_message_authors(self, old_username: str, new_username: str) -> int:
		with store_call(self.backend, "rename_message_authors"):
			async with self._require_pool().acquire() as conn:
				status = await conn.execute(
					"UPDATE dareroom_messages SET username = $2 WHERE username = $1",
					old_username,
					new_username,
				)
		return _affected(status)

	async def delete_messages(self) -> int:
		with store_call(self.backend, "delete_messages"):
			async with self._require_pool().acquire() as conn:
				status = await conn.execute("DELETE FROM dareroom_messages")
		return _affected(status)
