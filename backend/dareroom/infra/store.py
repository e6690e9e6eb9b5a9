"""Store adapter contract and URL-based adapter selection."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, List, Optional, Protocol
from urllib.parse import urlsplit

from dareroom.domain.models import Item, ItemKind, Message, Profile
from dareroom.errors import ConfigurationError, StoreError
from dareroom.obs import metrics as obs_metrics


class Store(Protocol):
	"""Durable state for profiles and the shared message log.

	Each profile mutation is atomic for that one profile and returns the
	fresh profile, or ``None`` when no profile has the given id. There are
	no cross-document transactions.
	"""

	backend: str

	async def connect(self) -> None: ...

	async def ping(self) -> None: ...

	async def close(self) -> None: ...

	async def get_profile(self, profile_id: str) -> Optional[Profile]: ...

	async def list_profiles(self) -> List[Profile]: ...

	async def create_profile(self, profile: Profile) -> Profile: ...

	async def push_item(self, profile_id: str, kind: ItemKind, item: Item) -> Optional[Profile]: ...

	async def set_item_text(
		self, profile_id: str, kind: ItemKind, item_id: str, text: str
	) -> Optional[Profile]: ...

	async def pull_item(self, profile_id: str, kind: ItemKind, item_id: str) -> Optional[Profile]: ...

	async def set_display_name(self, profile_id: str, username: str) -> Optional[Profile]: ...

	async def create_message(self, message: Message) -> Message: ...

	async def list_messages(self) -> List[Message]: ...

	async def rename_message_authors(self, old_username: str, new_username: str) -> int: ...

	async def delete_messages(self) -> int: ...


@contextmanager
def store_call(backend: str, op: str) -> Iterator[None]:
	"""Time one adapter call and surface driver failures as StoreError."""
	with obs_metrics.store_op(backend, op):
		try:
			yield
		except StoreError:
			raise
		except Exception as exc:
			raise StoreError(op, f"{backend} {op} failed: {exc}") from exc


def open_store(url: str, **options) -> Store:
	"""Build (but do not connect) the adapter matching the URL scheme."""
	scheme = urlsplit(url).scheme.lower()
	if scheme == "memory":
		from dareroom.infra.memory import MemoryStore

		return MemoryStore()
	if scheme in ("redis", "rediss", "unix"):
		from dareroom.infra.redis import RedisStore

		return RedisStore.from_url(url)
	if scheme in ("postgres", "postgresql"):
		from dareroom.infra.postgres import PostgresStore

		return PostgresStore(
			url,
			min_size=options.get("min_size", 0),
			max_size=options.get("max_size", 5),
		)
	raise ConfigurationError(f"unsupported store url scheme: {scheme or '<none>'}")
