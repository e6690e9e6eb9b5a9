"""Mutations of a participant's private lists and of the shared chat log.

Every private-list operation is keyed by the session's bound profile id;
callers cannot name another profile.
"""

from __future__ import annotations

import logging
from typing import Any, List

from dareroom.domain.models import Item, ItemKind, Message, Profile
from dareroom.domain.results import (
	Emission,
	Failure,
	FailureKind,
	HandlerResult,
	Success,
	Target,
	handler_boundary,
	reply,
)
from dareroom.infra.store import Store

logger = logging.getLogger(__name__)


def items_payload(profile: Profile, kind: ItemKind) -> List[dict]:
	return [item.to_dict() for item in profile.items(kind)]


def messages_payload(messages: List[Message]) -> List[dict]:
	return [message.to_payload() for message in messages]


def _missing(profile_id: str) -> Failure:
	logger.warning("profile %s vanished from the store", profile_id)
	return Failure(FailureKind.NOT_FOUND, f"profile {profile_id} not found")


class CollectionMutator:
	def __init__(self, store: Store) -> None:
		self._store = store

	def _collection_reply(self, profile: Profile, kind: ItemKind) -> Success:
		return reply(kind.update_event, items_payload(profile, kind), roster=True)

	@handler_boundary("add_item")
	async def add_item(self, profile_id: str, kind: ItemKind, text: str) -> HandlerResult:
		profile = await self._store.push_item(profile_id, kind, Item.create(text))
		if profile is None:
			return _missing(profile_id)
		return self._collection_reply(profile, kind)

	@handler_boundary("edit_item")
	async def edit_item(self, profile_id: str, kind: ItemKind, item_id: str, new_text: str) -> HandlerResult:
		# An unknown id leaves the list untouched; the caller still gets it back.
		profile = await self._store.set_item_text(profile_id, kind, item_id, new_text)
		if profile is None:
			return _missing(profile_id)
		return self._collection_reply(profile, kind)

	@handler_boundary("delete_item")
	async def delete_item(self, profile_id: str, kind: ItemKind, item_id: str) -> HandlerResult:
		profile = await self._store.pull_item(profile_id, kind, item_id)
		if profile is None:
			return _missing(profile_id)
		return self._collection_reply(profile, kind)

	@handler_boundary("send_message")
	async def send_message(self, profile_id: str, text: str) -> HandlerResult:
		profile = await self._store.get_profile(profile_id)
		if profile is None:
			return _missing(profile_id)
		message = await self._store.create_message(Message(username=profile.username, message=text))
		return reply("newMessage", message.to_payload(), target=Target.ALL)

	@handler_boundary("edit_username")
	async def edit_username(self, profile_id: str, new_username: Any) -> HandlerResult:
		if not isinstance(new_username, str) or not new_username.strip():
			return Failure(FailureKind.IGNORED, "blank username")
		username = new_username.strip()
		current = await self._store.get_profile(profile_id)
		if current is None:
			return _missing(profile_id)
		old_username = current.username
		updated = await self._store.set_display_name(profile_id, username)
		if updated is None:
			return _missing(profile_id)
		if old_username != username:
			renamed = await self._store.rename_message_authors(old_username, username)
			logger.info("renamed %s messages from %r to %r", renamed, old_username, username)
		messages = await self._store.list_messages()
		return Success(
			emissions=(
				Emission("usernameUpdated", username, Target.SELF),
				Emission("messagesUpdated", messages_payload(messages), Target.ALL),
			),
			roster=True,
		)

	@handler_boundary("clear_chat")
	async def clear_chat(self) -> HandlerResult:
		deleted = await self._store.delete_messages()
		logger.info("chat cleared, %d messages removed", deleted)
		return reply("clearChat", None, target=Target.ALL)
