"""Initial / refresh snapshot for a single connection."""

from __future__ import annotations

from dareroom.domain.collections import items_payload, messages_payload
from dareroom.domain.models import ItemKind
from dareroom.domain.results import Failure, FailureKind, HandlerResult, handler_boundary, reply
from dareroom.infra.store import Store

SNAPSHOT_EVENT = "init"


async def build_snapshot(store: Store, profile_id: str) -> dict | None:
	profile = await store.get_profile(profile_id)
	if profile is None:
		return None
	messages = await store.list_messages()
	return {
		"currentUser": {"id": profile.id, "username": profile.username},
		"dares": items_payload(profile, ItemKind.DARE),
		"truths": items_payload(profile, ItemKind.TRUTH),
		"messages": messages_payload(messages),
	}


@handler_boundary("snapshot")
async def snapshot_result(store: Store, profile_id: str) -> HandlerResult:
	payload = await build_snapshot(store, profile_id)
	if payload is None:
		return Failure(FailureKind.NOT_FOUND, f"profile {profile_id} not found")
	return reply(SNAPSHOT_EVENT, payload)
