"""Behaviour every store adapter must share, run against memory and (fake) Redis."""

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio

from dareroom.domain.models import Item, ItemKind, Message, Profile
from dareroom.infra.memory import MemoryStore


@pytest_asyncio.fixture(params=["memory", "redis"])
async def any_store(request, fake_redis):
	if request.param == "memory":
		return MemoryStore()
	from dareroom.infra.redis import RedisStore

	return RedisStore(fake_redis)


@pytest.mark.asyncio
async def test_create_profile_keeps_the_first_document(any_store):
	first = await any_store.create_profile(Profile.blank("alice", username="Alice", password="pw1"))
	second = await any_store.create_profile(Profile.blank("alice", username="Other", password="x"))

	assert first.username == "Alice"
	assert second.username == "Alice"
	assert [p.id for p in await any_store.list_profiles()] == ["alice"]


@pytest.mark.asyncio
async def test_missing_profile_mutations_return_none(any_store):
	assert await any_store.get_profile("ghost") is None
	assert await any_store.push_item("ghost", ItemKind.DARE, Item(id="1", text="x")) is None
	assert await any_store.set_item_text("ghost", ItemKind.DARE, "1", "y") is None
	assert await any_store.pull_item("ghost", ItemKind.DARE, "1") is None
	assert await any_store.set_display_name("ghost", "Ghost") is None


@pytest.mark.asyncio
async def test_item_push_edit_pull(any_store):
	await any_store.create_profile(Profile.blank("alice", username="Alice"))

	await any_store.push_item("alice", ItemKind.DARE, Item(id="1", text="jump"))
	await any_store.push_item("alice", ItemKind.DARE, Item(id="2", text="sing"))
	await any_store.push_item("alice", ItemKind.TRUTH, Item(id="3", text="fear?"))
	edited = await any_store.set_item_text("alice", ItemKind.DARE, "1", "jump high")
	assert [i.text for i in edited.dares] == ["jump high", "sing"]

	unchanged = await any_store.set_item_text("alice", ItemKind.DARE, "404", "nope")
	assert unchanged.dares == edited.dares

	pulled = await any_store.pull_item("alice", ItemKind.DARE, "1")
	assert pulled.dares == (Item(id="2", text="sing"),)
	assert pulled.truths == (Item(id="3", text="fear?"),)
	assert await any_store.get_profile("alice") == pulled


@pytest.mark.asyncio
async def test_display_name_change_keeps_items(any_store):
	await any_store.create_profile(
		Profile(id="bob", username="Bob", password="pw2", truths=(Item(id="1", text="t"),))
	)

	updated = await any_store.set_display_name("bob", "Robert")

	assert updated.username == "Robert"
	assert updated.password == "pw2"
	assert updated.truths == (Item(id="1", text="t"),)


@pytest.mark.asyncio
async def test_messages_replay_in_timestamp_order(any_store):
	base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
	await any_store.create_message(Message(username="Bob", message="second", timestamp=base + timedelta(seconds=1)))
	await any_store.create_message(Message(username="Alice", message="first", timestamp=base))
	await any_store.create_message(Message(username="Alice", message="third", timestamp=base + timedelta(seconds=2)))

	messages = await any_store.list_messages()

	assert [m.message for m in messages] == ["first", "second", "third"]
	assert messages[0].timestamp == base


@pytest.mark.asyncio
async def test_rename_and_clear_messages(any_store):
	base = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
	for offset, (name, text) in enumerate([("Alice", "a"), ("Bob", "b"), ("Alice", "c")]):
		await any_store.create_message(Message(username=name, message=text, timestamp=base + timedelta(seconds=offset)))

	assert await any_store.rename_message_authors("Alice", "Ally") == 2
	assert [(m.username, m.message) for m in await any_store.list_messages()] == [
		("Ally", "a"),
		("Bob", "b"),
		("Ally", "c"),
	]

	assert await any_store.delete_messages() == 3
	assert await any_store.list_messages() == []


@pytest.mark.asyncio
async def test_messages_with_equal_timestamps_keep_arrival_order(any_store):
	sent_at = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
	await any_store.create_message(Message(username="zed", message="first", timestamp=sent_at))
	await any_store.create_message(Message(username="amy", message="second", timestamp=sent_at))
	await any_store.create_message(Message(username="bob", message="third", timestamp=sent_at))

	assert [m.message for m in await any_store.list_messages()] == ["first", "second", "third"]

	await any_store.rename_message_authors("zed", "aaron")
	assert [(m.username, m.message) for m in await any_store.list_messages()] == [
		("aaron", "first"),
		("amy", "second"),
		("bob", "third"),
	]
