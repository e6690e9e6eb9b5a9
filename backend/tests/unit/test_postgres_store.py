import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from dareroom.domain.models import Item, ItemKind, Message
from dareroom.errors import StoreError
from dareroom.infra.postgres import PostgresStore


def _store_with_conn():
	mock_pool = MagicMock()
	mock_conn = AsyncMock()
	mock_pool.acquire.return_value.__aenter__.return_value = mock_conn
	store = PostgresStore("postgresql://example/db")
	store.set_pool(mock_pool)
	return store, mock_conn


def _row(**overrides):
	row = {
		"id": "alice",
		"password": "pw1",
		"username": "Alice",
		"dares": json.dumps([{"id": "1", "text": "jump"}]),
		"truths": [],
	}
	row.update(overrides)
	return row


@pytest.mark.asyncio
async def test_push_item_appends_to_the_right_column():
	store, conn = _store_with_conn()
	conn.fetchrow.return_value = _row()

	profile = await store.push_item("alice", ItemKind.DARE, Item(id="1", text="jump"))

	sql, *params = conn.fetchrow.await_args.args
	assert "SET dares = dares ||" in sql
	assert params == ["alice", "1", "jump"]
	assert profile.dares == (Item(id="1", text="jump"),)
	assert profile.truths == ()


@pytest.mark.asyncio
async def test_pull_item_targets_truths_column():
	store, conn = _store_with_conn()
	conn.fetchrow.return_value = _row(dares=[], truths=[])

	await store.pull_item("alice", ItemKind.TRUTH, "9")

	sql, *params = conn.fetchrow.await_args.args
	assert "SET truths" in sql
	assert "jsonb_array_elements(truths)" in sql
	assert params == ["alice", "9"]


@pytest.mark.asyncio
async def test_set_item_text_on_missing_profile_returns_none():
	store, conn = _store_with_conn()
	conn.fetchrow.return_value = None

	assert await store.set_item_text("ghost", ItemKind.DARE, "1", "x") is None


@pytest.mark.asyncio
async def test_rename_reports_affected_rows():
	store, conn = _store_with_conn()
	conn.execute.return_value = "UPDATE 3"

	assert await store.rename_message_authors("Alice", "Ally") == 3
	conn.execute.assert_awaited_once()
	assert conn.execute.await_args.args[1:] == ("Alice", "Ally")


@pytest.mark.asyncio
async def test_list_messages_maps_rows():
	store, conn = _store_with_conn()
	message = Message(username="Bob", message="hi")
	conn.fetch.return_value = [
		{"id": message.id, "username": "Bob", "message": "hi", "created_at": message.timestamp}
	]

	assert await store.list_messages() == [message]
	assert "ORDER BY created_at ASC" in conn.fetch.await_args.args[0]


@pytest.mark.asyncio
async def test_driver_errors_surface_as_store_error():
	store, conn = _store_with_conn()
	conn.fetchrow.side_effect = ConnectionError("connection reset")

	with pytest.raises(StoreError) as exc:
		await store.get_profile("alice")
	assert exc.value.operation == "get_profile"


@pytest.mark.asyncio
async def test_operations_before_connect_fail_cleanly():
	with pytest.raises(StoreError):
		await PostgresStore("postgresql://example/db").list_profiles()
