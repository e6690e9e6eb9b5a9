import random
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
import socketio
from fakeredis.aioredis import FakeRedis

from dareroom.domain.auth import CredentialRegistry, SessionAuthenticator
from dareroom.domain.reveal import RevealSampler
from dareroom.domain.sockets import DareRoomNamespace
from dareroom.infra.memory import MemoryStore
from dareroom.infra.redis import RedisStore

PARTICIPANTS = {
	"alice": {"password": "pw1", "username": "Alice"},
	"bob": {"password": "pw2", "username": "Bob"},
}


@pytest.fixture
def registry() -> CredentialRegistry:
	return CredentialRegistry.from_mapping(PARTICIPANTS)


@pytest.fixture
def store() -> MemoryStore:
	return MemoryStore()


@pytest.fixture
def authenticator(registry, store) -> SessionAuthenticator:
	return SessionAuthenticator(registry, store)


@pytest_asyncio.fixture
async def fake_redis():
	client = FakeRedis(decode_responses=True)
	try:
		yield client
	finally:
		await client.flushall()
		await client.aclose()


@pytest_asyncio.fixture
async def redis_store(fake_redis) -> RedisStore:
	return RedisStore(fake_redis)


@pytest.fixture
def namespace(authenticator, store) -> DareRoomNamespace:
	server = socketio.AsyncServer(async_mode="asgi")
	ns = DareRoomNamespace(
		authenticator,
		store,
		sampler=RevealSampler(store, rng=random.Random(7)),
	)
	server.register_namespace(ns)
	ns.emit = AsyncMock()
	return ns
