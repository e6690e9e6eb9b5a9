import random
from collections import Counter

import pytest

from dareroom.domain.models import Item, Profile
from dareroom.domain.results import Success, Target
from dareroom.domain.reveal import DEFAULT_EMPTY_MESSAGE, RevealSampler
from dareroom.infra.memory import MemoryStore


async def _store_with(*profiles: Profile) -> MemoryStore:
	store = MemoryStore()
	for profile in profiles:
		await store.create_profile(profile)
	return store


def _items(*texts: str) -> tuple:
	return tuple(Item(id=str(idx), text=text) for idx, text in enumerate(texts))


@pytest.mark.asyncio
async def test_empty_pool_returns_sentinel():
	store = await _store_with(
		Profile(id="alice", username="Alice", dares=_items("mine")),
		Profile(id="bob", username="Bob"),
	)

	result = await RevealSampler(store).reveal("alice")

	assert isinstance(result, Success)
	assert result.events() == ["revealResult"]
	assert result.emissions[0].payload == DEFAULT_EMPTY_MESSAGE
	assert result.emissions[0].target is Target.SELF


@pytest.mark.asyncio
async def test_custom_sentinel_is_used():
	store = await _store_with(Profile(id="alice", username="Alice"))
	result = await RevealSampler(store, empty_message="nothing yet").reveal("alice")
	assert result.emissions[0].payload == "nothing yet"


@pytest.mark.asyncio
async def test_reveal_notifies_others_with_requester_name():
	store = await _store_with(
		Profile(id="alice", username="Alice"),
		Profile(id="bob", username="Bob", truths=_items("secret")),
	)

	result = await RevealSampler(store, rng=random.Random(1)).reveal("alice")

	assert result.events() == ["revealResult", "revealNotification"]
	private, notice = result.emissions
	assert private.payload == "secret"
	assert private.target is Target.SELF
	assert notice.payload == {"username": "Alice", "item": "secret"}
	assert notice.target is Target.OTHERS


@pytest.mark.asyncio
async def test_requester_items_are_never_drawn():
	store = await _store_with(
		Profile(id="alice", username="Alice", dares=_items("a1", "a2", "a3")),
		Profile(id="bob", username="Bob", dares=_items("b1")),
	)
	sampler = RevealSampler(store, rng=random.Random(3))

	drawn = {(await sampler.reveal("alice")).emissions[0].payload for _ in range(50)}

	assert drawn == {"b1"}


@pytest.mark.asyncio
async def test_sampling_is_flat_across_items_not_owners():
	store = await _store_with(
		Profile(id="alice", username="Alice"),
		Profile(id="bob", username="Bob", dares=_items("b-dare")),
		Profile(id="carol", username="Carol", dares=_items("c-dare"), truths=_items("c-truth-1", "c-truth-2")),
	)
	sampler = RevealSampler(store, rng=random.Random(2024))
	draws = 4000

	counts = Counter()
	for _ in range(draws):
		result = await sampler.reveal("alice")
		counts[result.emissions[0].payload] += 1

	assert set(counts) == {"b-dare", "c-dare", "c-truth-1", "c-truth-2"}
	for text, count in counts.items():
		assert abs(count / draws - 0.25) < 0.05, (text, count)


@pytest.mark.asyncio
async def test_candidates_carry_owner_display_name():
	store = await _store_with(
		Profile(id="alice", username="Alice"),
		Profile(id="bob", username="Bobby", dares=_items("d"), truths=_items("t")),
	)

	requester_name, pool = await RevealSampler(store).candidates("alice")

	assert requester_name == "Alice"
	assert {(c.owner_id, c.owner_name, c.kind.value, c.item.text) for c in pool} == {
		("bob", "Bobby", "dare", "d"),
		("bob", "Bobby", "truth", "t"),
	}
