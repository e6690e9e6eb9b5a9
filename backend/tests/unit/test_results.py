import pytest

from dareroom.domain.results import Failure, FailureKind, Success, Target, handler_boundary, reply
from dareroom.errors import InvalidPayloadError, StoreError


def test_reply_builds_single_emission():
	result = reply("revealResult", "text", roster=True)
	assert isinstance(result, Success)
	assert result.roster
	assert result.emissions[0].target is Target.SELF
	assert result.events() == ["revealResult"]


@pytest.mark.asyncio
async def test_boundary_converts_store_error():
	@handler_boundary("lookup")
	async def handler():
		raise StoreError("get_profile", "connection refused")

	result = await handler()

	assert isinstance(result, Failure)
	assert result.kind is FailureKind.STORE
	assert "connection refused" in result.detail


@pytest.mark.asyncio
async def test_boundary_converts_invalid_payload():
	@handler_boundary("lookup")
	async def handler():
		raise InvalidPayloadError("editItem", "invalid fields: type")

	result = await handler()
	assert result == Failure(FailureKind.INVALID_PAYLOAD, "invalid fields: type")


@pytest.mark.asyncio
async def test_boundary_lets_programming_errors_through():
	@handler_boundary("lookup")
	async def handler():
		raise KeyError("bug")

	with pytest.raises(KeyError):
		await handler()


@pytest.mark.asyncio
async def test_boundary_passes_success_through():
	@handler_boundary("lookup")
	async def handler(value):
		return Success(emissions=(), roster=value)

	assert (await handler(True)).roster is True
