"""Pydantic schemas for inbound socket payloads."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dareroom.domain.models import ItemKind
from dareroom.errors import InvalidPayloadError

M = TypeVar("M", bound=BaseModel)


class Handshake(BaseModel):
	model_config = ConfigDict(coerce_numbers_to_str=True)

	id: str = Field(..., min_length=1)
	password: str = Field(..., min_length=1)


class ItemRef(BaseModel):
	model_config = ConfigDict(coerce_numbers_to_str=True, populate_by_name=True)

	type: ItemKind
	id: str


class ItemEdit(ItemRef):
	new_text: str = Field(..., alias="newText")


def parse(model: Type[M], event: str, payload: Any) -> M:
	if not isinstance(payload, Mapping):
		raise InvalidPayloadError(event, "expected an object payload")
	try:
		return model.model_validate(dict(payload))
	except ValidationError as exc:
		fields = ",".join(".".join(str(part) for part in err["loc"]) for err in exc.errors())
		raise InvalidPayloadError(event, f"invalid fields: {fields}") from None


def parse_text(event: str, payload: Any) -> str:
	if not isinstance(payload, str):
		raise InvalidPayloadError(event, "expected a string payload")
	return payload


def parse_handshake(auth: Optional[Any]) -> Handshake:
	"""Validate handshake credentials; a bad shape is an InvalidPayloadError."""
	return parse(Handshake, "connect", auth or {})
