"""Handler outcomes consumed by the connection lifecycle manager.

Handlers never emit on their own. They return either a ``Success`` that
lists what to send and to whom, or a ``Failure`` naming why nothing is
sent. ``handler_boundary`` turns store and payload errors raised inside a
handler into a logged ``Failure``.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Tuple, TypeVar, Union

from dareroom.errors import InvalidPayloadError, StoreError

logger = logging.getLogger(__name__)


class Target(str, Enum):
	SELF = "self"
	ALL = "all"
	OTHERS = "others"


class FailureKind(str, Enum):
	STORE = "store"
	INVALID_PAYLOAD = "invalid_payload"
	IGNORED = "ignored"
	NOT_FOUND = "not_found"
	UNAUTHENTICATED = "unauthenticated"
	UNKNOWN_EVENT = "unknown_event"


@dataclass(slots=True, frozen=True)
class Emission:
	event: str
	payload: Any = None
	target: Target = Target.SELF


@dataclass(slots=True, frozen=True)
class Success:
	emissions: Tuple[Emission, ...] = ()
	roster: bool = False

	def events(self) -> list[str]:
		return [emission.event for emission in self.emissions]


@dataclass(slots=True, frozen=True)
class Failure:
	kind: FailureKind
	detail: str = ""


HandlerResult = Union[Success, Failure]

F = TypeVar("F", bound=Callable[..., Awaitable[HandlerResult]])


def reply(event: str, payload: Any = None, *, target: Target = Target.SELF, roster: bool = False) -> Success:
	return Success(emissions=(Emission(event, payload, target),), roster=roster)


def handler_boundary(name: str) -> Callable[[F], F]:
	def decorator(func: F) -> F:
		@functools.wraps(func)
		async def wrapper(*args, **kwargs) -> HandlerResult:
			try:
				return await func(*args, **kwargs)
			except StoreError as exc:
				logger.warning("%s failed: %s", name, exc, exc_info=True)
				return Failure(FailureKind.STORE, str(exc))
			except InvalidPayloadError as exc:
				logger.info("%s rejected payload: %s", name, exc.detail)
				return Failure(FailureKind.INVALID_PAYLOAD, exc.detail)

		return wrapper  # type: ignore[return-value]

	return decorator
