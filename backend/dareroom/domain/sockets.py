"""Socket.IO namespace driving each connection's lifecycle.

Connecting -> Authenticated -> Active -> Closed. The handshake ``auth``
payload is checked by the authenticator; once bound, the connection gets
its ``init`` snapshot and every session gets a fresh roster. Inbound events
go through ``dispatch``, which runs one event per connection at a time and
turns the handler's result into emissions.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

import socketio

from dareroom.domain import schemas
from dareroom.domain.auth import SessionAuthenticator
from dareroom.domain.collections import CollectionMutator
from dareroom.domain.models import ItemKind
from dareroom.domain.presence import PresenceBroadcaster
from dareroom.domain.results import Failure, FailureKind, HandlerResult, Success, Target
from dareroom.domain.reveal import RevealSampler
from dareroom.domain.sessions import Session, SessionRegistry
from dareroom.domain.snapshot import snapshot_result
from dareroom.errors import AuthenticationError, InvalidPayloadError, StoreError
from dareroom.infra.store import Store
from dareroom.obs import metrics as obs_metrics
from dareroom.obs.logging import bind_context, reset_context

logger = logging.getLogger(__name__)

Handler = Callable[[Session, Any], Awaitable[HandlerResult]]

_LIFECYCLE_EVENTS = frozenset({"connect", "disconnect"})


class DareRoomNamespace(socketio.AsyncNamespace):
	def __init__(
		self,
		authenticator: SessionAuthenticator,
		store: Store,
		*,
		sampler: Optional[RevealSampler] = None,
		namespace: str = "/",
	) -> None:
		super().__init__(namespace)
		self._authenticator = authenticator
		self._store = store
		self._mutator = CollectionMutator(store)
		self._sampler = sampler or RevealSampler(store)
		self._presence = PresenceBroadcaster(store, self._broadcast)
		self.sessions = SessionRegistry()
		self._handlers: Dict[str, Handler] = {
			"addDare": self._add_dare,
			"addTruth": self._add_truth,
			"editItem": self._edit_item,
			"deleteItem": self._delete_item,
			"sendMessage": self._send_message,
			"editUsername": self._edit_username,
			"clearChat": self._clear_chat,
			"revealItem": self._reveal_item,
			"requestFreshData": self._request_fresh_data,
		}

	async def trigger_event(self, event: str, *args):
		if event in _LIFECYCLE_EVENTS:
			return await super().trigger_event(event, *args)
		sid = args[0]
		payload = args[1] if len(args) > 1 else None
		obs_metrics.socket_event(self.namespace, event)
		await self.dispatch(sid, event, payload)
		return None

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		session = Session(sid=sid)
		scope = environ.get("asgi.scope", environ)
		credentials = auth or environ.get("auth") or scope.get("auth")
		try:
			profile = await self._authenticator.authenticate(credentials)
		except AuthenticationError as exc:
			session.close()
			obs_metrics.auth_failed("credentials")
			logger.info("connection refused sid=%s reason=%s", sid, exc)
			raise ConnectionRefusedError("Authentication failed") from None
		except StoreError:
			session.close()
			obs_metrics.auth_failed("store")
			logger.warning("connection refused sid=%s: store unavailable", sid, exc_info=True)
			raise ConnectionRefusedError("Authentication error") from None
		session.authenticate(profile.id)
		self.sessions.add(session)
		obs_metrics.socket_connected(self.namespace)
		logger.info("connection accepted sid=%s user=%s", sid, profile.id)
		async with session.lock:
			await self._deliver(session, "init", await snapshot_result(self._store, profile.id))
			session.activate()
		await self._broadcast_roster()

	async def on_disconnect(self, sid: str, reason: Any = None) -> None:
		session = self.sessions.pop(sid)
		if session is None:
			return
		session.close()
		obs_metrics.socket_disconnected(self.namespace)
		logger.info("connection closed sid=%s user=%s reason=%s", sid, session.profile_id, reason)
		await self._broadcast_roster()

	async def dispatch(self, sid: str, event: str, payload: Any = None) -> HandlerResult:
		"""Run the handler for one inbound event and deliver its result."""
		session = self.sessions.get(sid)
		if session is None or not session.is_active:
			result: HandlerResult = Failure(FailureKind.UNAUTHENTICATED, "no active session")
			self._record_failure(event, result)
			return result
		handler = self._handlers.get(event)
		if handler is None:
			result = Failure(FailureKind.UNKNOWN_EVENT, event)
			self._record_failure(event, result)
			return result
		async with session.lock:
			tokens = bind_context(sid=sid, user_id=session.profile_id, event=event)
			try:
				try:
					result = await handler(session, payload)
				except InvalidPayloadError as exc:
					logger.info("dropping %s: %s", event, exc.detail)
					result = Failure(FailureKind.INVALID_PAYLOAD, exc.detail)
				await self._deliver(session, event, result)
			finally:
				reset_context(tokens)
		return result

	async def _deliver(self, session: Session, event: str, result: HandlerResult) -> None:
		if isinstance(result, Failure):
			self._record_failure(event, result)
			return
		assert isinstance(result, Success)
		for emission in result.emissions:
			if emission.target is Target.SELF:
				await self.emit(emission.event, emission.payload, room=session.sid)
			elif emission.target is Target.OTHERS:
				await self.emit(emission.event, emission.payload, skip_sid=session.sid)
			else:
				await self.emit(emission.event, emission.payload)
		if result.roster:
			await self._broadcast_roster()

	def _record_failure(self, event: str, result: Failure) -> None:
		obs_metrics.handler_failed(event, result.kind.value)
		if result.kind is not FailureKind.IGNORED:
			logger.debug("no reply for %s: %s %s", event, result.kind.value, result.detail)

	async def _broadcast(self, event: str, payload: Any) -> None:
		await self.emit(event, payload)

	async def _broadcast_roster(self) -> None:
		try:
			await self._presence.broadcast_roster()
		except StoreError:
			logger.warning("roster broadcast failed", exc_info=True)

	async def _add_dare(self, session: Session, payload: Any) -> HandlerResult:
		text = schemas.parse_text("addDare", payload)
		return await self._mutator.add_item(session.profile_id, ItemKind.DARE, text)

	async def _add_truth(self, session: Session, payload: Any) -> HandlerResult:
		text = schemas.parse_text("addTruth", payload)
		return await self._mutator.add_item(session.profile_id, ItemKind.TRUTH, text)

	async def _edit_item(self, session: Session, payload: Any) -> HandlerResult:
		edit = schemas.parse(schemas.ItemEdit, "editItem", payload)
		return await self._mutator.edit_item(session.profile_id, edit.type, edit.id, edit.new_text)

	async def _delete_item(self, session: Session, payload: Any) -> HandlerResult:
		ref = schemas.parse(schemas.ItemRef, "deleteItem", payload)
		return await self._mutator.delete_item(session.profile_id, ref.type, ref.id)

	async def _send_message(self, session: Session, payload: Any) -> HandlerResult:
		text = schemas.parse_text("sendMessage", payload)
		return await self._mutator.send_message(session.profile_id, text)

	async def _edit_username(self, session: Session, payload: Any) -> HandlerResult:
		return await self._mutator.edit_username(session.profile_id, payload)

	async def _clear_chat(self, session: Session, payload: Any) -> HandlerResult:
		return await self._mutator.clear_chat()

	async def _reveal_item(self, session: Session, payload: Any) -> HandlerResult:
		return await self._sampler.reveal(session.profile_id)

	async def _request_fresh_data(self, session: Session, payload: Any) -> HandlerResult:
		return await snapshot_result(self._store, session.profile_id)
