"""ASGI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import socketio
from fastapi import FastAPI

from dareroom.api import ops
from dareroom.domain.auth import SessionAuthenticator
from dareroom.domain.reveal import RevealSampler
from dareroom.domain.sockets import DareRoomNamespace
from dareroom.infra.store import Store, open_store
from dareroom.obs import init as obs_init
from dareroom.obs import metrics as obs_metrics
from dareroom.settings import Settings, settings

logger = logging.getLogger(__name__)


def _cors_origins(app_settings: Settings):
	origins = list(app_settings.cors_allow_origins)
	return "*" if "*" in origins else origins


def build_lifespan(store: Store, authenticator: SessionAuthenticator):
	@asynccontextmanager
	async def lifespan(app: FastAPI):
		# A store that cannot be reached aborts startup.
		await store.connect()
		obs_metrics.mark_store(True)
		created = await authenticator.seed_profiles()
		logger.info(
			"store ready backend=%s participants=%d seeded=%d",
			store.backend,
			len(authenticator.registry),
			created,
		)
		try:
			yield
		finally:
			await store.close()
			obs_metrics.mark_store(False)

	return lifespan


def create_app(
	app_settings: Optional[Settings] = None,
	*,
	store: Optional[Store] = None,
) -> socketio.ASGIApp:
	cfg = app_settings or settings
	if store is None:
		store = open_store(
			cfg.require_store_url(),
			min_size=cfg.postgres_min_pool_size,
			max_size=cfg.postgres_max_pool_size,
		)
	authenticator = SessionAuthenticator(cfg.registry(), store)
	namespace = DareRoomNamespace(
		authenticator,
		store,
		sampler=RevealSampler(store, empty_message=cfg.reveal_empty_message),
	)

	app = FastAPI(title="dareroom", lifespan=build_lifespan(store, authenticator))
	app.state.settings = cfg
	app.state.store = store
	app.state.namespace = namespace
	app.include_router(ops.router, tags=["ops"])
	obs_init(app, cfg)

	sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=_cors_origins(cfg))
	sio.register_namespace(namespace)
	app.state.sio = sio
	return socketio.ASGIApp(sio, other_asgi_app=app)
