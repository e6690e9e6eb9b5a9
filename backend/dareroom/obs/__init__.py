"""Observability package bootstrap."""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI

from dareroom.obs import logging as obs_logging
from dareroom.settings import Settings, settings

_initialised = False


def init(app: FastAPI, app_settings: Optional[Settings] = None) -> None:
	global _initialised
	cfg = app_settings or settings
	if _initialised:
		return
	if not cfg.obs_enabled:
		return
	obs_logging.configure_logging(cfg)
	app.state.obs_initialised = True
	_initialised = True


__all__ = ["init"]
