"""Structured logging helpers for the observability package."""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from dareroom.settings import Settings, settings

_SID: ContextVar[Optional[str]] = ContextVar("obs_sid", default=None)
_USER_ID: ContextVar[Optional[str]] = ContextVar("obs_user_id", default=None)
_EVENT: ContextVar[Optional[str]] = ContextVar("obs_event", default=None)

_LOGGER_NAME = "dareroom"

_SENSITIVE_KEYWORDS = (
	"password",
	"secret",
	"token",
	"auth",
	"message",
	"text",
)

_MAX_STRING_LENGTH = 256
_MAX_COLLECTION_ITEMS = 10

_RESERVED_ATTRS = frozenset(
	{
		"args",
		"msg",
		"levelname",
		"levelno",
		"pathname",
		"filename",
		"module",
		"exc_info",
		"exc_text",
		"stack_info",
		"lineno",
		"funcName",
		"created",
		"msecs",
		"relativeCreated",
		"thread",
		"threadName",
		"process",
		"processName",
		"message",
		"name",
		"taskName",
	}
)


def bind_context(
	*,
	sid: Optional[str] = None,
	user_id: Optional[str] = None,
	event: Optional[str] = None,
) -> Dict[str, Token]:
	"""Bind contextual fields for the current socket event and return reset tokens."""
	tokens: Dict[str, Token] = {}
	if sid is not None:
		tokens["sid"] = _SID.set(sid)
	if user_id is not None:
		tokens["user_id"] = _USER_ID.set(user_id)
	if event is not None:
		tokens["event"] = _EVENT.set(event)
	return tokens


def reset_context(tokens: Dict[str, Token]) -> None:
	for key, token in tokens.items():
		if key == "sid":
			_SID.reset(token)
		elif key == "user_id":
			_USER_ID.reset(token)
		elif key == "event":
			_EVENT.reset(token)


def current_context() -> Dict[str, str]:
	context = {"sid": _SID.get(), "user_id": _USER_ID.get(), "event": _EVENT.get()}
	return {key: value for key, value in context.items() if value}


def _sanitize_value(value: Any) -> Any:
	if isinstance(value, str):
		return value if len(value) <= _MAX_STRING_LENGTH else f"{value[:_MAX_STRING_LENGTH]}…"
	if isinstance(value, dict):
		result: Dict[str, Any] = {}
		for idx, (key, nested) in enumerate(value.items()):
			if idx >= _MAX_COLLECTION_ITEMS:
				result["…"] = f"+{len(value) - _MAX_COLLECTION_ITEMS} keys"
				break
			result[key] = _sanitize_field(str(key), nested)
		return result
	if isinstance(value, (list, tuple, set)):
		items = [_sanitize_value(item) for item in list(value)]
		if len(items) > _MAX_COLLECTION_ITEMS:
			items = items[:_MAX_COLLECTION_ITEMS] + ["…"]
		return items
	return value


def _sanitize_field(key: str, value: Any) -> Any:
	lowered = key.lower()
	if any(keyword in lowered for keyword in _SENSITIVE_KEYWORDS):
		return "[redacted]"
	return _sanitize_value(value)


class JSONLogFormatter(logging.Formatter):
	"""Emit logs as JSON objects with structured fields."""

	def __init__(self, app_settings: Optional[Settings] = None) -> None:
		super().__init__()
		self._settings = app_settings or settings

	def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (match logging api)
		timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
		payload: Dict[str, object] = {
			"ts": timestamp,
			"level": record.levelname.lower(),
			"msg": record.getMessage(),
			"logger": record.name,
			"service": self._settings.service_name,
			"env": self._settings.environment,
			"commit": self._settings.git_commit,
		}
		payload.update(current_context())
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		for key, value in record.__dict__.items():
			if key in _RESERVED_ATTRS or key in payload:
				continue
			payload[key] = _sanitize_field(key, value)
		return json.dumps(payload, separators=(",", ":"), default=str)


class InfoSamplingFilter(logging.Filter):
	"""Randomly sample info-level logs, keep warnings/errors."""

	def __init__(self, rate: float = 1.0) -> None:
		super().__init__()
		self._rate = max(0.0, min(1.0, rate))

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		if self._rate >= 1.0:
			return True
		return random.random() < self._rate


def configure_logging(app_settings: Optional[Settings] = None) -> logging.Logger:
	"""Configure root logger with JSON formatting and sampling."""
	cfg = app_settings or settings
	root = logging.getLogger()
	root.handlers.clear()
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter(cfg))
	handler.addFilter(InfoSamplingFilter(cfg.obs_log_sampling_rate_info))
	root.addHandler(handler)
	root.setLevel(cfg.obs_log_level)
	return logging.getLogger(_LOGGER_NAME)

