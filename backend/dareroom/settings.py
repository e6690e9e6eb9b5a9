"""Settings for the dareroom service."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dareroom.errors import ConfigurationError


def _env_field(default, *env_names: str):
	if env_names:
		alias = AliasChoices(*env_names) if len(env_names) > 1 else env_names[0]
		return Field(default=default, validation_alias=alias)
	return Field(default=default)


def _participant_entry(participant_id: str, raw: Any) -> Dict[str, str]:
	if isinstance(raw, dict):
		password = raw.get("password")
		username = raw.get("username") or raw.get("displayName")
	else:
		password = raw
		username = None
	if password in (None, ""):
		raise ValueError(f"participant {participant_id!r} has no password")
	return {"password": str(password), "username": str(username or participant_id)}


class Settings(BaseSettings):
	host: str = _env_field("0.0.0.0", "HOST")
	port: int = _env_field(3000, "PORT")
	store_url: Optional[str] = _env_field(None, "STORE_URL", "DATABASE_URL", "MONGO_URI")
	postgres_min_pool_size: int = _env_field(0, "POSTGRES_MIN_POOL_SIZE")
	postgres_max_pool_size: int = _env_field(5, "POSTGRES_MAX_POOL_SIZE")
	# id -> {"password": ..., "username": ...}
	participants: Any = _env_field({}, "PARTICIPANTS")
	cors_allow_origins: Any = _env_field(("*",), "CORS_ALLOW_ORIGINS")
	reveal_empty_message: str = _env_field("No items from your partner yet!", "REVEAL_EMPTY_MESSAGE")

	environment: str = _env_field("production", "ENV", "APP_ENV", "ENVIRONMENT")
	obs_enabled: bool = _env_field(True, "OBS_ENABLED")
	obs_metrics_public: bool = _env_field(False, "OBS_METRICS_PUBLIC")
	obs_log_level: str = _env_field("INFO", "LOG_LEVEL")
	obs_log_sampling_rate_info: float = _env_field(1.0, "LOG_SAMPLING_RATE_INFO")
	obs_admin_token: Optional[str] = _env_field(None, "OBS_ADMIN_TOKEN")
	service_name: str = _env_field("dareroom", "SERVICE_NAME")
	git_commit: str = _env_field("unknown", "GIT_COMMIT", "COMMIT_SHA", "SOURCE_VERSION")

	model_config = SettingsConfigDict(
		env_prefix="",
		env_file=".env",
		case_sensitive=False,
		extra="ignore",
		populate_by_name=True,
	)

	def require_store_url(self) -> str:
		"""Return the configured store URL or fail startup."""
		url = (self.store_url or "").strip()
		if not url:
			raise ConfigurationError("STORE_URL is not set; refusing to start without a store")
		return url

	def registry(self):
		from dareroom.domain.auth import CredentialRegistry

		return CredentialRegistry.from_mapping(self.participants)

	@field_validator("participants", mode="before")
	def _parse_participants(cls, value):  # type: ignore[override]
		"""Normalise PARTICIPANTS into {id: {"password", "username"}}.

		Accepts a mapping (already decoded), a JSON object string, or a
		comma-separated list of ``id:password[:display name]`` entries.
		"""
		if value in (None, ""):
			return {}
		if isinstance(value, str):
			text = value.strip()
			if not text:
				return {}
			if text.startswith("{"):
				value = json.loads(text)
			else:
				parsed: Dict[str, Any] = {}
				for part in text.split(","):
					part = part.strip()
					if not part:
						continue
					fields = part.split(":", 2)
					if len(fields) < 2:
						raise ValueError(f"participant entry {part!r} must be id:password")
					entry: Dict[str, str] = {"password": fields[1]}
					if len(fields) == 3 and fields[2].strip():
						entry["username"] = fields[2].strip()
					parsed[fields[0].strip()] = entry
				value = parsed
		if not isinstance(value, dict):
			raise ValueError("PARTICIPANTS must be a mapping")
		return {str(key): _participant_entry(str(key), raw) for key, raw in value.items()}

	@field_validator("cors_allow_origins", mode="before")
	def _split_cors(cls, value):  # type: ignore[override]
		if value in (None, ""):
			return ("*",)
		if isinstance(value, str):
			return tuple(part.strip() for part in value.split(",") if part.strip()) or ("*",)
		if isinstance(value, (list, tuple, set)):
			return tuple(str(item).strip() for item in value if str(item).strip()) or ("*",)
		return ("*",)

	@field_validator("obs_log_level", mode="after")
	def _normalise_level(cls, value: str) -> str:  # type: ignore[override]
		return value.upper()


settings = Settings()
