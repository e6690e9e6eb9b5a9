"""Run the service with uvicorn: ``python -m dareroom``."""

from __future__ import annotations

import logging
import sys

import uvicorn

from dareroom.errors import ConfigurationError
from dareroom.settings import settings

logger = logging.getLogger("dareroom")


def main() -> int:
	try:
		settings.require_store_url()
	except ConfigurationError as exc:
		logging.basicConfig(level=logging.ERROR)
		logger.error("%s", exc)
		return 1
	uvicorn.run(
		"dareroom.main:create_app",
		factory=True,
		host=settings.host,
		port=settings.port,
		log_config=None,
	)
	return 0


if __name__ == "__main__":
	sys.exit(main())
