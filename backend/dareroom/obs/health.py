"""Health check helpers for liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict, Tuple

from dareroom.infra.store import Store
from dareroom.obs import metrics

LOGGER = logging.getLogger(__name__)


async def _store_status(store: Store, timeout: float = 0.5) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(store.ping(), timeout=timeout)
	except Exception as exc:
		metrics.mark_store(False)
		LOGGER.warning("Store readiness check failed", exc_info=True)
		return {"ok": False, "backend": store.backend, "error": str(exc)}
	latency = perf_counter() - start
	metrics.mark_store(True)
	return {"ok": True, "backend": store.backend, "latency_ms": round(latency * 1000, 2)}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness(store: Store) -> Tuple[int, Dict[str, Any]]:
	store_state = await _store_status(store)
	ok = bool(store_state.get("ok"))
	return (200 if ok else 503, {"status": "ok" if ok else "degraded", "store": store_state})
