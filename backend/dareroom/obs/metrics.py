"""Central registry for Prometheus metrics used across the service."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from time import perf_counter
from typing import Iterator

from prometheus_client import Counter, Gauge, Histogram

log = logging.getLogger(__name__)


SOCKET_CLIENTS = Gauge(
	"dareroom_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"dareroom_socketio_events_total",
	"Socket.IO events received per namespace",
	["namespace", "event"],
)

AUTH_FAILURES = Counter(
	"dareroom_auth_failures_total",
	"Refused socket handshakes",
	["reason"],
)

HANDLER_FAILURES = Counter(
	"dareroom_handler_failures_total",
	"Inbound events that ended without a reply",
	["event", "kind"],
)

REVEALS = Counter(
	"dareroom_reveals_total",
	"Reveal requests by outcome",
	["outcome"],
)

ROSTER_BROADCASTS = Counter(
	"dareroom_roster_broadcasts_total",
	"Roster broadcasts sent to every connected session",
)

STORE_OPS = Histogram(
	"dareroom_store_op_duration_seconds",
	"Store adapter operation latency in seconds",
	["backend", "op"],
	buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

STORE_ERRORS = Counter(
	"dareroom_store_errors_total",
	"Store adapter operations that raised",
	["backend", "op"],
)

STORE_UP = Gauge(
	"dareroom_store_up",
	"Store availability as seen by the readiness probe",
)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def auth_failed(reason: str) -> None:
	AUTH_FAILURES.labels(reason=reason).inc()


def handler_failed(event: str, kind: str) -> None:
	HANDLER_FAILURES.labels(event=event, kind=kind).inc()


def reveal(outcome: str) -> None:
	REVEALS.labels(outcome=outcome).inc()


def roster_broadcast() -> None:
	ROSTER_BROADCASTS.inc()


def mark_store(ok: bool) -> None:
	STORE_UP.set(1.0 if ok else 0.0)


@contextmanager
def store_op(backend: str, op: str) -> Iterator[None]:
	start = perf_counter()
	try:
		yield
	except Exception:
		STORE_ERRORS.labels(backend=backend, op=op).inc()
		raise
	finally:
		STORE_OPS.labels(backend=backend, op=op).observe(perf_counter() - start)
