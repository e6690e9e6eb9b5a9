"""Roster broadcasting."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, List

from dareroom.infra.store import Store
from dareroom.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

ROSTER_EVENT = "userList"

Broadcast = Callable[[str, Any], Awaitable[None]]


class PresenceBroadcaster:
	"""Pushes the full ``[{id, username}]`` roster to every connected session."""

	def __init__(self, store: Store, broadcast: Broadcast) -> None:
		self._store = store
		self._broadcast = broadcast

	async def roster(self) -> List[dict]:
		profiles = await self._store.list_profiles()
		return [profile.roster_entry() for profile in sorted(profiles, key=lambda p: p.id)]

	async def broadcast_roster(self) -> List[dict]:
		roster = await self.roster()
		await self._broadcast(ROSTER_EVENT, roster)
		obs_metrics.roster_broadcast()
		logger.debug("roster broadcast size=%d", len(roster))
		return roster
