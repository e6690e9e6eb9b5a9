"""Random reveal of another participant's item."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from dareroom.domain.models import Item, ItemKind
from dareroom.domain.results import Emission, HandlerResult, Success, Target, handler_boundary, reply
from dareroom.infra.store import Store
from dareroom.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

DEFAULT_EMPTY_MESSAGE = "No items from your partner yet!"


@dataclass(slots=True, frozen=True)
class RevealCandidate:
	owner_id: str
	owner_name: str
	kind: ItemKind
	item: Item


class RevealSampler:
	"""Draws one item uniformly from every other participant's dares and truths.

	The pool is flat: a participant with more items is proportionally more
	likely to be the owner of the draw. Draws are with replacement.
	"""

	def __init__(
		self,
		store: Store,
		*,
		rng: Optional[random.Random] = None,
		empty_message: str = DEFAULT_EMPTY_MESSAGE,
	) -> None:
		self._store = store
		self._rng = rng or random.SystemRandom()
		self._empty_message = empty_message

	async def candidates(self, requester_id: str) -> tuple[str, List[RevealCandidate]]:
		"""Return the requester's current display name and the candidate pool."""
		requester_name = requester_id
		pool: List[RevealCandidate] = []
		for profile in await self._store.list_profiles():
			if profile.id == requester_id:
				requester_name = profile.username
				continue
			pool.extend(
				RevealCandidate(owner_id=profile.id, owner_name=profile.username, kind=kind, item=item)
				for kind, item in profile.all_items()
			)
		return requester_name, pool

	def choose(self, pool: List[RevealCandidate]) -> RevealCandidate:
		return self._rng.choice(pool)

	@handler_boundary("reveal")
	async def reveal(self, requester_id: str) -> HandlerResult:
		requester_name, pool = await self.candidates(requester_id)
		if not pool:
			obs_metrics.reveal("empty")
			return reply("revealResult", self._empty_message)
		chosen = self.choose(pool)
		obs_metrics.reveal("revealed")
		logger.info("reveal by %s drew a %s owned by %s", requester_id, chosen.kind.value, chosen.owner_id)
		return Success(
			emissions=(
				Emission("revealResult", chosen.item.text, Target.SELF),
				Emission(
					"revealNotification",
					{"username": requester_name, "item": chosen.item.text},
					Target.OTHERS,
				),
			)
		)
