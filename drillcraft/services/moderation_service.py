from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from drillcraft.core.config import settings
from drillcraft.core.errors import AuthenticationRequired
from drillcraft.core.tags import ProficiencyLevel
from drillcraft.crud.content_store import ContentStore
from drillcraft.schemas.drill_schema import ContentRecord

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class DownvoteResult:
    content_id: str
    downvotes: int
    hidden: bool


class ModerationGate:
    """Keeps heavily downvoted content out of the reuse pool.

    Learners who already hold an assignment to hidden content keep reviewing
    it; only future reuse is blocked.
    """

    def __init__(
        self,
        store: ContentStore,
        *,
        threshold: Optional[int] = None,
        ceiling: Optional[int] = None,
    ):
        self.store = store
        self.threshold = settings.DOWNVOTE_THRESHOLD if threshold is None else threshold
        self.ceiling = settings.DOWNVOTE_CEILING if ceiling is None else ceiling

    def is_reusable(self, content: ContentRecord) -> bool:
        return content.downvotes < self.threshold

    def filter_reusable(self, items: Iterable[ContentRecord]) -> List[ContentRecord]:
        return [item for item in items if self.is_reusable(item)]

    def reusable_candidates(
        self, user_id: Optional[str], level: ProficiencyLevel, limit: int
    ) -> List[ContentRecord]:
        candidates = self.store.list_reusable_content(
            user_id, level, threshold=self.threshold, limit=limit
        )
        # Counts may have moved between the query and now.
        return self.filter_reusable(candidates)

    def record_downvote(self, user_id: Optional[str], content_id: str) -> DownvoteResult:
        if not user_id:
            raise AuthenticationRequired("Sign in to flag content")

        downvotes = self.store.increment_downvote(content_id, ceiling=self.ceiling)
        hidden = downvotes >= self.threshold
        if hidden:
            logger.info("Content %s hidden from reuse (%s downvotes)", content_id, downvotes)
        return DownvoteResult(content_id=content_id, downvotes=downvotes, hidden=hidden)


__all__ = ["DownvoteResult", "ModerationGate"]
