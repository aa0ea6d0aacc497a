"""Explicit collaborators handed to the composer and the review service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from drillcraft.core.config import settings
from drillcraft.crud.content_store import ContentStore
from drillcraft.services.generation_client import GenerationClient
from drillcraft.utils.time_utils import utcnow


@dataclass
class ServiceContext:
    store: ContentStore
    generator: GenerationClient
    clock: Callable[[], datetime] = utcnow
    generation_timeout: float = field(default_factory=lambda: settings.GENERATION_TIMEOUT_SECONDS)
    reuse_pool: bool = field(default_factory=lambda: settings.REUSE_POOL_CONTENT)


__all__ = ["ServiceContext"]
