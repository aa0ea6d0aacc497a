import logging
import threading
from typing import Generator, Optional

from fastapi import Depends, Header, Request

from drillcraft.core.config import settings
from drillcraft.crud.content_store import ContentStore, SqlContentStore
from drillcraft.crud.memory_store import InMemoryContentStore
from drillcraft.db import session as db_session
from drillcraft.services.context import ServiceContext
from drillcraft.services.drill_generator import DrillGenerator
from drillcraft.services.generation_client import GenerationClient, build_generation_client

log = logging.getLogger(__name__)

_memory_store_lock = threading.Lock()


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Identity asserted by the upstream authentication proxy.

    A missing or blank header means the caller is anonymous.
    """

    if x_user_id is None:
        return None
    user_id = x_user_id.strip()
    return user_id or None


def _shared_memory_store(request: Request) -> InMemoryContentStore:
    state = request.app.state
    with _memory_store_lock:
        store = getattr(state, "content_store", None)
        if store is None:
            log.info("Utilisation du store de contenu en mémoire.")
            store = InMemoryContentStore()
            state.content_store = store
    return store


def get_content_store(request: Request) -> Generator[ContentStore, None, None]:
    # Only the SQL backend opens a database session.
    if settings.CONTENT_STORE_BACKEND == "memory":
        yield _shared_memory_store(request)
        return
    db = db_session.SessionLocal()
    try:
        yield SqlContentStore(db)
    finally:
        db.close()


def get_generation_client() -> GenerationClient:
    return build_generation_client()


def get_drill_generator() -> DrillGenerator:
    return DrillGenerator()


def get_service_context(
    store: ContentStore = Depends(get_content_store),
    generator: GenerationClient = Depends(get_generation_client),
) -> ServiceContext:
    return ServiceContext(store=store, generator=generator)
