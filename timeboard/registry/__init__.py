"""Team-member registry: storage backends, authorization and the service."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timeboard.config import settings
from timeboard.registry.document_store import DocumentRegistryStore
from timeboard.registry.store import RegistryStore, TableRegistryStore

BACKENDS = {
    "table": TableRegistryStore,
    "document": DocumentRegistryStore,
}


def build_store(
    session_factory: async_sessionmaker[AsyncSession], backend: str | None = None
) -> RegistryStore:
    """Instantiate the configured registry backend."""
    name = (backend or settings.registry_backend).lower()
    try:
        store_cls = BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"Unknown registry backend {name!r}; expected one of {sorted(BACKENDS)}"
        ) from None
    return store_cls(session_factory)
