"""Store lifespan event."""

from zipapi.core.lifespan import BaseEvent
from zipapi.core.logger import LogIcon, logger
from zipapi.store.base import Store


class StoreEvent(BaseEvent[Store]):
    """Initializes the store before the first request is served."""

    name = "store"

    def __init__(self, store: Store) -> None:
        self._store = store

    async def startup(self) -> Store:
        """Run ``Store.init`` and return the ready store; a ``StoreError`` aborts startup."""
        await self._store.init()
        logger.info(f"Store initialized: {type(self._store).__name__}", icon=LogIcon.DATABASE)
        return self._store
