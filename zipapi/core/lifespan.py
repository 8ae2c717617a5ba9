"""Lifespan management with event-based architecture for zipapi."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from zipapi.core.logger import LogIcon, logger


class State:
    """Mutable application state container with attribute access."""

    __slots__ = ("_data",)

    def __init__(self) -> None:
        object.__setattr__(self, "_data", {})

    def __getattr__(self, name: str) -> Any:
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"State has no attribute '{name}'") from None

    def __setattr__(self, name: str, value: Any) -> None:
        self._data[name] = value

    def __contains__(self, name: str) -> bool:
        return name in self._data

    def clear(self) -> None:
        self._data.clear()


class BaseEvent[T](ABC):
    """Abstract base class for lifespan events."""

    name: str
    state: State

    @abstractmethod
    async def startup(self) -> T:
        """Initialize and return the event instance."""
        ...

    async def shutdown(self, instance: T) -> None:  # noqa: B027
        """Optional cleanup. Override if cleanup is needed."""

    @classmethod
    def has_shutdown(cls) -> bool:
        """Check if shutdown was overridden."""
        return cls.shutdown is not BaseEvent.shutdown


class Lifespan:
    """Manages application lifespan with event registration."""

    def __init__(self) -> None:
        self._pending: list[BaseEvent[Any]] = []
        self._events: list[BaseEvent[Any]] = []
        self._state: State | None = None

    def register(self, event: BaseEvent[Any]) -> "Lifespan":
        """Register an event. Returns self for chaining."""
        self._pending.append(event)
        return self

    @property
    def state(self) -> State | None:
        """Access to state after startup execution."""
        return self._state

    @property
    def events(self) -> list[BaseEvent[Any]]:
        """Access to started events after startup."""
        return self._events

    async def startup(self, app: FastAPI) -> None:
        """Run every registered event and publish results on ``app.state.resources``."""
        logger.info("Starting application lifespan", icon=LogIcon.START)
        self._state = State()

        for event in self._pending:
            event.state = self._state

            logger.info(f"Starting event: {event.name}", icon=LogIcon.PROCESSING)
            instance = await event.startup()
            setattr(self._state, event.name, instance)
            logger.info(f"Event ready: {event.name}", icon=LogIcon.SUCCESS)

            self._events.append(event)

        app.state.resources = self._state
        logger.info("App state ready", icon=LogIcon.COMPLETE)

    async def shutdown(self) -> None:
        """Shut started events down in reverse order and clear state."""
        logger.info("Cleaning up app state", icon=LogIcon.TOOL)

        if not self._state:
            logger.info("No state to cleanup", icon=LogIcon.WARNING)
            return

        for event in reversed(self._events):
            if event.has_shutdown() and event.name in self._state:
                logger.info(f"Shutting down: {event.name}", icon=LogIcon.PROCESSING)
                instance = getattr(self._state, event.name)
                await event.shutdown(instance)
                logger.info(f"Shutdown complete: {event.name}", icon=LogIcon.SUCCESS)

        self._events.clear()
        self._state.clear()
        logger.info("Cleanup complete", icon=LogIcon.COMPLETE)

    @asynccontextmanager
    async def __call__(self, app: FastAPI) -> AsyncIterator[None]:
        await self.startup(app)
        try:
            yield
        finally:
            await self.shutdown()


def create_lifespan() -> Lifespan:
    """Create lifespan manager for event registration."""
    return Lifespan()
