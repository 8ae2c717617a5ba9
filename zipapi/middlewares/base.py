"""Base middleware architecture for FastAPI applications."""

from abc import ABC, abstractmethod

from fastapi import FastAPI, Request, Response
from starlette.datastructures import MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from zipapi.core.logger import LogIcon, logger


class BaseMiddleware(ABC):
    """Abstract base class for middlewares with before/after hooks."""

    endpoints: frozenset[str]

    def __init__(self, endpoints: frozenset[str] | list[str] | None = None) -> None:
        self.endpoints = frozenset(endpoints) if endpoints else frozenset()

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        # Check that at least one of before/after is implemented
        before_abstract = getattr(cls.before, "__isabstractmethod__", False)
        after_abstract = getattr(cls.after, "__isabstractmethod__", False)
        if before_abstract and after_abstract:
            raise TypeError(f"{cls.__name__} must implement at least one of before/after")

    def applies_to(self, path: str) -> bool:
        return not self.endpoints or path in self.endpoints

    @abstractmethod
    def before(self, request: Request) -> Request | Response:
        """Called before request handling. Return Request to continue or Response to short-circuit."""
        return request

    @abstractmethod
    def after(self, request: Request, status_code: int, headers: MutableHeaders) -> None:
        """Called when the response starts. Headers may be modified in place."""


class HookMiddleware:
    """
    Pure ASGI adapter running a ``BaseMiddleware``'s hooks.

    The response body is passed through untouched, so an exception raised
    while a streamed body is being sent still reaches the server and the
    connection is dropped without the terminating chunk.
    """

    def __init__(self, app: ASGIApp, middleware: BaseMiddleware) -> None:
        self.app = app
        self.middleware = middleware

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.middleware.applies_to(scope["path"]):
            await self.app(scope, receive, send)
            return

        result = self.middleware.before(Request(scope, receive))
        if isinstance(result, Response):
            await result(scope, receive, send)
            return

        async def send_with_hook(message: Message) -> None:
            if message["type"] == "http.response.start":
                self.middleware.after(result, message["status"], MutableHeaders(scope=message))
            await send(message)

        await self.app(scope, receive, send_with_hook)


class MiddlewareHandler:
    """Manages middleware registration for a FastAPI application."""

    def __init__(self, app: FastAPI) -> None:
        self._app = app
        self._middlewares: list[BaseMiddleware] = []

    @property
    def middlewares(self) -> list[BaseMiddleware]:
        return self._middlewares

    def register(self, middleware: BaseMiddleware) -> "MiddlewareHandler":
        """Register a middleware. Returns self for chaining."""
        self._middlewares.append(middleware)
        self._app.add_middleware(HookMiddleware, middleware=middleware)
        logger.info(f"Registered middleware: {middleware.__class__.__name__}", icon=LogIcon.ADAPTER)
        return self
