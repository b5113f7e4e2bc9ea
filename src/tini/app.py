"""The tini application: a root router plus the ASGI entry point.

Two phases. During setup, routes, nested routers and lifecycle hooks are
registered from a single thread. The first HTTP request or lifespan
startup flattens everything into a ``RouteTable`` exactly once; from then
on the app only reads that table and rejects further registration.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any, TypeAlias

from tini._internal.asgi import Receive, Scope, Send
from tini._internal.invoke import run_hooks
from tini._internal.types import Handler
from tini.config import AppConfig
from tini.errors import ConfigurationError
from tini.routing.router import Router, RouteTable
from tini.server.handler import handle_request

logger = logging.getLogger("tini.server")

Registration: TypeAlias = Callable[[Handler], Handler] | None


class App:
    """An ASGI application dispatching through one root ``Router``.

    Usage::

        app = App(AppConfig(debug=True))

        @app.get("/users/:id")
        def user(request):
            return {"id": request.params["id"]}

        app.compose(Router("/api", require_token))
        app.run()

    The freeze is guarded by a lock with a double check, so concurrent
    first requests on a threaded server still flatten the routes once.
    """

    __slots__ = (
        "_freeze_error",
        "_freeze_lock",
        "_frozen",
        "_router",
        "_setup",
        "_shutdown_hooks",
        "_startup_hooks",
        "_table",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        setup: Callable[[Router], None] | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self._router = Router(sensitive=self.config.sensitive, strict=self.config.strict)
        self._setup = setup
        self._startup_hooks: list[Callable[[], Any]] = []
        self._shutdown_hooks: list[Callable[[], Any]] = []
        self._freeze_lock = threading.Lock()
        self._freeze_error: Exception | None = None
        self._frozen = False
        self._table: RouteTable | None = None

    # -- Setup phase --

    @property
    def router(self) -> Router:
        """The root router; the verb shortcuts below register on it."""
        return self._router

    def get(self, pattern: str, *handlers: Handler) -> Registration:
        return self.use("GET", pattern, *handlers)

    def post(self, pattern: str, *handlers: Handler) -> Registration:
        return self.use("POST", pattern, *handlers)

    def put(self, pattern: str, *handlers: Handler) -> Registration:
        return self.use("PUT", pattern, *handlers)

    def delete(self, pattern: str, *handlers: Handler) -> Registration:
        return self.use("DELETE", pattern, *handlers)

    def use(self, method: str, pattern: str, *handlers: Handler) -> Registration:
        """Register *handlers* for *method* and *pattern*.

        With no handlers, returns a decorator instead. Every shortcut
        funnels through here so the frozen check lives in one place.
        """
        self._check_not_frozen()
        return self._router.use(method, pattern, *handlers)

    def compose(self, router: Router) -> None:
        """Nest *router* at the current position in registration order."""
        self._check_not_frozen()
        self._router.compose(router)

    def on_startup(self, func: Callable[[], Any]) -> Callable[[], Any]:
        """Decorator: run *func* at lifespan startup, after the routes freeze."""
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[[], Any]) -> Callable[[], Any]:
        """Decorator: run *func* at lifespan shutdown."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, routers and hooks during setup."
            )
            raise RuntimeError(msg)

    # -- Freeze --

    @property
    def table(self) -> RouteTable:
        """The flattened route table. Reading it freezes the app."""
        return self._ensure_frozen()

    def _ensure_frozen(self) -> RouteTable:
        table = self._table
        if table is None:
            with self._freeze_lock:
                if self._table is None:
                    self._table = self._freeze()
            table = self._table
        return table

    def _freeze(self) -> RouteTable:
        """Run setup and flatten, once. A failure is final for this app.

        Setup may have registered part of its routes before failing, so
        it is never retried; later calls raise ``ConfigurationError``
        chained to the first failure.
        """
        # Caller holds _freeze_lock
        if self._freeze_error is not None:
            msg = "App setup already failed; fix it and restart the app."
            raise ConfigurationError(msg) from self._freeze_error
        setup, self._setup = self._setup, None
        self._frozen = True
        try:
            if setup is not None:
                setup(self._router)
            table = self._router.flatten()
        except Exception as exc:
            self._freeze_error = exc
            raise
        logger.debug("app frozen with %d routes", len(table))
        return table

    # -- Serving --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Freeze the routes and serve the app with uvicorn.

        Needs the ``server`` extra: ``pip install 'tini[server]'``.
        """
        self._ensure_frozen()
        try:
            import uvicorn
        except ImportError as exc:
            msg = "uvicorn is required to run the server. Install it with: pip install 'tini[server]'"
            raise RuntimeError(msg) from exc

        uvicorn.run(
            self,
            host=host or self.config.host,
            port=port or self.config.port,
            log_level=self.config.log_level,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3 entry point for ``http`` and ``lifespan`` scopes."""
        match scope["type"]:
            case "lifespan":
                await self._lifespan(receive, send)
            case "http":
                await handle_request(
                    scope,
                    receive,
                    send,
                    table=self._ensure_frozen(),
                    debug=self.config.debug,
                    threaded=self.config.sync_handlers_in_thread,
                )

    async def _lifespan(self, receive: Receive, send: Send) -> None:
        """Answer the lifespan protocol.

        Startup freezes the routes before running hooks, so a malformed
        pattern or failing setup callback aborts server start with
        ``lifespan.startup.failed``.
        """
        while True:
            event = (await receive())["type"]
            if event == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    await run_hooks(self._startup_hooks)
                except Exception as exc:
                    logger.exception("startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif event == "lifespan.shutdown":
                await run_hooks(self._shutdown_hooks)
                await send({"type": "lifespan.shutdown.complete"})
                return


def create_app(setup: Callable[[Router], None], config: AppConfig | None = None) -> App:
    """Build an App whose routes are registered by *setup*.

    *setup* receives the root router and runs exactly once, when the app
    freezes on its first request or at lifespan startup::

        def routes(router):
            router.get("/", lambda request: "hello")

        app = create_app(routes)
    """
    return App(config, setup=setup)
