"""Tini: a minimal HTTP request router.

Express-style path patterns, ordered first-match dispatch, middleware
chains that continue on ``None``, and composable routers with shared
prefixes and pre-callbacks. Served over ASGI.

Basic usage::

    from tini import App, Router

    app = App()

    @app.get("/hello/:name")
    def hello(request):
        return f"Hello, {request.params['name']}!"

    api = Router("/api/v1", require_token)
    api.get("/items/:id(\\d+)", lambda request: {"id": request.params["id"]})
    app.compose(api)

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "CompiledPattern",
    "ConfigurationError",
    "HTTPError",
    "NotFound",
    "PatternError",
    "Request",
    "Response",
    "RouteTable",
    "Router",
    "TiniError",
    "compile_pattern",
    "create_app",
    "dispatch",
    "g",
    "get_request",
    "negotiate",
]

# public name -> defining module
_LAZY_IMPORTS: dict[str, str] = {
    "App": "tini.app",
    "create_app": "tini.app",
    "AppConfig": "tini.config",
    "Request": "tini.http.request",
    "Response": "tini.http.response",
    "Router": "tini.routing.router",
    "RouteTable": "tini.routing.router",
    "CompiledPattern": "tini.routing.pattern",
    "compile_pattern": "tini.routing.pattern",
    "dispatch": "tini.server.dispatch",
    "negotiate": "tini.server.negotiation",
    "g": "tini.context",
    "get_request": "tini.context",
    "TiniError": "tini.errors",
    "ConfigurationError": "tini.errors",
    "PatternError": "tini.errors",
    "HTTPError": "tini.errors",
    "NotFound": "tini.errors",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import tini`` fast while providing a clean top-level API.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
