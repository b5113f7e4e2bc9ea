"""Calling user code that may be sync or async.

Handlers and lifecycle hooks may be plain functions, coroutine
functions, or plain functions that hand back an awaitable. Every call
site goes through here.
"""

import functools
import inspect
from collections.abc import Callable, Iterable
from typing import Any

import anyio.to_thread


async def invoke(handler: Any, *args: Any, threaded: bool = False, **kwargs: Any) -> Any:
    """Call *handler* and resolve its result.

    With ``threaded=True`` a plain function runs in anyio's worker
    thread pool so blocking work does not stall the event loop.
    Coroutine functions always run on the loop.
    """
    if threaded and not inspect.iscoroutinefunction(handler):
        result = await anyio.to_thread.run_sync(functools.partial(handler, *args, **kwargs))
    else:
        result = handler(*args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result


async def run_hooks(hooks: Iterable[Callable[[], Any]]) -> None:
    """Run startup or shutdown hooks one after another."""
    for hook in hooks:
        await invoke(hook)
