"""Asynchronous operation utilities"""

import asyncio
import concurrent.futures
import inspect
from typing import Any, Awaitable, Callable, Coroutine, TypeVar, Union

T = TypeVar('T')


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run async coroutine in sync context

    Args:
        coro: Coroutine to run

    Returns:
        Coroutine result
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    # Called from inside a running loop: use a fresh loop on a worker thread
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, coro).result()


async def maybe_await(value: Union[T, Awaitable[T]]) -> T:
    """Await ``value`` if it is awaitable, otherwise return it unchanged"""
    if inspect.isawaitable(value):
        return await value
    return value


async def call_handler(handler: Callable[..., Any], *args) -> Any:
    """Call a sync or async handler"""
    return await maybe_await(handler(*args))
