"""Bounded execution of blocking OS provider queries."""

import asyncio
from typing import Any, Callable


class ProviderError(RuntimeError):
    """An OS metric provider failed or did not answer in time."""


async def query(func: Callable[..., Any], *args: Any, timeout: float = 5.0, label: str = "") -> Any:
    """
    Run a blocking provider call in the default executor.

    Any failure, including the timeout, is raised as ProviderError so
    callers can degrade a single field or round.
    """
    name = label or getattr(func, "__name__", "provider")
    loop = asyncio.get_running_loop()
    try:
        return await asyncio.wait_for(loop.run_in_executor(None, func, *args), timeout)
    except asyncio.TimeoutError:
        raise ProviderError(f"{name}: timed out after {timeout:g}s") from None
    except asyncio.CancelledError:
        raise
    except Exception as e:
        raise ProviderError(f"{name}: {e}") from e
