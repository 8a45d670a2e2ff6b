from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")
R = TypeVar("R")

MAX_WORKERS = 8


def map_concurrently(fn: Callable[[T], R], items: Iterable[T], max_workers: int = MAX_WORKERS) -> list[R]:
    """Run ``fn`` over ``items`` on a thread pool and return results in input order.

    Exceptions raised by ``fn`` propagate once every call has finished.
    """
    pending = list(items)
    if not pending:
        return []
    if len(pending) == 1:
        return [fn(pending[0])]
    with ThreadPoolExecutor(max_workers=min(max_workers, len(pending))) as pool:
        futures = [pool.submit(fn, item) for item in pending]
        return [future.result() for future in futures]
