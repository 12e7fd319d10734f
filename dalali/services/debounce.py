# dalali/services/debounce.py
"""
Coalesce rapid edits to the same field into one write.

Keys are (user_id, line_id, field). A submit replaces any value still
waiting for its window; only the last value is written. Writes for one key
never overlap: a newer value waits for the in-flight write to finish.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional

from ..errors import StoreError

logger = logging.getLogger(__name__)

Writer = Callable[[Hashable, Any], Awaitable[Any]]


class WriteDebouncer:
    def __init__(self, window: float, writer: Writer):
        self.window = window
        self._writer = writer
        self._values: Dict[Hashable, Any] = {}
        self._timers: Dict[Hashable, asyncio.Task] = {}
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}
        self._errors: Dict[Hashable, BaseException] = {}

    def submit(self, key: Hashable, value: Any) -> None:
        """Schedule `value` for `key`, superseding any unsent value."""
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()
        self._values[key] = value
        self._timers[key] = asyncio.get_running_loop().create_task(self._wait_then_send(key))

    def pending(self, key: Hashable) -> bool:
        return key in self._values

    async def _wait_then_send(self, key: Hashable) -> None:
        await asyncio.sleep(self.window)
        # past this point a newer submit starts a new timer instead of cancelling us
        self._timers.pop(key, None)
        await self._send(key)

    async def _send(self, key: Hashable) -> None:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                if key not in self._values:
                    return
                value = self._values.pop(key)
                try:
                    await self._writer(key, value)
                except Exception as e:
                    logger.warning("debounced write failed for %s: %s", key, e)
                    self._errors[key] = e
                else:
                    self._errors.pop(key, None)
        finally:
            # a lock nobody holds or waits on is dropped; the next send makes a new one
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                self._locks.pop(key, None)

    def discard(self, predicate: Callable[[Hashable], bool]) -> None:
        """Forget unsent values and kept errors for matching keys without writing."""
        for key in [k for k in self._timers if predicate(k)]:
            self._timers.pop(key).cancel()
        for bucket in (self._values, self._errors):
            for key in [k for k in bucket if predicate(k)]:
                del bucket[key]

    async def flush(self, predicate: Optional[Callable[[Hashable], bool]] = None) -> None:
        """
        Write every pending value now (only keys matching `predicate`, if given)
        and wait for in-flight writes. Raises StoreError if any of those
        writes failed.
        """
        def wanted(k: Hashable) -> bool:
            return predicate is None or predicate(k)

        for key in [k for k in self._timers if wanted(k)]:
            self._timers.pop(key).cancel()

        keys = {k for k in list(self._values) + list(self._locks) if wanted(k)}
        if keys:
            await asyncio.gather(*(self._send(k) for k in keys))

        failed = [k for k in self._errors if wanted(k)]
        if failed:
            first = self._errors[failed[0]]
            for k in failed:
                self._errors.pop(k, None)
            raise StoreError(f"saving cart edits failed: {first}", step="save_cart_edits")

    async def close(self) -> None:
        await self.flush()
