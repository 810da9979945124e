from __future__ import annotations

import asyncio
from typing import Awaitable, Callable


class InterimPreviewer:
    """Debounces interim transcript text; only the latest text in a burst is previewed."""

    def __init__(self, *, debounce_s: float, on_settled: Callable[[str], Awaitable[None]]) -> None:
        self.debounce_s = debounce_s
        self._on_settled = on_settled
        self._task: asyncio.Task | None = None

    def push(self, text: str) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = asyncio.create_task(self._settle(text), name="interim-preview")

    async def flush(self) -> None:
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    async def _settle(self, text: str) -> None:
        if self.debounce_s > 0:
            await asyncio.sleep(self.debounce_s)
        await self._on_settled(text)
