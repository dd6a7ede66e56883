# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Suspending view over a blocking backend."""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Callable, Coroutine
from typing import Any, override


class ThreadedAsyncBackend:
    """Expose every member of a blocking backend as a coroutine function.

    Each call runs in the default executor through ``asyncio.to_thread``.
    Members the wrapped backend lacks stay absent, so capability detection
    behaves exactly as it would on the wrapped backend.

    Streams returned by ``open_read``/``open_write`` are the wrapped
    backend's blocking streams.

    Example::

        backend = ThreadedAsyncBackend(InMemoryBackend())
        text = await backend.read_text("/notes.txt")
    """

    __slots__ = ("_inner",)

    def __init__(self, inner: object) -> None:
        super().__init__()
        self._inner = inner

    @property
    def inner(self) -> object:
        """The wrapped blocking backend."""
        return self._inner

    def __getattr__(self, name: str) -> Callable[..., Coroutine[Any, Any, Any]]:
        if name.startswith("_"):
            raise AttributeError(name)
        member = getattr(self._inner, name)
        if not callable(member):
            raise AttributeError(name)

        @functools.wraps(member)
        async def threaded(*args: object, **kwargs: object) -> object:
            return await asyncio.to_thread(member, *args, **kwargs)

        return threaded

    @override
    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._inner!r})"


__all__ = ["ThreadedAsyncBackend"]
