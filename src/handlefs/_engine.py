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

"""Drivers that run operation generators against a backend.

Every handle operation is written once, as a generator that yields
:class:`Call` requests and receives an :class:`~handlefs._outcome.Outcome`
for each. Traversals additionally yield :class:`Emit` markers carrying a
handle for the consumer. The drivers below execute those requests either
directly (blocking) or by awaiting them (suspending), so both calling
conventions share a single implementation of every algorithm.

Example::

    def exists(handle):
        outcome = yield Call(handle.backend, "exists", (handle.full_path,))
        return outcome.ok and bool(outcome.value)

    drive(exists(handle))               # blocking
    await drive_async(exists(handle))   # suspending
"""

from __future__ import annotations

import inspect
from collections.abc import AsyncIterator, Generator, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from ._outcome import Outcome
from .errors import BackendMismatchError, MissingCapabilityError
from .logging import get_logger

_logger = get_logger(__name__)


def _no_kwargs() -> Mapping[str, Any]:
    return {}


@dataclass(slots=True, frozen=True)
class Call:
    """Request to invoke one backend member.

    Attributes:
        backend: Object the member is looked up on.
        capability: Member name (see ``handlefs._protocol.CAPABILITIES``).
        args: Positional arguments, usually starting with the full path.
        kwargs: Keyword arguments.
        required: When True an absent member raises
            :class:`~handlefs.errors.MissingCapabilityError` instead of
            producing a failed outcome.
    """

    backend: object
    capability: str
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=_no_kwargs)
    required: bool = False


@dataclass(slots=True, frozen=True)
class Emit:
    """Traversal step handing ``item`` to the consumer."""

    item: Any


type Op[T] = Generator[Call, Outcome[Any], T]
type Traversal = Generator[Call | Emit, Outcome[Any] | None, None]


def _lookup(call: Call) -> Any:  # noqa: ANN401
    member = getattr(call.backend, call.capability, None)
    if member is None or not callable(member):
        if call.required:
            raise MissingCapabilityError(call.capability)
        return None
    return member


def _failed(call: Call, error: BaseException) -> Outcome[Any]:
    _logger.debug(
        "Backend call failed.",
        event="handlefs.backend.call_failed",
        context={
            "capability": call.capability,
            "args": call.args[:2],
            "error": repr(error),
        },
    )
    return Outcome.failure(error)


def invoke(call: Call) -> Outcome[Any]:
    """Execute ``call`` on a blocking backend and capture the result."""
    member = _lookup(call)
    if member is None:
        return Outcome.failure(MissingCapabilityError(call.capability))
    try:
        result = member(*call.args, **call.kwargs)
    except Exception as error:
        return _failed(call, error)
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        msg = (
            f"Backend member '{call.capability}' returned an awaitable; "
            "use AsyncFileHandle with suspending backends."
        )
        raise BackendMismatchError(msg)
    return Outcome.success(result)


async def invoke_async(call: Call) -> Outcome[Any]:
    """Execute ``call``, awaiting the result when the member is a coroutine."""
    member = _lookup(call)
    if member is None:
        return Outcome.failure(MissingCapabilityError(call.capability))
    try:
        result = member(*call.args, **call.kwargs)
        if inspect.isawaitable(result):
            result = await result
    except Exception as error:
        return _failed(call, error)
    return Outcome.success(result)


def drive[T](op: Op[T]) -> T:
    """Run ``op`` to completion, blocking on each backend call."""
    try:
        call = next(op)
        while True:
            call = op.send(invoke(call))
    except StopIteration as stop:
        return stop.value
    finally:
        op.close()


async def drive_async[T](op: Op[T]) -> T:
    """Run ``op`` to completion, suspending on each backend call."""
    try:
        call = next(op)
        while True:
            call = op.send(await invoke_async(call))
    except StopIteration as stop:
        return stop.value
    finally:
        op.close()


def iterate(traversal: Traversal) -> Iterator[Any]:
    """Lazily run ``traversal``, yielding every emitted item."""
    try:
        step = next(traversal)
        while True:
            if isinstance(step, Emit):
                yield step.item
                step = traversal.send(None)
            else:
                step = traversal.send(invoke(step))
    except StopIteration:
        return
    finally:
        traversal.close()


async def iterate_async(traversal: Traversal) -> AsyncIterator[Any]:
    """Suspending counterpart of :func:`iterate`."""
    try:
        step = next(traversal)
        while True:
            if isinstance(step, Emit):
                yield step.item
                step = traversal.send(None)
            else:
                step = traversal.send(await invoke_async(step))
    except StopIteration:
        return
    finally:
        traversal.close()


__all__ = [
    "Call",
    "Emit",
    "Op",
    "Traversal",
    "drive",
    "drive_async",
    "invoke",
    "invoke_async",
    "iterate",
    "iterate_async",
]
