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

"""Result of a single backend call."""

from __future__ import annotations

from dataclasses import dataclass

from .errors import MissingCapabilityError


@dataclass(slots=True, frozen=True)
class Outcome[T]:
    """Success value or failure marker for one backend call.

    Operations inspect outcomes instead of catching exceptions, which keeps
    their aggregation logic independent of any particular backend.

    Attributes:
        value: Return value of the call on success, None on failure.
        error: Exception raised by the backend, or a
            :class:`~handlefs.errors.MissingCapabilityError` when the backend
            has no such member. None on success.
    """

    value: T | None = None
    error: BaseException | None = None

    @classmethod
    def success(cls, value: T) -> Outcome[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: BaseException) -> Outcome[T]:
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def missing(self) -> bool:
        """True when the call failed because the capability is absent."""
        return isinstance(self.error, MissingCapabilityError)

    def value_or[D](self, default: D) -> T | D:
        if self.error is not None or self.value is None:
            return default
        return self.value


__all__ = ["Outcome"]
