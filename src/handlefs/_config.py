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

"""JSON configuration documents addressed by dotted keys.

Example usage::

    config = ConfigFile.load(FileHandle("settings.json"), default={"ui": {}})
    config.set("ui.theme", "dark")
    assert config.get("ui.theme") == "dark"
    assert config.get("ui.font.size", 12) == 12
    config.save()
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ._handle import AsyncFileHandle, FileHandle


def _initial(loaded: object, default: Mapping[str, Any] | None) -> dict[str, Any]:
    if isinstance(loaded, dict):
        return loaded  # pyright: ignore[reportUnknownVariableType]
    return copy.deepcopy(dict(default or {}))


class _DottedDocument:
    __slots__ = ("data",)

    def __init__(self, data: dict[str, Any]) -> None:
        super().__init__()
        self.data = data

    def get(self, key: str, default: Any = None) -> Any:  # noqa: ANN401
        """Return the value at dotted ``key``.

        ``default`` is returned when any step is missing or is not a mapping.
        """
        current: Any = self.data
        for part in key.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return default
            current = current[part]  # pyright: ignore[reportUnknownVariableType]
        return current

    def set(self, key: str, value: object) -> None:
        """Store ``value`` at dotted ``key``, creating intermediate mappings.

        An intermediate value that is not a mapping is replaced.
        """
        *parents, leaf = key.split(".")
        current = self.data
        for part in parents:
            child = current.get(part)
            if not isinstance(child, dict):
                child = {}
                current[part] = child
            current = child  # pyright: ignore[reportUnknownVariableType]
        current[leaf] = value


class ConfigFile(_DottedDocument):
    """Configuration document backed by a blocking handle."""

    __slots__ = ("handle",)

    def __init__(self, handle: FileHandle, data: dict[str, Any]) -> None:
        super().__init__(data)
        self.handle = handle

    @classmethod
    def load(
        cls, handle: FileHandle, default: Mapping[str, Any] | None = None
    ) -> ConfigFile:
        """Read the document, or start from a copy of ``default`` if absent.

        A file holding something other than a JSON object also falls back
        to ``default``.
        """
        loaded = handle.read_json() if handle.exists() else None
        return cls(handle, _initial(loaded, default))

    def save(self) -> bool:
        return self.handle.write_json(self.data) is not None


class AsyncConfigFile(_DottedDocument):
    """Configuration document backed by a suspending handle."""

    __slots__ = ("handle",)

    def __init__(self, handle: AsyncFileHandle, data: dict[str, Any]) -> None:
        super().__init__(data)
        self.handle = handle

    @classmethod
    async def load(
        cls, handle: AsyncFileHandle, default: Mapping[str, Any] | None = None
    ) -> AsyncConfigFile:
        loaded = await handle.read_json() if await handle.exists() else None
        return cls(handle, _initial(loaded, default))

    async def save(self) -> bool:
        return await self.handle.write_json(self.data) is not None


__all__ = ["AsyncConfigFile", "ConfigFile"]
