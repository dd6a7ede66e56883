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

"""Process-level settings shared by handles."""

from __future__ import annotations

import functools
import os
from dataclasses import dataclass, field

from ._path import normalize_segments

_CWD_ENV = "HANDLEFS_CWD"


def _env_working_directory() -> str:
    return os.getenv(_CWD_ENV) or os.getcwd()


@dataclass(slots=True, frozen=True)
class HandleSettings:
    """Rendering and resolution settings for handles.

    Settings can be provided directly or fall back to the environment:

    - ``separator``: Defaults to ``os.sep``.
    - ``working_directory``: Falls back to ``HANDLEFS_CWD``, then to the
      process working directory at construction time.

    Example::

        settings = HandleSettings(separator="/", working_directory="/srv/app")
        handle = FileHandle("logs/today.txt", settings=settings)
        assert handle.full_path == "/srv/app/logs/today.txt"
    """

    separator: str = os.sep
    working_directory: str = field(default_factory=_env_working_directory)

    def resolved_base(self) -> tuple[str, ...]:
        """Return the working directory as a canonical segment tuple."""
        return normalize_segments(self.working_directory)


@functools.cache
def default_settings() -> HandleSettings:
    """Return the settings computed once for this process."""
    return HandleSettings()


__all__ = ["HandleSettings", "default_settings"]
