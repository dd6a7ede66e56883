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

from __future__ import annotations

import pytest

from handlefs import FileHandle, HandleSettings, InMemoryBackend
from tests.helpers import RecordingBackend, TreeBuilder


@pytest.fixture
def settings() -> HandleSettings:
    """Settings that render identically on every platform."""
    return HandleSettings(separator="/", working_directory="/work")


@pytest.fixture
def memory() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def recording(memory: InMemoryBackend) -> RecordingBackend:
    return RecordingBackend(memory)


@pytest.fixture
def root(memory: InMemoryBackend, settings: HandleSettings) -> FileHandle:
    return FileHandle("/", memory, settings=settings)


@pytest.fixture
def build_tree(memory: InMemoryBackend, settings: HandleSettings) -> TreeBuilder:
    """Return a factory populating the in-memory backend.

    Keys are paths relative to ``/``; a ``None`` value creates a directory,
    a string creates a file with that content.
    """

    def factory(layout: dict[str, str | None]) -> FileHandle:
        for relative, content in layout.items():
            path = "/" + relative
            if content is None:
                memory.mkdir(path, parents=True)
            else:
                parent = path.rsplit("/", 1)[0] or "/"
                memory.mkdir(parent, parents=True)
                memory.write_text(path, content)
        return FileHandle("/", memory, settings=settings)

    return factory
