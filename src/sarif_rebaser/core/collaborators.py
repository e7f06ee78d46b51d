"""Capabilities the rebaser consumes but does not implement.

The host (an editor, the CLI, a test) supplies these.  Methods may be plain
functions or coroutines; the rebaser awaits whatever comes back when it is
awaitable.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import sys
from pathlib import Path
from typing import Any, Awaitable, Iterable, Protocol, Sequence, TypeVar, Union
from urllib.parse import unquote, urlsplit

from sarif_rebaser.core.discover import DiscoverConfig, discover_workspace_uris
from sarif_rebaser.core.paths import file_name
from sarif_rebaser.model import PromptChoice

logger = logging.getLogger(__name__)

T = TypeVar("T")
MaybeAwaitable = Union[T, Awaitable[T]]


async def maybe_await(value: MaybeAwaitable[T]) -> T:
    if inspect.isawaitable(value):
        return await value
    return value  # type: ignore[return-value]


class ExistenceOracle(Protocol):
    def exists(self, uri: str) -> MaybeAwaitable[bool]:
        """True when *uri* names an existing local file."""
        ...


class PromptCollaborator(Protocol):
    def ask_locate_or_skip(self, artifact_uri: str) -> MaybeAwaitable[Any]:
        """Return ``"locate"``, ``"skip"`` or ``None`` (dismissed)."""
        ...

    def pick_file(self, seed_directory: str | None) -> MaybeAwaitable[str | None]:
        """Return the chosen local uri, or ``None`` when cancelled."""
        ...


class WorkspaceEnumerator(Protocol):
    root: str | None

    def files(self) -> Sequence[str]:
        """Snapshot of known local file uris, in enumeration order."""
        ...


class CancellationToken:
    """Host-owned flag checked before each batch step starts."""

    def __init__(self) -> None:
        self.is_cancellation_requested = False

    def cancel(self) -> None:
        self.is_cancellation_requested = True


# ── uri <-> filesystem ──────────────────────────────────────────────


def uri_to_path(uri: str) -> Path | None:
    """Filesystem path for a ``file:`` uri or plain path, else ``None``."""
    try:
        parts = urlsplit(uri)
    except ValueError:
        return None
    if len(parts.scheme) <= 1:
        return Path(uri)
    if parts.scheme != "file":
        return None
    path = unquote(parts.path)
    # file:///C:/x -> C:/x
    if sys.platform == "win32" and len(path) > 2 and path[0] == "/" and path[2] == ":":
        path = path[1:]
    if parts.netloc and parts.netloc != "localhost":
        path = f"//{parts.netloc}{path}"
    return Path(path)


# ── stock implementations ───────────────────────────────────────────


class FileSystemOracle:
    """Checks ``file:`` uris and plain paths against the local disk."""

    async def exists(self, uri: str) -> bool:
        path = uri_to_path(uri)
        if path is None:
            return False
        return await asyncio.to_thread(path.is_file)


class SetOracle:
    """Existence answered from a fixed set of uris."""

    def __init__(self, uris: Iterable[str]) -> None:
        self._uris = frozenset(uris)

    def exists(self, uri: str) -> bool:
        return uri in self._uris


class StaticWorkspace:
    """A fixed snapshot of workspace file uris."""

    def __init__(self, uris: Iterable[str], root: str | None = None) -> None:
        self._uris = list(uris)
        self.root = root

    def files(self) -> Sequence[str]:
        return self._uris


class DirectoryWorkspace:
    """Files under a directory, enumerated once and refreshed on demand."""

    def __init__(self, config: DiscoverConfig) -> None:
        self._config = config
        self.root = config.root.resolve().as_uri()
        self._uris: list[str] | None = None

    def files(self) -> Sequence[str]:
        if self._uris is None:
            self.refresh()
        return self._uris or []

    def refresh(self) -> None:
        self._uris = discover_workspace_uris(self._config)
        logger.debug("workspace %s: %d files", self.root, len(self._uris))


class SkipPrompt:
    """Never asks; every unresolved artifact is skipped."""

    def ask_locate_or_skip(self, artifact_uri: str) -> PromptChoice:
        return PromptChoice.SKIP

    def pick_file(self, seed_directory: str | None) -> str | None:
        return None


class ConsolePrompt:
    """Interactive prompt on stdin/stderr for the command line."""

    def __init__(self, stream=None) -> None:
        self._stream = stream if stream is not None else sys.stderr

    def _input(self, message: str) -> str:
        print(message, end="", file=self._stream, flush=True)
        try:
            return input()
        except EOFError:
            return ""

    async def ask_locate_or_skip(self, artifact_uri: str) -> PromptChoice | None:
        answer = await asyncio.to_thread(
            self._input,
            f"Unable to find '{file_name(artifact_uri)}' ({artifact_uri}). [l]ocate / [s]kip: ",
        )
        answer = answer.strip().lower()
        if answer in ("l", "locate"):
            return PromptChoice.LOCATE
        if answer in ("s", "skip"):
            return PromptChoice.SKIP
        return None

    async def pick_file(self, seed_directory: str | None) -> str | None:
        hint = f" (relative to {seed_directory})" if seed_directory else ""
        answer = (await asyncio.to_thread(self._input, f"Path to file{hint}: ")).strip()
        if not answer:
            return None
        path = Path(answer).expanduser()
        if not path.is_absolute() and seed_directory:
            seed = uri_to_path(seed_directory)
            if seed is not None:
                path = seed / path
        return path.resolve().as_uri()
