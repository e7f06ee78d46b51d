"""Selection cache: per-rebaser memo of artifact <-> local resolutions.

One instance belongs to one ``UriRebaser``; nothing here is process-wide.
The two directions are stored independently because the mapping is not
guaranteed to be a bijection (two logs can name the same local file
differently).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Hashable, Sequence, TypeVar

from sarif_rebaser.core.paths import CasePolicy, common_suffix_length, join_uri
from sarif_rebaser.model import ResolutionState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SelectionCache:
    """Resolved mappings, tombstones and learned base prefixes."""

    def __init__(self, policy: CasePolicy | None = None) -> None:
        self.policy = policy or CasePolicy()
        self._artifact_to_local: dict[str, str] = {}
        self._local_to_artifact: dict[str, str] = {}
        self._declined: set[str] = set()
        self._bases: dict[tuple[str, ...], tuple[str, ...]] = {}

    def __len__(self) -> int:
        return len(self._artifact_to_local) + len(self._declined)

    # ── artifact -> local ───────────────────────────────────────────

    def lookup(self, artifact_uri: str) -> str | None:
        """Cached local uri, ``''`` for a tombstone, ``None`` on a miss."""
        if artifact_uri in self._declined:
            return ""
        return self._artifact_to_local.get(artifact_uri)

    def state(self, artifact_uri: str) -> ResolutionState:
        if artifact_uri in self._declined:
            return ResolutionState.DECLINED
        if artifact_uri in self._artifact_to_local:
            return ResolutionState.RESOLVED
        return ResolutionState.UNRESOLVED

    def record(self, artifact_uri: str, local_uri: str) -> None:
        """Store an oracle-confirmed mapping in both directions."""
        self._declined.discard(artifact_uri)
        self._artifact_to_local[artifact_uri] = local_uri
        self.record_local(local_uri, artifact_uri)

    def decline(self, artifact_uri: str) -> None:
        self._declined.add(artifact_uri)

    # ── local -> artifact ───────────────────────────────────────────

    def lookup_local(self, local_uri: str) -> str | None:
        return self._local_to_artifact.get(self.policy.normalize_uri(local_uri))

    def record_local(self, local_uri: str, artifact_uri: str) -> None:
        """Store a local -> artifact mapping only; artifact lookups never see it."""
        self._local_to_artifact[self.policy.normalize_uri(local_uri)] = artifact_uri

    # ── learned bases ───────────────────────────────────────────────

    def learn_base(self, artifact_parts: Sequence[str], local_parts: Sequence[str]) -> None:
        """Remember the differing roots of two paths that name one file.

        ``file:///d/e/a/b.c`` ~ ``file:///x/a/b.c`` learns
        ``file:///d/e`` -> ``file:///x``.  Prefixes are kept as segment
        tuples; an empty artifact prefix (relative artifact uris) is valid.
        """
        shared = common_suffix_length(artifact_parts, local_parts, self.policy)
        if shared == 0:
            return
        artifact_base = tuple(artifact_parts[: len(artifact_parts) - shared])
        local_base = tuple(local_parts[: len(local_parts) - shared])
        if artifact_base == local_base:
            return
        logger.debug(
            "learned base %r -> %r", join_uri(artifact_base), join_uri(local_base)
        )
        self._bases[artifact_base] = local_base

    def bases(self) -> list[tuple[tuple[str, ...], tuple[str, ...]]]:
        return list(self._bases.items())

    def clear(self) -> None:
        self._artifact_to_local.clear()
        self._local_to_artifact.clear()
        self._declined.clear()
        self._bases.clear()


class InFlight:
    """Share one running task per key between concurrent callers."""

    def __init__(self) -> None:
        self._tasks: dict[Hashable, asyncio.Task] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._tasks

    async def run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            task.add_done_callback(lambda _t, _key=key: self._forget(_key, _t))
        else:
            logger.debug("joining in-flight resolution for %r", key)
        # A cancelled waiter must not cancel the shared resolution.
        return await asyncio.shield(task)

    def _forget(self, key: Hashable, task: asyncio.Task) -> None:
        if self._tasks.get(key) is task:
            del self._tasks[key]
