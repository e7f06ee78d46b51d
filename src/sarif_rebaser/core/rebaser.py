"""UriRebaser: map scan-time artifact uris onto the current workspace.

Resolution order for ``translate_artifact_to_local`` (first hit wins):

1. cache (including "declined" tombstones)
2. the artifact uri itself exists
3. bases learned from earlier resolutions
4. consumer-supplied ``uri_bases``
5. workspace file with the longest common trailing run of segments
6. ask the user (interactive calls only)

``translate_local_to_artifact`` runs the mirror of 3-5 without touching the
disk and never prompts.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from sarif_rebaser.core.cache import InFlight, SelectionCache
from sarif_rebaser.core.collaborators import (
    CancellationToken,
    ExistenceOracle,
    PromptCollaborator,
    WorkspaceEnumerator,
    maybe_await,
)
from sarif_rebaser.core.names import distinct_names, map_distinct
from sarif_rebaser.core.paths import (
    CasePolicy,
    common_indices,
    common_length,
    common_suffix_length,
    file_name,
    join_uri,
    split_uri,
)
from sarif_rebaser.errors import MalformedUriError
from sarif_rebaser.model import PromptChoice, ResolutionState

logger = logging.getLogger(__name__)

# Artifacts whose contents are embedded in the log are served by the host.
EMBEDDED_SCHEME = "sarif:"


class UriRebaser:
    """Bidirectional artifact <-> local uri translation for one log set."""

    def __init__(
        self,
        distinct_artifact_names: Mapping[str, str] | None = None,
        *,
        oracle: ExistenceOracle,
        prompt: PromptCollaborator | None = None,
        workspace: WorkspaceEnumerator | None = None,
        policy: CasePolicy | None = None,
        cache: SelectionCache | None = None,
        artifact_uris: Iterable[str] | None = None,
        uri_bases: Sequence[str] = (),
    ) -> None:
        self.policy = policy or CasePolicy.detect()
        distinct_artifact_names = dict(distinct_artifact_names or {})
        self._artifact_names = map_distinct(
            (self.policy.key(name), uri) for name, uri in distinct_artifact_names.items()
        )
        self._known_artifacts = self._split_known(
            artifact_uris if artifact_uris is not None else distinct_artifact_names.values()
        )
        # (snapshot, name keys) of the last workspace listing seen.
        self._local_names: tuple[Sequence[str] | None, dict[str, str]] = (None, {})
        self._oracle = oracle
        self._prompt = prompt
        self._workspace = workspace
        self._cache = cache if cache is not None else SelectionCache(self.policy)
        self._in_flight = InFlight()
        self._uri_bases: list[str] = []
        self.uri_bases = uri_bases

    # ── properties ──────────────────────────────────────────────────

    @property
    def uri_bases(self) -> list[str]:
        return list(self._uri_bases)

    @uri_bases.setter
    def uri_bases(self, bases: Sequence[str]) -> None:
        bases = list(bases)
        for base in bases:
            split_uri(base)  # reject malformed overrides up front
        # Cached resolutions stay; only future misses see the new bases.
        self._uri_bases = bases

    @property
    def cache(self) -> SelectionCache:
        return self._cache

    def state(self, artifact_uri: str) -> ResolutionState:
        return self._cache.state(artifact_uri)

    # ── artifact -> local ───────────────────────────────────────────

    async def translate_artifact_to_local(
        self, artifact_uri: str, *, interactive: bool = True
    ) -> str:
        """Local uri for *artifact_uri*, or ``''`` when it cannot be found.

        ``interactive=False`` never prompts and never stores a tombstone, so
        a later interactive call for the same artifact may still ask.
        Raises ``MalformedUriError`` for unparseable input.
        """
        artifact_parts = split_uri(artifact_uri)
        if artifact_uri.startswith(EMBEDDED_SCHEME):
            return artifact_uri

        cached = self._cache.lookup(artifact_uri)
        if cached is not None:
            return cached

        return await self._in_flight.run(
            (artifact_uri, interactive),
            lambda: self._resolve(artifact_uri, artifact_parts, interactive),
        )

    async def resolve_all(
        self,
        artifact_uris: Iterable[str],
        *,
        token: CancellationToken | None = None,
        interactive: bool = True,
    ) -> dict[str, str]:
        """Resolve a batch in order; stop starting new ones once cancelled."""
        resolved: dict[str, str] = {}
        for artifact_uri in artifact_uris:
            if token is not None and token.is_cancellation_requested:
                logger.info("batch resolution cancelled, %d done", len(resolved))
                break
            resolved[artifact_uri] = await self.translate_artifact_to_local(
                artifact_uri, interactive=interactive
            )
        return resolved

    async def _resolve(
        self, artifact_uri: str, artifact_parts: list[str], interactive: bool
    ) -> str:
        cached = self._cache.lookup(artifact_uri)
        if cached is not None:
            return cached

        local_uri = await self._resolve_silently(artifact_uri, artifact_parts)
        if local_uri:
            self._cache.record(artifact_uri, local_uri)
            return local_uri

        if not interactive or self._prompt is None:
            logger.debug("no match for %s", artifact_uri)
            return ""
        return await self._ask_user(artifact_uri, artifact_parts)

    async def _exists(self, uri: str) -> bool:
        return bool(await maybe_await(self._oracle.exists(uri)))

    async def _resolve_silently(self, artifact_uri: str, artifact_parts: list[str]) -> str:
        if await self._exists(artifact_uri):
            logger.debug("exact match for %s", artifact_uri)
            return artifact_uri

        for artifact_base, local_base in self._cache.bases():
            if not self._has_prefix(artifact_parts, artifact_base):
                continue
            candidate = join_uri([*local_base, *artifact_parts[len(artifact_base):]])
            if await self._exists(candidate):
                logger.debug("learned base: %s -> %s", artifact_uri, candidate)
                return candidate

        candidate = await self._try_uri_bases(artifact_parts)
        if candidate:
            logger.debug("uri base: %s -> %s", artifact_uri, candidate)
            return candidate

        return await self._try_workspace(artifact_uri, artifact_parts)

    def _has_prefix(self, parts: Sequence[str], prefix: Sequence[str]) -> bool:
        return (
            len(parts) > len(prefix)
            and common_length(parts, prefix, self.policy.equal) == len(prefix)
        )

    async def _try_uri_bases(self, artifact_parts: list[str]) -> str:
        for base in self._uri_bases:
            base_parts = split_uri(base)
            for artifact_index, base_index in common_indices(
                artifact_parts, base_parts, self.policy.equal
            ):
                candidate_parts = [*base_parts[:base_index], *artifact_parts[artifact_index:]]
                candidate = join_uri(candidate_parts)
                if await self._exists(candidate):
                    self._cache.learn_base(artifact_parts, candidate_parts)
                    return candidate
        return ""

    async def _try_workspace(self, artifact_uri: str, artifact_parts: list[str]) -> str:
        if self._workspace is None:
            return ""
        best_uri, best_parts, best_length, ties = "", [], 0, 0
        for local_uri in self._workspace.files():
            try:
                local_parts = split_uri(local_uri)
            except MalformedUriError:
                logger.warning("ignoring malformed workspace uri %r", local_uri)
                continue
            length = common_suffix_length(artifact_parts, local_parts, self.policy)
            if length > best_length:
                best_uri, best_parts, best_length, ties = local_uri, local_parts, length, 1
            elif length and length == best_length:
                ties += 1

        if not best_uri:
            return ""
        if ties > 1:
            logger.warning(
                "%d workspace files match the last %d segment(s) of %s; using %s",
                ties,
                best_length,
                artifact_uri,
                best_uri,
            )
        if not await self._exists(best_uri):
            return ""
        self._cache.learn_base(artifact_parts, best_parts)
        return best_uri

    async def _ask_user(self, artifact_uri: str, artifact_parts: list[str]) -> str:
        choice = await maybe_await(self._prompt.ask_locate_or_skip(artifact_uri))
        if choice != PromptChoice.LOCATE:
            logger.info("user skipped %s", artifact_uri)
            self._cache.decline(artifact_uri)
            return ""

        picked = await maybe_await(self._prompt.pick_file(self._seed_directory()))
        if not picked:
            logger.info("file picker dismissed for %s", artifact_uri)
            self._cache.decline(artifact_uri)
            return ""

        picked_parts = split_uri(picked)
        if not self.policy.equal(artifact_parts[-1], picked_parts[-1]):
            logger.warning(
                "file names must match: %r and %r", artifact_parts[-1], picked_parts[-1]
            )
            return ""
        if not await self._exists(picked):
            logger.warning("picked file does not exist: %s", picked)
            return ""

        logger.info("user located %s at %s", artifact_uri, picked)
        self._cache.learn_base(artifact_parts, picked_parts)
        self._cache.record(artifact_uri, picked)
        return picked

    def _seed_directory(self) -> str | None:
        if self._uri_bases:
            return self._uri_bases[0]
        if self._workspace is not None:
            return self._workspace.root
        return None

    # ── local -> artifact ───────────────────────────────────────────

    async def translate_local_to_artifact(self, local_uri: str) -> str:
        """Artifact uri matching the local document, ``''`` when none does.

        Silent by contract: no prompt, no existence checks.  A hit is cached
        for this direction only; nothing here confirmed the artifact's local
        file, so artifact lookups and learned bases are left alone.
        """
        local_parts = split_uri(local_uri)
        cached = self._cache.lookup_local(local_uri)
        if cached is not None:
            return cached

        artifact_uri = (
            self._match_distinct_name(local_uri)
            or self._match_learned_bases(local_parts)
            or self._match_uri_bases(local_parts)
            or self._match_suffix(local_parts)
        )
        if not artifact_uri:
            logger.debug("no artifact for %s", local_uri)
            return ""
        self._cache.record_local(local_uri, artifact_uri)
        return artifact_uri

    @staticmethod
    def _split_known(artifact_uris: Iterable[str]) -> list[tuple[str, list[str]]]:
        known = []
        for artifact_uri in artifact_uris:
            try:
                known.append((artifact_uri, split_uri(artifact_uri)))
            except MalformedUriError:
                logger.warning("ignoring malformed artifact uri %r", artifact_uri)
        return known

    def _local_name_keys(self, files: Sequence[str]) -> dict[str, str]:
        snapshot, keys = self._local_names
        if snapshot is not files:
            keys = map_distinct(
                (self.policy.key(name), uri) for name, uri in distinct_names(files).items()
            )
            self._local_names = (files, keys)
        return keys

    def _match_distinct_name(self, local_uri: str) -> str:
        name = self.policy.key(file_name(local_uri))
        if name not in self._artifact_names:
            return ""
        files = self._workspace.files() if self._workspace is not None else ()
        # Without a workspace the open documents are the workspace.
        if files and name not in self._local_name_keys(files):
            return ""
        return self._artifact_names[name]

    def _same(self, a: Sequence[str], b: Sequence[str]) -> bool:
        return len(a) == len(b) and common_length(a, b, self.policy.equal) == len(a)

    def _match_learned_bases(self, local_parts: list[str]) -> str:
        for artifact_base, local_base in self._cache.bases():
            if not self._has_prefix(local_parts, local_base):
                continue
            candidate = [*artifact_base, *local_parts[len(local_base):]]
            for artifact_uri, artifact_parts in self._known_artifacts:
                if self._same(candidate, artifact_parts):
                    return artifact_uri
        return ""

    def _match_uri_bases(self, local_parts: list[str]) -> str:
        for base in self._uri_bases:
            base_parts = split_uri(base)
            for artifact_uri, artifact_parts in self._known_artifacts:
                for artifact_index, base_index in common_indices(
                    artifact_parts, base_parts, self.policy.equal
                ):
                    candidate = [*base_parts[:base_index], *artifact_parts[artifact_index:]]
                    if self._same(candidate, local_parts):
                        return artifact_uri
        return ""

    def _match_suffix(self, local_parts: list[str]) -> str:
        best_uri, best_length = "", 0
        for artifact_uri, artifact_parts in self._known_artifacts:
            length = common_suffix_length(artifact_parts, local_parts, self.policy)
            if length > best_length:
                best_uri, best_length = artifact_uri, length
        return best_uri
