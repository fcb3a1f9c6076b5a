"""
De-duplicating diff cache.

Functional requirements
- Cache key is the ordered ``(hash_a, hash_b)`` pair; each key is computed at most once.
- Concurrent requests for one key share a single computation.
- A file already present at the key's artifact path counts as a prior
  computation, so reruns against the same report directory are idempotent.
  That check comes before the source blobs are looked up, so a rerun does
  not need the build outputs that were already diffed.
- Rendered diffs are kept in the destination content store and published
  atomically at ``<diff_dir>/{hash_a}-{hash_b}.<extension>``.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import structlog

from repro_report.diffing.tool import DiffTool
from repro_report.domain.errors import DiffComputationError
from repro_report.domain.models import ContentId, DiffArtifactRef, DiffCacheKey
from repro_report.store.content_store import ContentAddressedStorage
from repro_report.utils.concurrency import SingleFlight
from repro_report.utils.fs import atomic_copy, ensure_directory

PathLike = str | os.PathLike[str]


class DiffCache:
    """Resolve diff artifacts, computing each distinct key exactly once."""

    def __init__(
        self,
        *,
        tool: DiffTool,
        source_store: ContentAddressedStorage,
        destination_store: ContentAddressedStorage,
        diff_dir: PathLike,
        extension: str = "html",
        href_prefix: str = "./diff",
        logger: Any | None = None,
    ) -> None:
        if not destination_store.writable:
            raise ValueError("destination store must be writable")
        if not extension or "/" in extension:
            raise ValueError(f"invalid artifact extension {extension!r}")
        self._tool = tool
        self._source_store = source_store
        self._destination_store = destination_store
        self._diff_dir = Path(diff_dir)
        self._extension = extension
        self._href_prefix = href_prefix.rstrip("/")
        self._flights: SingleFlight[DiffCacheKey, DiffArtifactRef] = SingleFlight()
        self._computations = 0
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def diff_dir(self) -> Path:
        return self._diff_dir

    @property
    def computations(self) -> int:
        """Number of times the external diff tool has been invoked."""

        return self._computations

    def artifact_path(self, key: DiffCacheKey) -> Path:
        return self._diff_dir / key.artifact_name(self._extension)

    def reference_for(self, key: DiffCacheKey) -> DiffArtifactRef:
        name = key.artifact_name(self._extension)
        return DiffArtifactRef(
            key=key, path=self._diff_dir / name, href=f"{self._href_prefix}/{name}"
        )

    async def resolve(
        self,
        output_name: str,
        content_id_a: ContentId,
        content_id_b: ContentId,
    ) -> DiffArtifactRef:
        key = DiffCacheKey(content_id_a.hash, content_id_b.hash)
        return await self._flights.run(
            key, lambda: self._materialize(key, output_name, lambda: (content_id_a, content_id_b))
        )

    async def resolve_hashes(self, output_name: str, key: DiffCacheKey) -> DiffArtifactRef:
        """Like :meth:`resolve`, but the source store is consulted only on a miss."""

        def locate() -> tuple[ContentId, ContentId]:
            return self._source_store.require(key.hash_a), self._source_store.require(key.hash_b)

        return await self._flights.run(key, lambda: self._materialize(key, output_name, locate))

    async def abandon(self) -> None:
        """Cancel diff computations still in flight. Published artifacts stay valid."""

        await self._flights.abandon()

    async def _materialize(
        self,
        key: DiffCacheKey,
        output_name: str,
        locate: Callable[[], tuple[ContentId, ContentId]],
    ) -> DiffArtifactRef:
        reference = self.reference_for(key)
        if reference.path.is_file():
            self._logger.debug("diff_cache_hit", output=output_name, artifact=str(reference.path))
            return reference

        content_id_a, content_id_b = locate()
        try:
            location_a = self._source_store.physical_location(content_id_a)
            location_b = self._source_store.physical_location(content_id_b)
        except ValueError as exc:
            raise DiffComputationError(str(exc), output_name=output_name) from exc

        self._logger.info(
            "diff_started",
            output=output_name,
            hash_a=key.hash_a,
            hash_b=key.hash_b,
        )
        self._computations += 1
        rendered = await self._tool.diff(output_name, location_a, location_b)

        try:
            saved = self._destination_store.insert(rendered)
            ensure_directory(self._diff_dir)
            atomic_copy(saved.as_path(), reference.path)
        except OSError as exc:
            raise DiffComputationError(
                f"unable to persist diff of {output_name}: {exc}", output_name=output_name
            ) from exc

        self._logger.info(
            "diff_saved",
            output=output_name,
            blob=str(saved.as_path()),
            artifact=str(reference.path),
        )
        return reference


__all__ = ["DiffCache"]
