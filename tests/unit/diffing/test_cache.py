"""
repro-report — unit tests for the de-duplicating diff cache

File: tests/unit/diffing/test_cache.py

Purpose
- Each distinct (hash_a, hash_b) key is rendered at most once, in-process and across runs.
- Concurrent callers for one key share a single computation.
- Distinct keys never share an artifact path.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from hypothesis import given
from hypothesis import strategies as st

from repro_report.diffing.cache import DiffCache
from repro_report.domain.errors import ContentNotFoundError, DiffComputationError
from repro_report.domain.models import DiffCacheKey
from repro_report.store.content_store import ContentAddressedStorage


class RecordingTool:
    def __init__(self, *, delay: float = 0.0, fail: bool = False) -> None:
        self.delay = delay
        self.fail = fail
        self.calls: list[tuple[str, str, str]] = []

    async def diff(self, output_name: str, location_a: Path, location_b: Path) -> bytes:
        self.calls.append((output_name, location_a.name, location_b.name))
        await asyncio.sleep(self.delay)
        if self.fail:
            raise DiffComputationError(f"diff of {output_name} failed", output_name=output_name)
        return f"<html>{output_name}: {location_a.name} vs {location_b.name}</html>".encode()


class RecordingLogger:
    def __init__(self) -> None:
        self.events: list[str] = []

    def debug(self, event: str, **_: object) -> None:
        self.events.append(event)

    def info(self, event: str, **_: object) -> None:
        self.events.append(event)


def _read_store(tmp_path: Path, *hashes: str) -> ContentAddressedStorage:
    root = tmp_path / "store"
    root.mkdir(exist_ok=True)
    for value in hashes:
        (root / value).write_bytes(f"blob {value}".encode())
    return ContentAddressedStorage(root)


def _cache(
    tmp_path: Path,
    tool: RecordingTool,
    read_store: ContentAddressedStorage,
    logger: RecordingLogger | None = None,
) -> DiffCache:
    report_dir = tmp_path / "report"
    return DiffCache(
        tool=tool,
        source_store=read_store,
        destination_store=ContentAddressedStorage(report_dir / "cas", writable=True),
        diff_dir=report_dir / "diff",
        logger=logger,
    )


async def test_miss_renders_persists_and_publishes_artifact(tmp_path: Path) -> None:
    store = _read_store(tmp_path, "aaa", "bbb")
    tool = RecordingTool()
    cache = _cache(tmp_path, tool, store)

    reference = await cache.resolve("hello", store.require("aaa"), store.require("bbb"))

    assert reference.key == DiffCacheKey("aaa", "bbb")
    assert reference.path == tmp_path / "report" / "diff" / "aaa-bbb.html"
    assert reference.href == "./diff/aaa-bbb.html"
    assert reference.path.read_bytes() == b"<html>hello: aaa vs bbb</html>"
    assert len(list((tmp_path / "report" / "cas").iterdir())) == 1
    assert tool.calls == [("hello", "aaa", "bbb")]


async def test_repeat_resolution_in_process_is_a_hit(tmp_path: Path) -> None:
    store = _read_store(tmp_path, "aaa", "bbb")
    tool = RecordingTool()
    cache = _cache(tmp_path, tool, store)

    first = await cache.resolve("hello", store.require("aaa"), store.require("bbb"))
    second = await cache.resolve("hello", store.require("aaa"), store.require("bbb"))

    assert first == second
    assert cache.computations == 1
    assert len(tool.calls) == 1


async def test_artifact_on_disk_counts_as_prior_computation(tmp_path: Path) -> None:
    store = _read_store(tmp_path, "aaa", "bbb")
    first_run = _cache(tmp_path, RecordingTool(), store)
    await first_run.resolve("hello", store.require("aaa"), store.require("bbb"))

    tool = RecordingTool()
    logger = RecordingLogger()
    second_run = _cache(tmp_path, tool, store, logger)
    reference = await second_run.resolve("hello", store.require("aaa"), store.require("bbb"))

    assert reference.path.is_file()
    assert tool.calls == []
    assert second_run.computations == 0
    assert logger.events == ["diff_cache_hit"]


async def test_concurrent_requests_share_one_computation(tmp_path: Path) -> None:
    store = _read_store(tmp_path, "aaa", "bbb")
    tool = RecordingTool(delay=0.02)
    cache = _cache(tmp_path, tool, store)

    references = await asyncio.gather(
        *(
            cache.resolve(f"caller-{index}", store.require("aaa"), store.require("bbb"))
            for index in range(6)
        )
    )

    assert len(set(references)) == 1
    assert len(tool.calls) == 1


async def test_order_of_the_pair_matters(tmp_path: Path) -> None:
    store = _read_store(tmp_path, "aaa", "bbb")
    tool = RecordingTool()
    cache = _cache(tmp_path, tool, store)

    forward = await cache.resolve("out", store.require("aaa"), store.require("bbb"))
    backward = await cache.resolve("out", store.require("bbb"), store.require("aaa"))

    assert forward.path.name == "aaa-bbb.html"
    assert backward.path.name == "bbb-aaa.html"
    assert len(tool.calls) == 2


async def test_tool_failure_is_memoized_and_leaves_no_artifact(tmp_path: Path) -> None:
    store = _read_store(tmp_path, "aaa", "bbb")
    tool = RecordingTool(fail=True)
    cache = _cache(tmp_path, tool, store)

    for _ in range(2):
        with pytest.raises(DiffComputationError):
            await cache.resolve("out", store.require("aaa"), store.require("bbb"))

    assert len(tool.calls) == 1
    assert not cache.artifact_path(DiffCacheKey("aaa", "bbb")).exists()


async def test_content_from_another_store_is_a_diff_error(tmp_path: Path) -> None:
    store = _read_store(tmp_path, "aaa", "bbb")
    other_root = tmp_path / "other"
    other_root.mkdir()
    (other_root / "aaa").write_bytes(b"x")
    other = ContentAddressedStorage(other_root)
    cache = _cache(tmp_path, RecordingTool(), store)

    with pytest.raises(DiffComputationError, match="belongs to store"):
        await cache.resolve("out", other.require("aaa"), store.require("bbb"))


async def test_existing_artifact_is_reused_without_the_source_blobs(tmp_path: Path) -> None:
    store = _read_store(tmp_path, "aaa", "bbb")
    await _cache(tmp_path, RecordingTool(), store).resolve_hashes(
        "hello", DiffCacheKey("aaa", "bbb")
    )
    for value in ("aaa", "bbb"):
        (tmp_path / "store" / value).unlink()

    tool = RecordingTool()
    rerun = _cache(tmp_path, tool, store)
    reference = await rerun.resolve_hashes("hello", DiffCacheKey("aaa", "bbb"))

    assert reference.path.read_bytes() == b"<html>hello: aaa vs bbb</html>"
    assert tool.calls == []
    assert rerun.computations == 0


async def test_missing_blob_is_only_an_error_on_a_miss(tmp_path: Path) -> None:
    store = _read_store(tmp_path, "aaa")
    tool = RecordingTool()
    cache = _cache(tmp_path, tool, store)

    with pytest.raises(ContentNotFoundError, match="'bbb' not found"):
        await cache.resolve_hashes("out", DiffCacheKey("aaa", "bbb"))

    assert tool.calls == []
    assert not cache.artifact_path(DiffCacheKey("aaa", "bbb")).exists()


def test_destination_store_must_be_writable(tmp_path: Path) -> None:
    store = _read_store(tmp_path)
    with pytest.raises(ValueError, match="writable"):
        DiffCache(
            tool=RecordingTool(),
            source_store=store,
            destination_store=store,
            diff_dir=tmp_path / "diff",
        )


_hashes = st.text(alphabet="0123456789abcdfghijklmnpqrsvwxyz", min_size=1, max_size=12)
_keys = st.tuples(_hashes, _hashes).filter(lambda pair: pair[0] != pair[1])


@given(first=_keys, second=_keys)
def test_distinct_keys_never_share_an_artifact_path(
    first: tuple[str, str], second: tuple[str, str]
) -> None:
    store = ContentAddressedStorage("/nonexistent/store")
    cache = DiffCache(
        tool=RecordingTool(),
        source_store=store,
        destination_store=ContentAddressedStorage("/nonexistent/cas", writable=True),
        diff_dir="/nonexistent/diff",
    )

    same_path = cache.artifact_path(DiffCacheKey(*first)) == cache.artifact_path(
        DiffCacheKey(*second)
    )

    assert same_path == (first == second)
