"""Tests for the flat content-addressed store."""

from __future__ import annotations

from pathlib import Path

import pytest

from repro_report.domain.errors import ContentNotFoundError, DiffComputationError
from repro_report.store.content_store import ContentAddressedStorage
from repro_report.utils.hashing import sha256_bytes


def test_str_to_id_resolves_existing_regular_files_only(tmp_path: Path) -> None:
    (tmp_path / "aaa").write_bytes(b"blob")
    (tmp_path / "dir").mkdir()
    store = ContentAddressedStorage(tmp_path)

    content_id = store.str_to_id("aaa")

    assert content_id is not None
    assert store.physical_location(content_id) == tmp_path / "aaa"
    assert store.str_to_id("missing") is None
    assert store.str_to_id("dir") is None
    assert store.str_to_id("../aaa") is None


def test_require_raises_a_diff_computation_error(tmp_path: Path) -> None:
    store = ContentAddressedStorage(tmp_path)

    with pytest.raises(ContentNotFoundError) as excinfo:
        store.require("bbb")

    assert isinstance(excinfo.value, DiffComputationError)
    assert excinfo.value.hash_value == "bbb"


def test_ids_are_scoped_to_their_store(tmp_path: Path) -> None:
    first_root = tmp_path / "first"
    second_root = tmp_path / "second"
    first_root.mkdir()
    second_root.mkdir()
    (first_root / "aaa").write_bytes(b"x")
    (second_root / "aaa").write_bytes(b"x")
    first = ContentAddressedStorage(first_root)
    second = ContentAddressedStorage(second_root)

    foreign = first.require("aaa")

    assert foreign != second.require("aaa")
    with pytest.raises(ValueError, match="belongs to store"):
        second.physical_location(foreign)


def test_insert_is_content_addressed_and_idempotent(tmp_path: Path) -> None:
    store = ContentAddressedStorage(tmp_path / "cas", writable=True)

    first = store.insert(b"<html>diff</html>")
    second = store.insert(b"<html>diff</html>")

    assert first == second
    assert first.hash == sha256_bytes(b"<html>diff</html>")
    assert first.as_path().read_bytes() == b"<html>diff</html>"
    assert len(list((tmp_path / "cas").iterdir())) == 1


def test_insert_into_read_only_store_is_rejected(tmp_path: Path) -> None:
    store = ContentAddressedStorage(tmp_path)

    with pytest.raises(PermissionError):
        store.insert(b"data")
