# -*- coding: utf-8 -*-
import pytest

from installer.exceptions import MaterializeError
from installer.materializer import materialize


def test_multiple_entries_land_under_target(settings, zip_bytes):
    target = settings.asset_root / "lib" / "core"
    blob = zip_bytes({"a.txt": b"a", "sub/b.txt": b"b"})

    result = materialize(blob, target, settings)

    assert result.success
    assert not result.flattened
    assert (target / "a.txt").read_bytes() == b"a"
    assert (target / "sub" / "b.txt").read_bytes() == b"b"


def test_single_file_is_flattened(settings, zip_bytes):
    target = settings.asset_root / "Scripts" / "Tool.cs"
    blob = zip_bytes({"Tool.cs": b"class Tool {}"})

    result = materialize(blob, target, settings)

    assert result.success
    assert result.flattened
    assert target.is_file()
    assert target.read_bytes() == b"class Tool {}"
    assert result.placed == [target]


def test_two_entries_into_existing_directory_merge(settings, zip_bytes):
    target = settings.asset_root / "P"
    target.mkdir()
    (target / "keep.txt").write_text("keep")
    (target / "a.txt").write_text("old")

    result = materialize(zip_bytes({"a.txt": b"new", "b.txt": b"b"}), target, settings)

    assert result.success
    assert not result.flattened
    assert (target / "keep.txt").read_text() == "keep"
    assert (target / "a.txt").read_bytes() == b"new"
    assert (target / "b.txt").read_bytes() == b"b"


def test_existing_directory_entry_is_replaced(settings, zip_bytes):
    target = settings.asset_root / "P"
    (target / "dir").mkdir(parents=True)
    (target / "dir" / "stale.txt").write_text("stale")
    (target / "other.txt").write_text("x")

    materialize(zip_bytes({"dir/fresh.txt": b"f"}), target, settings)

    assert not (target / "dir" / "stale.txt").exists()
    assert (target / "dir" / "fresh.txt").read_bytes() == b"f"


def test_reinstall_over_flattened_file(settings, zip_bytes):
    target = settings.asset_root / "Tool.cs"
    blob = zip_bytes({"Tool.cs": b"v1"})
    materialize(blob, target, settings)

    result = materialize(zip_bytes({"Tool.cs": b"v2"}), target, settings)

    assert result.success
    assert target.read_bytes() == b"v2"


def test_scratch_space_is_removed(settings, zip_bytes):
    materialize(zip_bytes({"a": b"1", "b": b"2"}), settings.asset_root / "x", settings)
    assert not settings.resolved_temp_dir.exists()


def test_corrupt_archive_reports_failure(settings):
    target = settings.asset_root / "broken"

    result = materialize(b"definitely not a zip", target, settings)

    assert not result.success
    assert isinstance(result.error, MaterializeError)
    assert result.error.target_path == target
    assert not target.exists()
    assert not settings.resolved_temp_dir.exists()


@pytest.mark.parametrize("damage", ["encrypted", "unknown_method"])
def test_unextractable_archive_reports_failure(settings, damaged_zip, damage):
    target = settings.asset_root / "Locked"
    blob = damaged_zip({"a.txt": b"a", "b.txt": b"b"}, damage)

    result = materialize(blob, target, settings)

    assert not result.success
    assert isinstance(result.error, MaterializeError)
    assert "Extraction to" in str(result.error)
    assert not target.exists()
    assert not settings.resolved_temp_dir.exists()


def test_corrupt_archive_keeps_flattened_install(settings, zip_bytes):
    target = settings.asset_root / "Tool.cs"
    materialize(zip_bytes({"Tool.cs": b"v1"}), target, settings)

    result = materialize(b"not a zip", target, settings)

    assert not result.success
    assert target.is_file()
    assert target.read_bytes() == b"v1"


def test_corrupt_archive_keeps_existing_directory(settings, zip_bytes):
    target = settings.asset_root / "P"
    materialize(zip_bytes({"a.txt": b"a", "b.txt": b"b"}), target, settings)

    result = materialize(b"not a zip", target, settings)

    assert not result.success
    assert (target / "a.txt").read_bytes() == b"a"
