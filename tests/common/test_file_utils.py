import pytest
from pytest_mock import MockerFixture

from common.file_utils import (
    cleanup_directory,
    delete_meta_file,
    meta_path_for,
    prune_empty_parents,
    remove_path,
)
from installer.exceptions import FilesystemDeleteError


def test_meta_path_for(settings, tmp_path):
    assert meta_path_for(tmp_path / "Tool.cs", settings) == tmp_path / "Tool.cs.meta"
    assert meta_path_for(tmp_path / "dir", None) == tmp_path / "dir.meta"


def test_remove_file_and_meta(settings, tmp_path):
    target = tmp_path / "Tool.cs"
    target.write_text("x")
    (tmp_path / "Tool.cs.meta").write_text("guid")

    assert remove_path(target, settings) is True
    assert not target.exists()
    assert not (tmp_path / "Tool.cs.meta").exists()


def test_remove_directory_tree(settings, tmp_path):
    target = tmp_path / "lib"
    (target / "nested").mkdir(parents=True)
    (target / "nested" / "a.txt").write_text("a")

    assert remove_path(target, settings) is True
    assert not target.exists()


def test_remove_missing_path_still_deletes_orphan_meta(settings, tmp_path):
    (tmp_path / "gone.meta").write_text("guid")

    assert remove_path(tmp_path / "gone", settings) is False
    assert not (tmp_path / "gone.meta").exists()


def test_remove_path_wraps_os_error(settings, tmp_path, mocker: MockerFixture):
    target = tmp_path / "locked.txt"
    target.write_text("x")
    mocker.patch("pathlib.Path.unlink", side_effect=PermissionError("denied"))

    with pytest.raises(FilesystemDeleteError) as excinfo:
        remove_path(target, settings)
    assert excinfo.value.path == target


def test_delete_meta_file_without_marker(settings, tmp_path):
    assert delete_meta_file(tmp_path / "nothing", settings) is False


def test_prune_empty_parents_stops_at_non_empty(settings, tmp_path):
    root = tmp_path / "Assets"
    leaf_parent = root / "a" / "b" / "c"
    leaf_parent.mkdir(parents=True)
    (root / "a" / "keep.txt").write_text("keep")
    (root / "a" / "b.meta").write_text("guid")

    removed = prune_empty_parents(leaf_parent / "file.txt", root, settings)

    assert removed == 2
    assert not (root / "a" / "b").exists()
    assert not (root / "a" / "b.meta").exists()
    assert (root / "a" / "keep.txt").exists()


def test_prune_empty_parents_never_removes_stop_dir(settings, tmp_path):
    root = tmp_path / "Assets"
    (root / "only").mkdir(parents=True)

    removed = prune_empty_parents(root / "only" / "file.txt", root, settings)

    assert removed == 1
    assert root.is_dir()


def test_prune_empty_parents_outside_stop_dir(settings, tmp_path):
    outside = tmp_path / "outside"
    outside.mkdir()

    assert prune_empty_parents(outside / "x", tmp_path / "Assets", settings) == 0
    assert outside.exists()


def test_cleanup_directory(settings, tmp_path):
    scratch = tmp_path / "scratch"
    (scratch / "deep").mkdir(parents=True)
    (scratch / "deep" / "f").write_text("f")

    cleanup_directory(scratch, settings)
    cleanup_directory(scratch, settings)

    assert not scratch.exists()
