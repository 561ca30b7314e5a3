from __future__ import annotations

import errno
import os
from pathlib import Path
import shutil
import stat
import sys

import pytest

from scriptfs.error_msg import (
    ConversionError,
    FilesystemIOError,
    NotFoundError,
    PermissionDeniedError,
    TypeMismatchError,
)
from scriptfs.primitives.filesystem import (
    canonicalize_path,
    copy_directory_recursively,
    create_directory,
    current_directory,
    delete_directory,
    delete_directory_recursively,
    file_name,
    is_dir,
    is_file,
    path_exists,
    path_to_extension,
    read_dir,
)


def _arg(*values) -> dict[str, object]:
    return {str(index): value for index, value in enumerate(values)}


def _names(entries: list[str]) -> list[str]:
    return sorted(os.path.basename(entry) for entry in entries)


def _tree_shape(root: Path) -> list[str]:
    """Relative paths of every entry below root, one level at a time via read-dir."""
    shape: list[str] = []
    pending = [root]
    while pending:
        current = pending.pop()
        for entry in read_dir.execute(**_arg(str(current))):
            relative = Path(entry).relative_to(root).as_posix()
            shape.append(relative)
            if is_dir.execute(**_arg(entry)):
                pending.append(Path(entry))
    return sorted(shape)


@pytest.mark.unit
def test_queries_on_existing_directory(tmp_path: Path):
    assert is_dir.execute(**_arg(str(tmp_path))) is True
    assert is_file.execute(**_arg(str(tmp_path))) is False
    assert path_exists.execute(**_arg(str(tmp_path))) is True


@pytest.mark.unit
def test_queries_on_regular_file(tmp_path: Path):
    target = tmp_path / "notes.txt"
    target.write_text("x", encoding="utf-8")
    assert is_dir.execute(**_arg(str(target))) is False
    assert is_file.execute(**_arg(str(target))) is True
    assert path_exists.execute(**_arg(target)) is True


@pytest.mark.unit
def test_queries_on_missing_path_fold_to_false(tmp_path: Path):
    missing = tmp_path / "nope" / "deeper"
    assert path_exists.execute(**_arg(str(missing))) is False
    assert is_dir.execute(**_arg(str(missing))) is False
    assert is_file.execute(**_arg(str(missing))) is False


@pytest.mark.unit
def test_queries_still_reject_non_path_arguments():
    with pytest.raises(ConversionError):
        is_dir.execute(**_arg(42))
    with pytest.raises(ConversionError):
        path_exists.execute(**_arg(True))
    with pytest.raises(ConversionError):
        is_file.execute()


@pytest.mark.unit
@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
def test_dangling_symlink_counts_as_missing(tmp_path: Path):
    link = tmp_path / "dangling"
    link.symlink_to(tmp_path / "gone")
    assert path_exists.execute(**_arg(str(link))) is False
    assert is_file.execute(**_arg(str(link))) is False


@pytest.mark.unit
def test_create_directory_creates_missing_ancestors(tmp_path: Path):
    target = tmp_path / "a" / "b" / "c"
    assert create_directory.execute(**_arg(str(target))) is None
    assert is_dir.execute(**_arg(str(target))) is True


@pytest.mark.unit
def test_create_directory_again_keeps_contents(tmp_path: Path):
    target = tmp_path / "again"
    create_directory.execute(**_arg(str(target)))
    (target / "keep.txt").write_text("kept", encoding="utf-8")

    create_directory.execute(**_arg(str(target)))

    assert (target / "keep.txt").read_text(encoding="utf-8") == "kept"


@pytest.mark.unit
def test_create_directory_over_file_is_type_mismatch(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")

    with pytest.raises(TypeMismatchError) as exc_info:
        create_directory.execute(**_arg(str(blocker)))
    assert exc_info.value.operation == "create-directory!"

    with pytest.raises(TypeMismatchError):
        create_directory.execute(**_arg(str(blocker / "child")))


@pytest.mark.unit
def test_delete_directory_removes_empty_directory(tmp_path: Path):
    target = tmp_path / "empty"
    target.mkdir()
    assert delete_directory.execute(**_arg(str(target))) is None
    assert path_exists.execute(**_arg(str(target))) is False


@pytest.mark.unit
def test_delete_directory_failures(tmp_path: Path):
    with pytest.raises(NotFoundError):
        delete_directory.execute(**_arg(str(tmp_path / "missing")))

    regular = tmp_path / "file.txt"
    regular.write_text("x", encoding="utf-8")
    with pytest.raises(TypeMismatchError):
        delete_directory.execute(**_arg(str(regular)))

    full = tmp_path / "full"
    full.mkdir()
    (full / "child.txt").write_text("x", encoding="utf-8")
    with pytest.raises(FilesystemIOError) as exc_info:
        delete_directory.execute(**_arg(str(full)))
    assert exc_info.value.kind == "IOError"
    assert exc_info.value.operation == "delete-directory!"
    assert (full / "child.txt").exists()


@pytest.mark.unit
def test_delete_directory_recursively_removes_tree(sample_tree: Path):
    delete_directory_recursively.execute(**_arg(str(sample_tree)))
    assert path_exists.execute(**_arg(str(sample_tree))) is False


@pytest.mark.unit
def test_delete_directory_recursively_failures(tmp_path: Path):
    with pytest.raises(NotFoundError):
        delete_directory_recursively.execute(**_arg(str(tmp_path / "missing")))

    regular = tmp_path / "file.txt"
    regular.write_text("x", encoding="utf-8")
    with pytest.raises(TypeMismatchError):
        delete_directory_recursively.execute(**_arg(str(regular)))


@pytest.mark.unit
@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
def test_delete_directory_recursively_refuses_symlink(sample_tree: Path, tmp_path: Path):
    link = tmp_path / "link"
    link.symlink_to(sample_tree, target_is_directory=True)
    with pytest.raises(TypeMismatchError):
        delete_directory_recursively.execute(**_arg(str(link)))
    assert (sample_tree / "readme.txt").exists()


@pytest.mark.unit
def test_copy_directory_recursively_preserves_structure(sample_tree: Path, tmp_path: Path):
    destination = tmp_path / "copy"
    assert copy_directory_recursively.execute(**_arg(str(sample_tree), str(destination))) is None

    assert _tree_shape(destination) == _tree_shape(sample_tree)
    for depth in (sample_tree, sample_tree / "docs", sample_tree / "docs" / "guides"):
        mirrored = destination / depth.relative_to(sample_tree)
        assert _names(read_dir.execute(**_arg(str(mirrored)))) == _names(
            read_dir.execute(**_arg(str(depth)))
        )
    assert (destination / "docs" / "guides" / "deep" / "data.bin").read_bytes() == bytes(range(256))
    assert is_dir.execute(**_arg(str(destination / "empty"))) is True


@pytest.mark.unit
def test_copy_directory_recursively_into_empty_existing_destination(sample_tree: Path, tmp_path: Path):
    destination = tmp_path / "existing"
    destination.mkdir()
    copy_directory_recursively.execute(**_arg(str(sample_tree), str(destination)))
    assert (destination / "readme.txt").read_text(encoding="utf-8") == "hello\n"


@pytest.mark.unit
def test_copy_directory_recursively_creates_destination_parents(sample_tree: Path, tmp_path: Path):
    destination = tmp_path / "x" / "y" / "copy"
    copy_directory_recursively.execute(**_arg(str(sample_tree), str(destination)))
    assert (destination / "docs" / "index.md").exists()


@pytest.mark.unit
def test_copy_directory_recursively_rejects_bad_endpoints(sample_tree: Path, tmp_path: Path):
    with pytest.raises(NotFoundError):
        copy_directory_recursively.execute(**_arg(str(tmp_path / "missing"), str(tmp_path / "out")))

    with pytest.raises(TypeMismatchError):
        copy_directory_recursively.execute(
            **_arg(str(sample_tree / "readme.txt"), str(tmp_path / "out"))
        )

    occupied = tmp_path / "occupied"
    occupied.mkdir()
    (occupied / "already.txt").write_text("x", encoding="utf-8")
    with pytest.raises(FilesystemIOError):
        copy_directory_recursively.execute(**_arg(str(sample_tree), str(occupied)))
    assert _names(read_dir.execute(**_arg(str(occupied)))) == ["already.txt"]

    regular = tmp_path / "regular"
    regular.write_text("x", encoding="utf-8")
    with pytest.raises(TypeMismatchError):
        copy_directory_recursively.execute(**_arg(str(sample_tree), str(regular)))

    assert path_exists.execute(**_arg(str(tmp_path / "out"))) is False


@pytest.mark.unit
def test_copy_directory_recursively_refuses_copy_into_itself(sample_tree: Path):
    nested = sample_tree / "docs" / "mirror"
    with pytest.raises(FilesystemIOError):
        copy_directory_recursively.execute(**_arg(str(sample_tree), str(nested)))
    assert not nested.exists()


@pytest.mark.unit
@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
def test_copy_directory_recursively_recreates_symlinks(sample_tree: Path, tmp_path: Path):
    (sample_tree / "latest").symlink_to("readme.txt")
    destination = tmp_path / "copy"
    copy_directory_recursively.execute(**_arg(str(sample_tree), str(destination)))
    copied = destination / "latest"
    assert copied.is_symlink()
    assert os.readlink(copied) == "readme.txt"


@pytest.mark.unit
def test_read_dir_lists_joined_entry_paths(sample_tree: Path):
    entries = read_dir.execute(**_arg(str(sample_tree)))
    assert sorted(entries) == sorted(
        str(sample_tree / name) for name in ("docs", "empty", "readme.txt")
    )
    assert read_dir.execute(**_arg(str(sample_tree / "empty"))) == []


@pytest.mark.unit
def test_read_dir_failures_are_errors_not_empty_lists(tmp_path: Path):
    with pytest.raises(NotFoundError) as exc_info:
        read_dir.execute(**_arg(str(tmp_path / "missing")))
    assert exc_info.value.kind == "NotFoundError"
    assert exc_info.value.path == str(tmp_path / "missing")

    regular = tmp_path / "file.txt"
    regular.write_text("x", encoding="utf-8")
    with pytest.raises(TypeMismatchError):
        read_dir.execute(**_arg(str(regular)))


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("/a/b/c.txt", "c.txt"),
        ("c.txt", "c.txt"),
        ("/a/b/", "b"),
        ("relative/dir/archive.tar.gz", "archive.tar.gz"),
    ],
)
def test_file_name(raw: str, expected: str):
    assert file_name.execute(**_arg(raw)) == expected


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["/", ".", ".."])
def test_file_name_without_final_component(raw: str):
    with pytest.raises(ConversionError):
        file_name.execute(**_arg(raw))


@pytest.mark.unit
@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("/a/b/c.txt", "txt"),
        ("/a/b/c", None),
        ("archive.tar.gz", "gz"),
        (".bashrc", None),
        ("foo.", ""),
        ("/a/b.d/c", None),
        ("/", None),
    ],
)
def test_path_to_extension(raw: str, expected: str | None):
    assert path_to_extension.execute(**_arg(raw)) == expected


@pytest.mark.unit
def test_current_directory_follows_process_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    cwd = current_directory.execute()
    assert os.path.isabs(cwd)
    assert os.path.samefile(cwd, tmp_path)
    assert is_dir.execute(**_arg(cwd)) is True


@pytest.mark.unit
@pytest.mark.skipif(not sys.platform.startswith("linux"), reason="removing the cwd is Linux specific")
def test_current_directory_removed_is_not_found(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    doomed = tmp_path / "doomed"
    doomed.mkdir()
    monkeypatch.chdir(doomed)
    doomed.rmdir()
    with pytest.raises(NotFoundError):
        current_directory.execute()


@pytest.mark.unit
def test_canonicalize_path(sample_tree: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(sample_tree)
    resolved = canonicalize_path.execute(**_arg("docs/../docs/guides"))
    assert resolved == str((sample_tree / "docs" / "guides").resolve())

    with pytest.raises(NotFoundError):
        canonicalize_path.execute(**_arg("missing/child"))


DEEP_LEVELS = 1100


def _deep_tree(root: Path, levels: int = DEEP_LEVELS) -> Path:
    """Build root/a/a/.../a iteratively with a file at the bottom; return the bottom dir."""
    current = str(root)
    os.mkdir(current)
    for _ in range(levels):
        current = os.path.join(current, "a")
        os.mkdir(current)
    with open(os.path.join(current, "leaf.txt"), "w", encoding="utf-8") as handle:
        handle.write("leaf")
    return Path(current)


@pytest.mark.unit
def test_copy_directory_recursively_handles_very_deep_trees(tmp_path: Path):
    source = tmp_path / "s"
    _deep_tree(source)
    destination = tmp_path / "d"

    try:
        copy_directory_recursively.execute(**_arg(str(source), str(destination)))

        bottom = os.path.join(str(destination), *(["a"] * DEEP_LEVELS))
        assert is_dir.execute(**_arg(bottom)) is True
        with open(os.path.join(bottom, "leaf.txt"), encoding="utf-8") as handle:
            assert handle.read() == "leaf"
        assert read_dir.execute(**_arg(bottom)) == [os.path.join(bottom, "leaf.txt")]
    finally:
        # pytest removes tmp dirs recursively; leave nothing this deep behind.
        for root in (source, destination):
            if root.exists():
                delete_directory_recursively.execute(**_arg(str(root)))


@pytest.mark.unit
def test_delete_directory_recursively_handles_very_deep_trees(tmp_path: Path):
    root = tmp_path / "s"
    _deep_tree(root)

    delete_directory_recursively.execute(**_arg(str(root)))

    assert path_exists.execute(**_arg(str(root))) is False
    assert read_dir.execute(**_arg(str(tmp_path))) == []


@pytest.mark.unit
@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
def test_delete_directory_recursively_removes_links_without_following(
    sample_tree: Path, tmp_path: Path
):
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "precious.txt").write_text("keep", encoding="utf-8")
    (sample_tree / "docs" / "link").symlink_to(outside, target_is_directory=True)

    delete_directory_recursively.execute(**_arg(str(sample_tree)))

    assert not sample_tree.exists()
    assert (outside / "precious.txt").read_text(encoding="utf-8") == "keep"


@pytest.mark.unit
def test_copy_directory_recursively_failure_leaves_partial_copy(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
):
    source = tmp_path / "flat"
    source.mkdir()
    for name in ("a.txt", "b.txt", "c.txt"):
        (source / name).write_text(name, encoding="utf-8")
    destination = tmp_path / "copy"

    real_copy = shutil.copy
    copied: list[str] = []

    def copy_then_deny(src, dst, *, follow_symlinks=True):
        copied.append(src)
        if len(copied) == 2:
            raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), src)
        return real_copy(src, dst, follow_symlinks=follow_symlinks)

    monkeypatch.setattr(shutil, "copy", copy_then_deny)

    with pytest.raises(PermissionDeniedError) as exc_info:
        copy_directory_recursively.execute(**_arg(str(source), str(destination)))

    assert exc_info.value.kind == "PermissionError"
    assert exc_info.value.operation == "copy-directory-recursively!"
    assert exc_info.value.path == copied[1]
    # No rollback: the first file stays, nothing after the failure is copied.
    assert _names(read_dir.execute(**_arg(str(destination)))) == [os.path.basename(copied[0])]
    assert (destination / os.path.basename(copied[0])).read_text(encoding="utf-8") == (
        os.path.basename(copied[0])
    )


@pytest.mark.unit
@pytest.mark.skipif(
    sys.platform == "win32" or os.geteuid() == 0,
    reason="permission bits are not enforced for root or on Windows",
)
def test_unreadable_directory_is_permission_error(tmp_path: Path):
    locked = tmp_path / "locked"
    locked.mkdir()
    (locked / "inside.txt").write_text("x", encoding="utf-8")
    locked.chmod(0)
    try:
        with pytest.raises(PermissionDeniedError) as exc_info:
            read_dir.execute(**_arg(str(locked)))
        assert exc_info.value.kind == "PermissionError"
        assert exc_info.value.path == str(locked)

        with pytest.raises(PermissionDeniedError):
            copy_directory_recursively.execute(**_arg(str(locked), str(tmp_path / "copy")))
    finally:
        locked.chmod(stat.S_IRWXU)
