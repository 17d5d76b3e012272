"""Tests for Adapter over a restricted host filesystem."""

import os

import pytest

from bridgefs import Adapter, BasePathBackend, Capability, OSBackend

ROOT_FILE = b"This is the root file"
DIR_FILE_1 = b"This is the first file in dir"
DIR_FILE_2 = b"This is the second file in dir"
DIR_FILE_3 = b"This is the third file in dir"
NESTED_FILE = b"This is a nested file"


@pytest.fixture
def backend(tmp_path):
    """Restricted host backend populated with a small file tree."""
    backend = BasePathBackend(OSBackend(), str(tmp_path))

    backend.makedirs("nested/test/dir", 0o755)
    backend.makedirs("dir/nested/test/folder", 0o755)

    files = {
        "root.file": ROOT_FILE,
        "dir/file1": DIR_FILE_1,
        "dir/file.2": DIR_FILE_2,
        "dir/3file": DIR_FILE_3,
        "nested/test/dir/file": NESTED_FILE,
        "dir/nested/deleteMe": DIR_FILE_1,
        "dir/nested/renameMe": DIR_FILE_1,
        "dir/nested/test/folder/file1": DIR_FILE_1,
        "dir/nested/test/folder/file2": DIR_FILE_2,
        "dir/nested/test/folder/file3": DIR_FILE_3,
    }
    for path, content in files.items():
        (tmp_path / path).write_bytes(content)

    backend.symlink_if_possible("/dir/file1", "dir/nested/test/symlink")
    return backend


@pytest.fixture
def fs(backend, tmp_path):
    return Adapter(backend, str(tmp_path))


# ---------------------------------------------------------------------------
# create()
# ---------------------------------------------------------------------------


class TestCreate:
    def test_create_writes_new_file(self, fs, tmp_path):
        with fs.create("new.file") as f:
            f.write(b"fresh")
        assert (tmp_path / "new.file").read_bytes() == b"fresh"

    def test_create_makes_missing_parents(self, fs, tmp_path):
        """Every missing ancestor exists after create()."""
        with fs.create("a/b/c/d/file.txt") as f:
            f.write(b"deep")

        for level in ("a", "a/b", "a/b/c", "a/b/c/d"):
            assert (tmp_path / level).is_dir()
        assert (tmp_path / "a/b/c/d/file.txt").read_bytes() == b"deep"

    def test_create_truncates_existing(self, fs, tmp_path):
        with fs.create("root.file") as f:
            f.write(b"short")
        assert (tmp_path / "root.file").read_bytes() == b"short"

    def test_create_is_read_write(self, fs):
        with fs.create("rw.file") as f:
            f.write(b"round")
            f.seek(0)
            assert f.read() == b"round"

    def test_create_name_is_relative(self, fs):
        with fs.create("dir/created") as f:
            assert f.name == "/dir/created"


# ---------------------------------------------------------------------------
# open_file()
# ---------------------------------------------------------------------------


class TestOpenFile:
    def test_open_file_read_only(self, fs):
        with fs.open_file("dir/file1", os.O_RDONLY, 0) as f:
            assert f.read() == DIR_FILE_1

    def test_open_file_create(self, fs, tmp_path):
        with fs.open_file("made/here.txt", os.O_WRONLY | os.O_CREAT, 0o644) as f:
            f.write(b"x")
        assert (tmp_path / "made/here.txt").read_bytes() == b"x"

    def test_open_file_append(self, fs, tmp_path):
        with fs.open_file("dir/file1", os.O_WRONLY | os.O_APPEND, 0) as f:
            f.write(b"!")
        assert (tmp_path / "dir/file1").read_bytes() == DIR_FILE_1 + b"!"

    def test_open_file_missing_raises(self, fs, tmp_path):
        """Without O_CREAT no directories are created."""
        with pytest.raises(FileNotFoundError):
            fs.open_file("ghost/file", os.O_RDONLY, 0)
        assert not (tmp_path / "ghost").exists()

    def test_open_file_exclusive_existing_raises(self, fs):
        with pytest.raises(FileExistsError):
            fs.open_file("root.file", os.O_RDWR | os.O_CREAT | os.O_EXCL, 0o644)


# ---------------------------------------------------------------------------
# open()
# ---------------------------------------------------------------------------


class TestOpen:
    def test_open_reads_content(self, fs):
        with fs.open("root.file") as f:
            assert f.read() == ROOT_FILE

    def test_open_nested(self, fs):
        with fs.open("nested/test/dir/file") as f:
            assert f.read() == NESTED_FILE

    def test_open_is_read_only(self, fs):
        with fs.open("root.file") as f:
            assert f.writable() is False

    def test_open_missing_raises(self, fs):
        with pytest.raises(FileNotFoundError):
            fs.open("not-there")


# ---------------------------------------------------------------------------
# Handle names
# ---------------------------------------------------------------------------


class TestHandleNames:
    def test_host_path_root_stripped(self, tmp_path):
        """Absolute backend names lose the adapter root."""
        (tmp_path / "data.txt").write_bytes(b"data")
        fs = Adapter(OSBackend(), str(tmp_path))

        with fs.open(str(tmp_path / "data.txt")) as f:
            assert f.name == "/data.txt"

    def test_root_with_trailing_separator(self, tmp_path):
        """Exactly the root string is stripped, separator included."""
        (tmp_path / "data.txt").write_bytes(b"data")
        fs = Adapter(OSBackend(), str(tmp_path) + "/")

        with fs.open(str(tmp_path / "data.txt")) as f:
            assert f.name == "data.txt"

    def test_name_outside_root_unchanged(self, tmp_path):
        (tmp_path / "data.txt").write_bytes(b"data")
        fs = Adapter(OSBackend(), "/somewhere/else")

        with fs.open(str(tmp_path / "data.txt")) as f:
            assert f.name == str(tmp_path / "data.txt")

    def test_empty_root_strips_nothing(self, tmp_path):
        (tmp_path / "data.txt").write_bytes(b"data")
        fs = Adapter(OSBackend())

        with fs.open(str(tmp_path / "data.txt")) as f:
            assert f.name == str(tmp_path / "data.txt")


# ---------------------------------------------------------------------------
# read_dir()
# ---------------------------------------------------------------------------


class TestReadDir:
    def test_read_dir_sorted(self, fs):
        names = [i.name for i in fs.read_dir("dir")]
        assert names == ["3file", "file.2", "file1", "nested"]

    def test_read_dir_metadata(self, fs):
        entries = {i.name: i for i in fs.read_dir("dir")}
        assert entries["nested"].is_dir is True
        assert entries["file1"].is_dir is False
        assert entries["file1"].size == len(DIR_FILE_1)
        assert entries["file1"].mod_time is not None

    def test_read_dir_reports_links(self, fs):
        entries = {i.name: i for i in fs.read_dir("dir/nested/test")}
        assert entries["symlink"].is_symlink is True

    def test_read_dir_missing_raises(self, fs):
        with pytest.raises(FileNotFoundError):
            fs.read_dir("not-there")

    def test_read_dir_on_file_raises(self, fs):
        with pytest.raises(NotADirectoryError):
            fs.read_dir("root.file")


# ---------------------------------------------------------------------------
# rename()
# ---------------------------------------------------------------------------


class TestRename:
    def test_rename_creates_parents(self, fs, tmp_path):
        fs.rename("dir/nested/renameMe", "moved/deep/renamed")
        assert not (tmp_path / "dir/nested/renameMe").exists()
        assert (tmp_path / "moved/deep/renamed").read_bytes() == DIR_FILE_1

    def test_rename_replaces_existing_file(self, fs, tmp_path):
        fs.rename("dir/file.2", "dir/3file")
        assert (tmp_path / "dir/3file").read_bytes() == DIR_FILE_2
        assert not (tmp_path / "dir/file.2").exists()

    def test_rename_missing_source_leaves_no_destination(self, fs, tmp_path):
        with pytest.raises(FileNotFoundError):
            fs.rename("missing", "x")
        assert not (tmp_path / "x").exists()


# ---------------------------------------------------------------------------
# mkdir_all()
# ---------------------------------------------------------------------------


class TestMkdirAll:
    def test_mkdir_all_creates_tree(self, fs, tmp_path):
        fs.mkdir_all("new/nested/tree", 0o755)
        assert (tmp_path / "new/nested/tree").is_dir()

    def test_mkdir_all_existing_is_noop(self, fs, tmp_path):
        fs.mkdir_all("dir/nested", 0o755)
        assert (tmp_path / "dir/nested/renameMe").exists()

    def test_mkdir_all_over_file_raises(self, fs):
        with pytest.raises(FileExistsError):
            fs.mkdir_all("root.file", 0o755)


# ---------------------------------------------------------------------------
# stat()
# ---------------------------------------------------------------------------


class TestStat:
    def test_stat_file(self, fs):
        info = fs.stat("dir/file1")
        assert info.name == "file1"
        assert info.size == len(DIR_FILE_1)
        assert info.is_dir is False

    def test_stat_directory(self, fs):
        info = fs.stat("dir/nested")
        assert info.name == "nested"
        assert info.is_dir is True

    def test_stat_follows_links(self, fs):
        info = fs.stat("dir/nested/test/symlink")
        assert info.is_symlink is False
        assert info.size == len(DIR_FILE_1)

    def test_stat_missing_raises(self, fs):
        with pytest.raises(FileNotFoundError):
            fs.stat("dir/not-real")


# ---------------------------------------------------------------------------
# remove() / remove_all()
# ---------------------------------------------------------------------------


class TestRemove:
    def test_remove_file(self, fs, tmp_path):
        fs.remove("dir/nested/deleteMe")
        assert not (tmp_path / "dir/nested/deleteMe").exists()

    def test_remove_empty_directory(self, fs, tmp_path):
        fs.remove("nested/test/dir/file")
        fs.remove("nested/test/dir")
        assert not (tmp_path / "nested/test/dir").exists()

    def test_remove_missing_raises(self, fs):
        with pytest.raises(FileNotFoundError):
            fs.remove("not-there")

    def test_remove_non_empty_directory_raises(self, fs):
        with pytest.raises(OSError):
            fs.remove("dir")


class TestRemoveAll:
    def test_remove_all_directory(self, fs, tmp_path):
        fs.remove_all("dir/nested/test/folder")
        assert not (tmp_path / "dir/nested/test/folder").exists()
        assert (tmp_path / "dir/nested/test").is_dir()

    def test_remove_all_missing_succeeds(self, fs):
        fs.remove_all("not-there")

    def test_remove_all_twice_succeeds(self, fs, tmp_path):
        fs.remove_all("nested")
        fs.remove_all("nested")
        assert not (tmp_path / "nested").exists()

    def test_remove_all_file(self, fs, tmp_path):
        fs.remove_all("root.file")
        assert not (tmp_path / "root.file").exists()

    def test_remove_all_link_keeps_target(self, fs, tmp_path):
        fs.remove_all("dir/nested/test/symlink")
        assert not os.path.lexists(tmp_path / "dir/nested/test/symlink")
        assert (tmp_path / "dir/file1").exists()


# ---------------------------------------------------------------------------
# temp_file()
# ---------------------------------------------------------------------------


class TestTempFile:
    def test_temp_file_in_directory(self, fs, backend):
        with fs.temp_file("dir/nested/test", "temp") as f:
            assert f.name.startswith("/dir/nested/test/temp")
            assert backend.stat(f.name).is_dir is False

    def test_temp_file_creates_directory(self, fs, tmp_path):
        with fs.temp_file("scratch/area", "tmp") as f:
            f.write(b"scratch")
        assert (tmp_path / "scratch/area").is_dir()

    def test_temp_file_names_unique(self, fs):
        with fs.temp_file("dir", "t") as a, fs.temp_file("dir", "t") as b:
            assert a.name != b.name


# ---------------------------------------------------------------------------
# join()
# ---------------------------------------------------------------------------


class TestJoin:
    @pytest.mark.parametrize(
        "elem, expected",
        [
            (("test", "join"), "test/join"),
            (("test", "longer/join"), "test/longer/join"),
            (("test/join", "fragment"), "test/join/fragment"),
            (("test/longer", "join/fragment"), "test/longer/join/fragment"),
            (("join", "", "", "", "test"), "join/test"),
            (("clean///", "join"), "clean/join"),
            (("///absolute////", "", "", "////join////"), "/absolute/join"),
            (("a", "", "b"), "a/b"),
            (("a///", "b"), "a/b"),
            (("///a////", "////b////"), "/a/b"),
            (("//a", "b"), "/a/b"),
            (("", ""), ""),
        ],
    )
    def test_join(self, fs, elem, expected):
        assert fs.join(*elem) == expected


# ---------------------------------------------------------------------------
# lstat()
# ---------------------------------------------------------------------------


class TestLstat:
    def test_lstat_symlink(self, fs):
        info = fs.lstat("dir/nested/test/symlink")
        assert info.name == "symlink"
        assert info.is_symlink is True

    def test_lstat_regular_file(self, fs):
        info = fs.lstat("dir/file1")
        assert info.name == "file1"
        assert info.is_symlink is False

    def test_lstat_missing_raises(self, fs):
        with pytest.raises(FileNotFoundError):
            fs.lstat("dir/not-real")

    def test_lstat_detailed_is_link_aware(self, fs):
        result = fs.lstat_detailed("dir/nested/test/symlink")
        assert result.link_aware is True
        assert result.info.is_symlink is True


# ---------------------------------------------------------------------------
# symlink() / readlink()
# ---------------------------------------------------------------------------


class TestSymlink:
    def test_symlink_file(self, fs):
        fs.symlink("/dir/file1", "dir/nested/test/symlink2")

        assert fs.lstat("dir/nested/test/symlink2").is_symlink is True
        info = fs.stat("dir/nested/test/symlink2")
        assert info.is_symlink is False
        assert info.size == len(DIR_FILE_1)

    def test_symlink_folder(self, fs):
        fs.symlink("/dir", "symFolder")

        assert fs.lstat("symFolder").is_symlink is True
        assert fs.stat("symFolder").is_dir is True
        assert "file1" in [i.name for i in fs.read_dir("symFolder")]

    def test_symlink_dangling(self, fs):
        """The link exists even though reading through it fails."""
        fs.symlink("/not-there", "dir/nested/test/symlink3")

        assert fs.lstat("dir/nested/test/symlink3").is_symlink is True
        with pytest.raises(FileNotFoundError):
            fs.open("dir/nested/test/symlink3")
        with pytest.raises(FileNotFoundError):
            fs.stat("dir/nested/test/symlink3")

    def test_symlink_creates_parents(self, fs, tmp_path):
        fs.symlink("/root.file", "links/a/b/link")
        assert (tmp_path / "links/a/b").is_dir()
        with fs.open("links/a/b/link") as f:
            assert f.read() == ROOT_FILE

    def test_symlink_relative_target(self, fs):
        fs.symlink("file1", "dir/relative")

        assert fs.readlink("dir/relative") == "file1"
        with fs.open("dir/relative") as f:
            assert f.read() == DIR_FILE_1

    def test_symlink_existing_raises(self, fs):
        with pytest.raises(FileExistsError):
            fs.symlink("/dir/file1", "root.file")


class TestReadlink:
    def test_readlink(self, fs):
        dest = fs.readlink("dir/nested/test/symlink")
        assert dest.replace("\\", "/") == "/dir/file1"

    def test_readlink_round_trip(self, fs):
        fs.symlink("/nested/test/dir/file", "shortcut")
        assert fs.readlink("shortcut") == "/nested/test/dir/file"

    def test_readlink_regular_file_raises(self, fs):
        with pytest.raises(OSError):
            fs.readlink("root.file")


# ---------------------------------------------------------------------------
# chroot() / root() / capabilities()
# ---------------------------------------------------------------------------


class TestChroot:
    def test_chroot_root(self, fs, tmp_path):
        sub = fs.chroot("dir")
        assert sub.root() == str(tmp_path) + "/dir"

    def test_chroot_lists_subdirectory(self, fs):
        sub = fs.chroot("dir")
        entries = {i.name: i.is_dir for i in sub.read_dir("/")}
        assert entries == {
            "file1": False,
            "file.2": False,
            "3file": False,
            "nested": True,
        }

    def test_chroot_open_name(self, fs):
        sub = fs.chroot("dir")
        with sub.open("file1") as f:
            assert f.read() == DIR_FILE_1
            assert f.name == "/file1"

    def test_chroot_create_lands_in_subdirectory(self, fs, tmp_path):
        sub = fs.chroot("dir")
        with sub.create("fresh/file") as f:
            f.write(b"inside")
        assert (tmp_path / "dir/fresh/file").read_bytes() == b"inside"

    def test_chroot_escape_rejected(self, fs):
        sub = fs.chroot("dir")
        with pytest.raises(PermissionError):
            sub.open("../root.file")

    def test_chroot_readlink(self, fs):
        sub = fs.chroot("dir")
        assert sub.readlink("nested/test/symlink") == "/file1"

    def test_chroot_nested(self, fs, tmp_path):
        sub = fs.chroot("dir").chroot("nested/test")
        assert sub.root() == str(tmp_path) + "/dir/nested/test"
        assert [i.name for i in sub.read_dir("/")] == ["folder", "symlink"]

    def test_chroot_missing_raises(self, fs):
        with pytest.raises(FileNotFoundError):
            fs.chroot("not")

    def test_chroot_file_raises(self, fs):
        with pytest.raises(NotADirectoryError):
            fs.chroot("root.file")


class TestRoot:
    def test_root(self, fs, tmp_path):
        assert fs.root() == str(tmp_path)


class TestCapabilities:
    def test_capabilities_default(self, fs):
        assert fs.capabilities() == Capability.DEFAULT

    def test_capabilities_include_lock(self, fs):
        assert fs.capabilities() & Capability.LOCK
