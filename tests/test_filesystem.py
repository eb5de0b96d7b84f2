import pytest

from ext2sim.constants import MAX_USERS
from ext2sim.errors import FsError, NotFoundError, PermissionDeniedError
from ext2sim.filesystem import FileSystem
from ext2sim.mode import parse_mode
from ext2sim.records import decode_name

PASSWORD = "password"


@pytest.fixture
def fs(tmp_path):
    with FileSystem.format(tmp_path / "disk.bin") as volume:
        yield volume


def owner_of(fs, path):
    return fs.get_inode(fs.path_parse(path).dir_entry.i_node).i_mode.owner


def test_login_root(fs):
    fs.login("root", PASSWORD)
    assert fs.user == 0


def test_login_wrong_password(fs):
    with pytest.raises(PermissionDeniedError):
        fs.login("root", "secret")


def test_login_empty_credentials(fs):
    with pytest.raises(PermissionDeniedError):
        fs.login("", PASSWORD)
    with pytest.raises(PermissionDeniedError):
        fs.login("root", "")


def test_login_unknown_user(fs):
    with pytest.raises(PermissionDeniedError):
        fs.login("nobody", PASSWORD)


def test_useradd_creates_account_and_home(fs):
    fs.useradd("alice", PASSWORD)
    assert fs.disk.desc.users_len == 2
    assert decode_name(fs.disk.desc.users[1].name) == "alice"
    assert owner_of(fs, "/home/alice") == 1
    fs.login("alice", PASSWORD)
    assert fs.user == 1


def test_useradd_duplicate(fs):
    fs.useradd("alice", PASSWORD)
    with pytest.raises(FsError, match="exists"):
        fs.useradd("alice", PASSWORD)
    assert fs.disk.desc.users_len == 2


def test_useradd_table_full(fs):
    for i in range(1, MAX_USERS):
        fs.useradd(f"user{i}", PASSWORD)
    assert fs.disk.desc.users_len == MAX_USERS
    with pytest.raises(FsError, match="more user"):
        fs.useradd("extra", PASSWORD)


def test_useradd_name_too_long(fs):
    with pytest.raises(FsError):
        fs.useradd("a" * 20, PASSWORD)


def test_userdel_root_refused(fs):
    with pytest.raises(FsError, match="root"):
        fs.userdel("root")


def test_userdel_self_refused(fs):
    fs.useradd("alice", PASSWORD)
    fs.login("alice", PASSWORD)
    with pytest.raises(FsError, match="yourself"):
        fs.userdel("alice")


def test_userdel_unknown(fs):
    with pytest.raises(NotFoundError):
        fs.userdel("ghost")


def test_userdel_removes_account(fs):
    fs.useradd("alice", PASSWORD)
    fs.userdel("alice")
    assert fs.disk.desc.users[1].name == bytes(16)
    with pytest.raises(PermissionDeniedError):
        fs.login("alice", PASSWORD)


def test_chown_by_root(fs):
    fs.useradd("alice", PASSWORD)
    fs.create("f")
    assert owner_of(fs, "f") == 0
    fs.chown("f", "alice")
    assert owner_of(fs, "f") == 1


def test_chown_unknown_user(fs):
    fs.create("f")
    with pytest.raises(NotFoundError):
        fs.chown("f", "ghost")


def test_chown_by_non_owner(fs):
    fs.useradd("alice", PASSWORD)
    fs.login("alice", PASSWORD)
    with pytest.raises(PermissionDeniedError):
        fs.chown("/root", "alice")
    assert owner_of(fs, "/root") == 0


def test_chown_missing_path(fs):
    with pytest.raises(NotFoundError):
        fs.chown("missing", "root")


def test_chmod_round_trip(fs):
    fs.create("f")
    fs.chmod("f", parse_mode("rwx:rwx"))
    inode = fs.get_inode(fs.path_parse("f").dir_entry.i_node)
    assert str(inode.i_mode) == "rwx:rwx"
    fs.chmod("f", parse_mode("r--:---"))
    inode = fs.get_inode(fs.path_parse("f").dir_entry.i_node)
    assert str(inode.i_mode) == "r--:---"


def test_chmod_invalid_mode(fs):
    fs.create("f")
    with pytest.raises(PermissionDeniedError):
        fs.chmod("f", 0b1000000)


def test_chmod_by_non_owner(fs):
    fs.useradd("alice", PASSWORD)
    fs.login("alice", PASSWORD)
    with pytest.raises(PermissionDeniedError):
        fs.chmod("/root", parse_mode("rwx:rwx"))


def test_users_persist_across_load(tmp_path):
    path = tmp_path / "disk.bin"
    with FileSystem.format(path) as first:
        first.useradd("alice", PASSWORD)
    with FileSystem.load(path) as second:
        second.login("alice", PASSWORD)
        assert second.user == 1
        assert second.disk.desc.users_len == 2
        assert owner_of(second, "/home/alice") == 1