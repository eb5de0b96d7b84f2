import pytest

from ext2sim.errors import InvalidDataError, PermissionDeniedError
from ext2sim.mode import FileMode, FileType, parse_mode


def test_file_type_numbers_round_trip():
    for kind in FileType:
        assert FileType(int(kind)) is kind
    assert int(FileType.FILE) == 1
    assert int(FileType.DIR) == 2
    assert int(FileType.SYMLINK) == 3


def test_unknown_file_type_is_rejected():
    with pytest.raises(ValueError):
        FileType(0)


def test_default_mode_for_file():
    mode = FileMode.for_type(3, FileType.FILE)
    assert mode.mode == 0b00_111_100
    assert mode.owner == 3
    assert str(mode) == "rwx:r--"


def test_default_mode_for_directory():
    mode = FileMode.for_type(0, FileType.DIR)
    assert mode.mode == 0b00_111_101
    assert str(mode) == "rwx:r-x"


def test_default_mode_for_symlink_matches_file():
    assert FileMode.for_type(1, FileType.SYMLINK).mode == FileMode.for_type(1, FileType.FILE).mode


def test_owner_uses_owner_bits():
    mode = FileMode(mode=0b00_100_011, owner=2)
    assert mode.can_read(2)
    assert not mode.can_write(2)
    assert not mode.can_exec(2)


def test_other_user_uses_other_bits():
    mode = FileMode(mode=0b00_100_011, owner=2)
    assert not mode.can_read(5)
    assert mode.can_write(5)
    assert mode.can_exec(5)


def test_root_passes_as_non_owner():
    mode = FileMode(mode=0, owner=4)
    assert mode.can_read(0)
    assert mode.can_write(0)
    assert mode.can_exec(0)


def test_root_as_owner_is_bound_by_owner_bits():
    mode = FileMode(mode=0b00_000_111, owner=0)
    assert not mode.can_read(0)
    assert not mode.can_write(0)
    assert not mode.can_exec(0)


def test_set_mode_by_owner():
    mode = FileMode.for_type(2, FileType.FILE)
    mode.set_mode(2, 0b00_110_000)
    assert mode.mode == 0b00_110_000


def test_set_mode_by_root():
    mode = FileMode.for_type(2, FileType.FILE)
    mode.set_mode(0, 0b00_111_111)
    assert str(mode) == "rwx:rwx"


def test_set_mode_by_stranger_is_denied():
    mode = FileMode.for_type(2, FileType.FILE)
    with pytest.raises(PermissionDeniedError):
        mode.set_mode(3, 0)
    assert mode.mode == 0b00_111_100


def test_set_mode_out_of_range_is_denied():
    mode = FileMode.for_type(2, FileType.FILE)
    with pytest.raises(PermissionDeniedError):
        mode.set_mode(2, 0b01_000_000)
    assert mode.mode == 0b00_111_100


def test_parse_mode_documented_example():
    assert parse_mode("rwx:r-x") == 0b00_111_101


@pytest.mark.parametrize("bits", range(64))
def test_parse_mode_inverts_str(bits):
    assert parse_mode(str(FileMode(mode=bits))) == bits


@pytest.mark.parametrize("text", ["rwx", "rwx:r-xx", "", "rwxr-x"])
def test_parse_mode_rejects_wrong_length(text):
    with pytest.raises(InvalidDataError):
        parse_mode(text)


@pytest.mark.parametrize("text", ["wrx:r-x", "rwx:rwa", "r-x:x--"])
def test_parse_mode_rejects_wrong_letters(text):
    with pytest.raises(InvalidDataError):
        parse_mode(text)