import pytest

from ext2sim.constants import BLOCK_SIZE, BLOCKS, DIR_ENTRY_SIZE
from ext2sim.directory import iter_directory, iter_directory_unchecked
from ext2sim.disk import Disk
from ext2sim.errors import FsError, PermissionDeniedError
from ext2sim.inode import Inode
from ext2sim.mode import FileMode, FileType
from ext2sim.records import BlockKind, DirEntry, GroupDesc, decode_name, encode_name


@pytest.fixture
def disk(tmp_path):
    with open(tmp_path / "disk.bin", "w+b") as fh:
        fh.truncate(BLOCKS * BLOCK_SIZE)
        yield Disk(fh, GroupDesc.fresh())


def _entry(i_node, name, file_type=FileType.DIR, rec_len=0):
    return DirEntry(
        i_node=i_node,
        rec_len=rec_len,
        name_len=len(name),
        file_type=int(file_type),
        name=encode_name(name),
    )


def _make_dir(disk, children, owner=0, used=None):
    inode_no = disk.alloc(BlockKind.INODE)
    inode = Inode(i_mode=FileMode.for_type(owner, FileType.DIR))
    block = inode.alloc_data_block(disk)
    for i, child in enumerate(children):
        disk.write_dir_entry(Disk.data_block_addr(block) + i * DIR_ENTRY_SIZE, child)
    count = len(children) if used is None else used
    inode.i_size = count * DIR_ENTRY_SIZE
    disk.write_inode(inode_no, inode)
    return _entry(inode_no, "."), block


def test_lists_dot_entries(disk):
    entry, _ = _make_dir(disk, [_entry(1, "."), _entry(0, "..")])
    names = [decode_name(item.entry.name) for item in iter_directory(disk, entry, 0)]
    assert names == [".", ".."]


def test_deleted_slots_reported(disk):
    children = [
        _entry(1, "."),
        _entry(0, ".."),
        _entry(0, "gone", FileType.FILE, rec_len=1),
        _entry(5, "kept", FileType.FILE, rec_len=1),
    ]
    entry, block = _make_dir(disk, children, used=3)
    items = list(iter_directory(disk, entry, 0))
    assert [item.deleted for item in items] == [False, False, True, False]
    assert items[2].real_addr.addr == Disk.data_block_addr(block) + 2 * DIR_ENTRY_SIZE
    assert items[3].entry == children[3]


def test_stops_at_size(disk):
    children = [_entry(1, "."), _entry(0, ".."), _entry(7, "extra", FileType.FILE)]
    entry, _ = _make_dir(disk, children, used=2)
    assert len(list(iter_directory_unchecked(disk, entry))) == 2


def test_needs_exec_permission(disk):
    entry, _ = _make_dir(disk, [_entry(1, "."), _entry(0, "..")], owner=0)
    disk.write_inode(
        entry.i_node,
        Inode(i_mode=FileMode(mode=0b00_111_100, owner=0), i_size=64, i_blocks=1),
    )
    with pytest.raises(PermissionDeniedError):
        iter_directory(disk, entry, 2)


def test_unchecked_ignores_permission(disk):
    children = [_entry(1, "."), _entry(0, "..")]
    entry, _ = _make_dir(disk, children, owner=0)
    inode = disk.read_inode(entry.i_node)
    inode.i_mode = FileMode(mode=0, owner=0)
    disk.write_inode(entry.i_node, inode)
    items = list(iter_directory_unchecked(disk, entry))
    assert [item.entry for item in items] == children


def test_file_cannot_be_iterated(disk):
    entry = _entry(0, "plain", FileType.FILE)
    with pytest.raises(FsError, match="plain: Can't iterate with a file"):
        iter_directory_unchecked(disk, entry)