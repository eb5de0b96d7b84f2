"""Walking the entries stored in a directory's data blocks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from .constants import BLOCK_SIZE, DIR_ENTRY_SIZE
from .disk import Disk
from .errors import FsError, PermissionDeniedError
from .inode import Inode, RealAddr
from .mode import FileType
from .records import DirEntry, decode_name


@dataclass
class DirItem:
    """One slot of a directory; ``deleted`` marks a slot freed for reuse."""

    entry: DirEntry
    real_addr: RealAddr
    deleted: bool = False


def iter_directory(disk: Disk, entry: DirEntry, user: int) -> Iterator[DirItem]:
    """Iterate a directory; ``user`` needs exec permission on it."""
    inode = disk.read_inode(entry.i_node)
    if not inode.i_mode.can_exec(user):
        raise PermissionDeniedError("Permission Denied. Need exec permission.")
    return iter_directory_unchecked(disk, entry)


def iter_directory_unchecked(disk: Disk, entry: DirEntry) -> Iterator[DirItem]:
    """Iterate a directory without checking permissions."""
    if entry.file_type == FileType.FILE:
        raise FsError(f"{decode_name(entry.name)}: Can't iterate with a file")
    inode = disk.read_inode(entry.i_node)
    return _walk(disk, inode)


def _walk(disk: Disk, inode: Inode) -> Iterator[DirItem]:
    used = 0
    logic_addr = 0
    limit = inode.i_size // DIR_ENTRY_SIZE
    while logic_addr // BLOCK_SIZE < inode.i_blocks and used < limit:
        real_addr = inode.convert_addr(disk, logic_addr)
        child = disk.read_dir_entry(real_addr.addr)
        deleted = child.i_node == 0 and child.rec_len != 0
        logic_addr += DIR_ENTRY_SIZE
        if not deleted:
            used += 1
        yield DirItem(child, real_addr, deleted)