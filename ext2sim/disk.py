"""Raw access to the disk image: bitmaps, inodes and directory entries."""

from __future__ import annotations

import time
from typing import BinaryIO, Iterable

from .constants import BLOCK_SIZE, DATA_BEGIN_BLOCK, DIR_ENTRY_SIZE, INODE_SIZE
from .errors import FsError, NotFoundError, OutOfSpaceError
from .inode import Inode
from .records import BlockKind, DirEntry, GroupDesc


def now() -> int:
    """Current Unix time in seconds, as stored in inodes."""
    return int(time.time()) & 0xFFFFFFFF


def empty_block() -> bytearray:
    """A zero-filled block."""
    return bytearray(BLOCK_SIZE)


def find_free_bit(bitmap: bytearray) -> int:
    """Mark the first clear bit of ``bitmap`` as used and return its index."""
    for byte_i, byte in enumerate(bitmap):
        if byte == 0xFF:
            continue
        for bit in range(8):
            mask = 0x80 >> bit
            if not byte & mask:
                bitmap[byte_i] = byte | mask
                return byte_i * 8 + bit
    raise NotFoundError("Inode table is full")


def clear_used_bit(bitmap: bytearray, bit: int) -> None:
    """Mark bit number ``bit`` of ``bitmap`` as free."""
    byte_i, offset = divmod(bit, 8)
    bitmap[byte_i] &= ~(0x80 >> offset) & 0xFF


class Disk:
    """A disk image file together with its group descriptor."""

    def __init__(self, file: BinaryIO, desc: GroupDesc) -> None:
        self.file = file
        self.desc = desc

    @staticmethod
    def data_block_addr(block: int) -> int:
        """Byte offset of data block ``block``."""
        return BLOCK_SIZE * (DATA_BEGIN_BLOCK + block)

    def inode_addr(self, inode_no: int) -> int:
        """Byte offset of inode ``inode_no``."""
        return BLOCK_SIZE * (self.desc.inode_table + inode_no)

    def read_at(self, offset: int, size: int) -> bytes:
        """Read ``size`` bytes at ``offset``; bytes past the end read as zero."""
        self.file.seek(offset)
        return self.file.read(size).ljust(size, b"\0")

    def write_at(self, offset: int, data: bytes) -> int:
        self.file.seek(offset)
        return self.file.write(data)

    def write_desc(self) -> None:
        """Store the group descriptor in the first block."""
        self.write_at(0, self.desc.pack())

    def _bitmap_of(self, kind: BlockKind) -> tuple[int, str]:
        if kind is BlockKind.DATA:
            return self.desc.block_bitmap, "free_blocks_count"
        return self.desc.inode_bitmap, "free_inodes_count"

    def alloc(self, kind: BlockKind) -> int:
        """Take a free data block or inode and return its number."""
        map_blk, counter = self._bitmap_of(kind)
        free = getattr(self.desc, counter)
        if free == 0:
            raise FsError("No space to alloc")

        offset = map_blk * BLOCK_SIZE
        bitmap = bytearray(self.read_at(offset, BLOCK_SIZE))
        bit = find_free_bit(bitmap)
        self.write_at(offset, bitmap)

        setattr(self.desc, counter, free - 1)
        self.write_desc()
        return bit

    def free(self, kind: BlockKind, blocks: Iterable[int]) -> None:
        """Return data blocks or inodes to the free pool."""
        blocks = list(blocks)
        map_blk, counter = self._bitmap_of(kind)

        offset = map_blk * BLOCK_SIZE
        bitmap = bytearray(self.read_at(offset, BLOCK_SIZE))
        for bit in blocks:
            clear_used_bit(bitmap, bit)
        self.write_at(offset, bitmap)

        setattr(self.desc, counter, getattr(self.desc, counter) + len(blocks))
        self.write_desc()

    def read_inode(self, inode_no: int) -> Inode:
        return Inode.unpack(self.read_at(self.inode_addr(inode_no), INODE_SIZE))

    def write_inode(self, inode_no: int, inode: Inode) -> None:
        offset = self.inode_addr(inode_no)
        if offset >= self.data_block_addr(0):
            raise OutOfSpaceError("the inode_no out of bounds")
        self.write_at(offset, inode.pack())

    def read_dir_entry(self, addr: int) -> DirEntry:
        return DirEntry.unpack(self.read_at(addr, DIR_ENTRY_SIZE))

    def write_dir_entry(self, addr: int, entry: DirEntry) -> None:
        self.write_at(addr, entry.pack())

    def flush(self) -> None:
        self.file.flush()

    def close(self) -> None:
        self.file.close()