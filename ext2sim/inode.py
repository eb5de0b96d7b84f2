"""Inodes and the mapping from file offsets to disk addresses."""

from __future__ import annotations

import struct
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .constants import BLOCK_ADDR_NUM, BLOCK_SIZE, INODE_SIZE
from .errors import InvalidDataError
from .mode import FileMode
from .records import BlockKind

if TYPE_CHECKING:
    from .disk import Disk

_INODE_STRUCT = struct.Struct("<BBHIIIH8H")
_POINTER = struct.Struct("<i")

DIRECT_BLOCKS = 6
ONCE_INDEX_SLOT = 6
TWICE_INDEX_SLOT = 7
POINTER_COUNT = 8

DIRECT = 0
ONCE_INDEXED = 1
TWICE_INDEXED = 2


def _timestamp() -> int:
    return int(time.time()) & 0xFFFFFFFF


def _read_pointer(disk: Disk, addr: int) -> int:
    return _POINTER.unpack(disk.read_at(addr, _POINTER.size))[0] & 0xFFFF


def _write_pointer(disk: Disk, addr: int, block: int) -> None:
    disk.write_at(addr, _POINTER.pack(block))


@dataclass(frozen=True)
class IndexedBlock:
    """A data block together with the way it was reached.

    ``level`` is 0 for a direct pointer, 1 for a block reached through the
    single index table and 2 for one reached through the double index, in
    which case ``table`` is the first-level table holding its pointer.
    """

    level: int
    block: int
    table: int | None = None


@dataclass(frozen=True)
class RealAddr:
    """Physical byte address of a file offset and the block holding it."""

    addr: int
    data_block: IndexedBlock


@dataclass
class Inode:
    """Metadata of one file: permissions, size, times and block pointers.

    ``i_block[0:6]`` point straight at data blocks, ``i_block[6]`` at a
    table of pointers, and ``i_block[7]`` at a table of such tables.
    """

    i_mode: FileMode = field(default_factory=FileMode)
    i_blocks: int = 0
    i_size: int = 0
    i_ctime: int = field(default_factory=_timestamp)
    i_mtime: int = field(default_factory=_timestamp)
    i_links_count: int = 1
    i_block: list[int] = field(default_factory=lambda: [0] * POINTER_COUNT)

    def pack(self) -> bytes:
        if len(self.i_block) != POINTER_COUNT:
            raise InvalidDataError(f"An inode holds {POINTER_COUNT} block pointers")
        packed = _INODE_STRUCT.pack(
            self.i_mode.mode,
            self.i_mode.owner,
            self.i_blocks,
            self.i_size,
            self.i_ctime,
            self.i_mtime,
            self.i_links_count,
            *self.i_block,
        )
        return packed.ljust(INODE_SIZE, b"\0")

    @classmethod
    def unpack(cls, data: bytes) -> Inode:
        if len(data) < _INODE_STRUCT.size:
            raise InvalidDataError("Inode is truncated")
        mode, owner, blocks, size, ctime, mtime, links, *pointers = (
            _INODE_STRUCT.unpack_from(data)
        )
        return cls(
            i_mode=FileMode(mode=mode, owner=owner),
            i_blocks=blocks,
            i_size=size,
            i_ctime=ctime,
            i_mtime=mtime,
            i_links_count=links,
            i_block=list(pointers),
        )

    def convert_addr(self, disk: Disk, logic_addr: int) -> RealAddr:
        """Translate an offset inside the file into a disk address."""
        blk_i, blk_offset = divmod(logic_addr, BLOCK_SIZE)

        if blk_i < DIRECT_BLOCKS:
            block = self.i_block[blk_i]
            return RealAddr(
                disk.data_block_addr(block) + blk_offset,
                IndexedBlock(DIRECT, block),
            )

        if blk_i - DIRECT_BLOCKS < BLOCK_ADDR_NUM:
            table_addr = disk.data_block_addr(self.i_block[ONCE_INDEX_SLOT])
            block = _read_pointer(disk, table_addr + (blk_i - DIRECT_BLOCKS) * 4)
            return RealAddr(
                disk.data_block_addr(block) + blk_offset,
                IndexedBlock(ONCE_INDEXED, block),
            )

        rel = blk_i - DIRECT_BLOCKS - BLOCK_ADDR_NUM
        top_addr = disk.data_block_addr(self.i_block[TWICE_INDEX_SLOT])
        table = _read_pointer(disk, top_addr + rel // BLOCK_ADDR_NUM * 4)
        block = _read_pointer(
            disk, disk.data_block_addr(table) + rel % BLOCK_ADDR_NUM * 4
        )
        return RealAddr(
            disk.data_block_addr(block) + blk_offset,
            IndexedBlock(TWICE_INDEXED, block, table),
        )

    def alloc_data_block(self, disk: Disk) -> int:
        """Append one data block to the file and return its number."""
        if self.i_blocks < DIRECT_BLOCKS:
            block = disk.alloc(BlockKind.DATA)
            self.i_block[self.i_blocks] = block
        elif self.i_blocks < DIRECT_BLOCKS + BLOCK_ADDR_NUM:
            offset = self.i_blocks - DIRECT_BLOCKS
            if offset == 0:
                self.i_block[ONCE_INDEX_SLOT] = disk.alloc(BlockKind.DATA)
            block = disk.alloc(BlockKind.DATA)
            table_addr = disk.data_block_addr(self.i_block[ONCE_INDEX_SLOT])
            _write_pointer(disk, table_addr + offset * 4, block)
        else:
            offset = self.i_blocks - DIRECT_BLOCKS - BLOCK_ADDR_NUM
            if offset == 0:
                self.i_block[TWICE_INDEX_SLOT] = disk.alloc(BlockKind.DATA)
            slot = (
                disk.data_block_addr(self.i_block[TWICE_INDEX_SLOT])
                + offset // BLOCK_ADDR_NUM * 4
            )
            if offset % BLOCK_ADDR_NUM == 0:
                table = disk.alloc(BlockKind.DATA)
                _write_pointer(disk, slot, table)
            else:
                table = _read_pointer(disk, slot)
            block = disk.alloc(BlockKind.DATA)
            _write_pointer(
                disk, disk.data_block_addr(table) + offset % BLOCK_ADDR_NUM * 4, block
            )

        self.i_blocks += 1
        return block

    def free_data_block(self, new_count: int, disk: Disk) -> None:
        """Shrink the file to ``new_count`` data blocks, freeing the rest."""
        if new_count >= self.i_blocks:
            return

        to_free: list[int] = []
        for i in range(new_count, self.i_blocks):
            data_block = self.convert_addr(disk, i * BLOCK_SIZE).data_block
            if data_block.level == DIRECT:
                to_free.append(data_block.block)
            elif data_block.level == ONCE_INDEXED:
                if i == DIRECT_BLOCKS:
                    to_free.append(self.i_block[ONCE_INDEX_SLOT])
                to_free.append(data_block.block)
            else:
                offset = i - DIRECT_BLOCKS - BLOCK_ADDR_NUM
                if offset == 0:
                    to_free.append(self.i_block[TWICE_INDEX_SLOT])
                if offset % BLOCK_ADDR_NUM == 0:
                    to_free.append(data_block.table)
                to_free.append(data_block.block)

        disk.free(BlockKind.DATA, to_free)
        self.i_blocks = new_count