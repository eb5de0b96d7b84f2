"""Open files: descriptors, reading, writing, seeking, truncating and removal."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from .constants import BLOCK_SIZE, DIR_ENTRY_SIZE, FD_LIMIT
from .disk import Disk, now
from .errors import FsError, InvalidInputError, PermissionDeniedError
from .inode import Inode
from .mode import FileType
from .records import BlockKind, DirEntry
from .volume import Volume


class Whence(IntEnum):
    """Reference point of a seek."""

    START = 0
    CURRENT = 1
    END = 2


@dataclass
class _OpenFile:
    inode: Inode
    inode_i: int
    dir_entry_addr: int
    parent_inode_i: int
    current_pos: int = 0


def _blocks_for(length: int) -> int:
    return -(-length // BLOCK_SIZE)


class FileVolume(Volume):
    """A volume that can open regular files through numbered descriptors."""

    def __init__(self, disk: Disk, cwd: DirEntry) -> None:
        super().__init__(disk, cwd)
        self._fds: list[Optional[_OpenFile]] = [None] * FD_LIMIT

    @property
    def opened_count(self) -> int:
        """Number of descriptors currently in use."""
        return sum(1 for f in self._fds if f is not None)

    def _file(self, fd: int) -> _OpenFile:
        if not 0 <= fd < len(self._fds) or self._fds[fd] is None:
            raise FsError("Bad file description")
        return self._fds[fd]

    def open(self, path: str) -> int:
        """Open the file at ``path`` and return its descriptor."""
        if self.opened_count == FD_LIMIT:
            raise FsError("Files descriptions up to limits")

        res = self.path_parse(path)
        if res.dir_entry.file_type == FileType.DIR:
            raise FsError("Can't open directory as file")

        inode = self.get_inode(res.dir_entry.i_node)
        if not inode.i_mode.can_read(self.user):
            raise PermissionDeniedError("Permission Denied. Need read permission.")

        fd = self._fds.index(None)
        self._fds[fd] = _OpenFile(
            inode=inode,
            inode_i=res.dir_entry.i_node,
            dir_entry_addr=res.dir_entry_addr,
            parent_inode_i=res.parent_inode_i,
        )
        return fd

    def close(self, fd: int) -> None:
        """Release the descriptor ``fd``."""
        self._file(fd)
        self._fds[fd] = None

    def read(self, fd: int, size: int = -1) -> bytes:
        """Read up to ``size`` bytes from the current position; negative reads to the end."""
        f = self._file(fd)
        if not f.inode.i_mode.can_read(self.user):
            raise PermissionDeniedError("Permission Denied.")

        available = max(0, f.inode.i_size - f.current_pos)
        remaining = available if size < 0 else min(size, available)
        chunks = []
        while remaining > 0:
            seg = min(remaining, BLOCK_SIZE - f.current_pos % BLOCK_SIZE)
            addr = f.inode.convert_addr(self.disk, f.current_pos).addr
            chunks.append(self.disk.read_at(addr, seg))
            f.current_pos += seg
            remaining -= seg
        return b"".join(chunks)

    def write(self, fd: int, data: bytes) -> int:
        """Write ``data`` at the current position, growing the file as needed."""
        f = self._file(fd)
        if not f.inode.i_mode.can_write(self.user):
            raise PermissionDeniedError("Permission Denied.")

        data = bytes(data)
        written = 0
        while written < len(data):
            pos = f.current_pos
            seg = min(len(data) - written, BLOCK_SIZE - pos % BLOCK_SIZE)
            end = pos + seg
            if end > f.inode.i_size:
                f.inode.i_size = end
                needed = _blocks_for(end)
                while f.inode.i_blocks < needed:
                    f.inode.alloc_data_block(self.disk)

            addr = f.inode.convert_addr(self.disk, pos).addr
            self.disk.write_at(addr, data[written : written + seg])
            written += seg
            f.current_pos = end

        f.inode.i_mtime = now()
        self.disk.write_inode(f.inode_i, f.inode)
        return written

    def seek(self, fd: int, offset: int, whence: Whence = Whence.START) -> int:
        """Move the cursor of ``fd`` and return the new position."""
        f = self._file(fd)
        if not f.inode.i_mode.can_write(self.user):
            raise PermissionDeniedError("Permission Denied")

        whence = Whence(whence)
        if whence is Whence.START:
            if offset < 0:
                raise InvalidInputError("Seek failed. Can't set cursor of file to negative")
            new_pos = offset
        elif whence is Whence.END:
            if offset > f.inode.i_size:
                raise FsError("Seek failed. Can't set cursor of file to negative")
            new_pos = f.current_pos - offset
        else:
            if f.inode.i_size + offset < 0:
                raise FsError("Seek failed. Can't set cursor of file to negative")
            new_pos = f.current_pos + offset

        if new_pos < 0:
            raise FsError("Seek failed. Can't set cursor of file to negative")
        f.current_pos = new_pos
        return new_pos

    def cut(self, fd: int, new_len: int) -> None:
        """Shrink the file to ``new_len`` bytes, freeing the blocks beyond it.

        Nothing happens when the new length still needs every block the
        file holds.
        """
        f = self._file(fd)
        new_blocks = _blocks_for(new_len)
        if not f.inode.i_mode.can_write(self.user):
            raise PermissionDeniedError("Need write permission")
        if new_blocks >= f.inode.i_blocks:
            return

        f.inode.free_data_block(new_blocks, self.disk)
        f.inode.i_mtime = now()
        f.inode.i_size = new_len

    def _unlink_entry(self, f: _OpenFile) -> None:
        entry = self.disk.read_dir_entry(f.dir_entry_addr)
        entry.i_node = 0
        entry.rec_len = 1
        self.disk.write_dir_entry(f.dir_entry_addr, entry)

        parent = self.get_inode(f.parent_inode_i)
        parent.i_size -= DIR_ENTRY_SIZE
        parent.i_mtime = now()
        self.disk.write_inode(f.parent_inode_i, parent)

    def rm(self, fd: int) -> None:
        """Remove the file opened as ``fd`` and release the descriptor."""
        f = self._file(fd)
        if not f.inode.i_mode.can_write(self.user):
            raise PermissionDeniedError("Permission Denied")

        remaining_links = f.inode.i_links_count - 1
        if remaining_links > 0:
            f.inode.i_links_count = remaining_links
            self.disk.write_inode(f.inode_i, f.inode)
            self._unlink_entry(f)
            self._fds[fd] = None
            return

        self.cut(fd, 0)
        self.disk.free(BlockKind.INODE, [f.inode_i])
        self._unlink_entry(f)
        self._fds[fd] = None