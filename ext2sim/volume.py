"""A mounted volume: formatting, loading, path lookup and directory creation."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Iterator, Optional, Union

from .constants import BLOCK_SIZE, BLOCKS, DIR_ENTRY_SIZE, DISK_PATH
from .directory import DirItem, iter_directory
from .disk import Disk, empty_block, now
from .errors import (
    AlreadyExistsError,
    FsError,
    InvalidDataError,
    NotFoundError,
    PermissionDeniedError,
)
from .inode import Inode
from .mode import FileMode, FileType
from .records import DirEntry, GroupDesc, decode_name, encode_name

PathLike = Union[str, "os.PathLike[str]"]


@dataclass
class PathParseResult:
    """Where a path leads: its entry, the entry's disk address and its parent inode."""

    dir_entry: DirEntry
    dir_entry_addr: int
    parent_inode_i: int


def _init_root(disk: Disk) -> DirEntry:
    """Lay out the bitmaps, the root inode and the root directory block."""
    desc = disk.desc
    bitmap = empty_block()
    bitmap[0] = 0b1000_0000
    disk.write_at(desc.inode_bitmap * BLOCK_SIZE, bitmap)
    disk.write_at(desc.block_bitmap * BLOCK_SIZE, bitmap)

    stamp = now()
    root = Inode(
        i_mode=FileMode.for_type(0, FileType.DIR),
        i_blocks=1,
        i_size=2 * DIR_ENTRY_SIZE,
        i_ctime=stamp,
        i_mtime=stamp,
        i_links_count=1,
    )
    disk.write_at(desc.inode_table * BLOCK_SIZE, root.pack())

    dot = DirEntry(
        i_node=0, rec_len=0, name_len=1, file_type=int(FileType.DIR), name=encode_name(".")
    )
    dot_dot = DirEntry(
        i_node=0, rec_len=0, name_len=2, file_type=int(FileType.DIR), name=encode_name("..")
    )
    disk.write_dir_entry(Disk.data_block_addr(0), dot)
    disk.write_dir_entry(Disk.data_block_addr(0) + DIR_ENTRY_SIZE, dot_dot)

    desc.free_blocks_count -= 1
    desc.free_inodes_count -= 1
    desc.used_dirs_count = 1
    disk.write_desc()
    return dot


class Volume:
    """A disk image opened as a file system, with a working directory and a user."""

    def __init__(self, disk: Disk, cwd: DirEntry) -> None:
        self.disk = disk
        self.cwd = cwd
        self.user = 0

    @classmethod
    def format(cls, path: PathLike = DISK_PATH) -> Volume:
        """Create a fresh disk image at ``path`` and mount it."""
        file = open(path, "w+b")
        try:
            file.write(bytes(BLOCKS * BLOCK_SIZE))
            disk = Disk(file, GroupDesc.fresh())
            cwd = _init_root(disk)
            volume = cls(disk, cwd)
            volume.mkdir("/home")
            volume.mkdir("/root")
        except BaseException:
            file.close()
            raise
        return volume

    @classmethod
    def load(cls, path: PathLike = DISK_PATH) -> Volume:
        """Mount an existing disk image, checking that it holds a root directory."""
        file = open(path, "r+b")
        try:
            file.seek(0)
            desc = GroupDesc.unpack(file.read(BLOCK_SIZE).ljust(BLOCK_SIZE, b"\0"))
            disk = Disk(file, desc)
            root_inode = Inode.unpack(
                disk.read_at(desc.inode_table * BLOCK_SIZE, BLOCK_SIZE)
            )
            cwd = disk.read_dir_entry(Disk.data_block_addr(0))
            if (
                cwd.name != encode_name(".")
                or cwd.i_node != 0
                or root_inode.i_size < 2 * DIR_ENTRY_SIZE
            ):
                raise FsError("Bad filesystem")
        except BaseException:
            file.close()
            raise
        return cls(disk, cwd)

    def __enter__(self) -> Volume:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.exit()
        finally:
            self.disk.close()

    def exit(self) -> None:
        """Store the descriptor and flush the image."""
        self.disk.write_desc()
        self.disk.flush()

    def get_inode(self, inode_no: int) -> Inode:
        return self.disk.read_inode(inode_no)

    def iter_dir(self, entry: DirEntry) -> Iterator[DirItem]:
        """Iterate a directory as the current user."""
        return iter_directory(self.disk, entry, self.user)

    # ----- path lookup -------------------------------------------------

    def path_parse(self, path: str) -> PathParseResult:
        """Resolve an absolute or relative path, following symbolic links."""
        return self.path_parse_with_options(path, True)

    def path_parse_with_options(self, path: str, follow_symlinks: bool) -> PathParseResult:
        """Resolve a path; ``follow_symlinks`` chooses whether links are followed."""
        if path.startswith("/"):
            path = path[1:]
            dir_entry = self.disk.read_dir_entry(Disk.data_block_addr(0))
        else:
            dir_entry = replace(self.cwd)

        inode = self.get_inode(dir_entry.i_node)
        dir_entry_addr = Disk.data_block_addr(inode.i_block[0])
        parent_inode_i = self.disk.read_dir_entry(dir_entry_addr + DIR_ENTRY_SIZE).i_node

        parts = path.split("/")
        for name in parts:
            if not name or name == ".":
                continue

            if name == "..":
                parent = self.get_inode(parent_inode_i)
                dir_entry_addr = Disk.data_block_addr(parent.i_block[0])
                dir_entry = self.disk.read_dir_entry(dir_entry_addr)
                parent_inode_i = self.disk.read_dir_entry(
                    dir_entry_addr + DIR_ENTRY_SIZE
                ).i_node
                continue

            if not self.get_inode(dir_entry.i_node).i_mode.can_exec(self.user):
                raise PermissionDeniedError("Permission Denied. Need exec permission.")

            found = self._lookup(dir_entry, name)
            if found is None:
                raise NotFoundError(f"{name}: No such file or directory")

            if follow_symlinks and found.entry.file_type == FileType.SYMLINK:
                resolved = self._resolve_link_target(found.entry)
                remaining = parts[parts.index(name) + 1 :]
                target = self.path_parse_with_options(resolved, follow_symlinks)
                if not remaining:
                    return target
                dir_entry = target.dir_entry
                dir_entry_addr = target.dir_entry_addr
                parent_inode_i = target.parent_inode_i
                continue

            parent_inode_i = dir_entry.i_node
            dir_entry = found.entry
            dir_entry_addr = found.real_addr.addr

        return PathParseResult(dir_entry, dir_entry_addr, parent_inode_i)

    def _lookup(self, dir_entry: DirEntry, name: str) -> Optional[DirItem]:
        items = self.iter_dir(dir_entry)
        key = encode_name(name)
        for item in items:
            if not item.deleted and item.entry.name == key:
                return item
        return None

    def _resolve_link_target(self, entry: DirEntry) -> str:
        link = self.get_inode(entry.i_node)
        if link.i_blocks > 0:
            raw = self.disk.read_at(Disk.data_block_addr(link.i_block[0]), link.i_size)
        else:
            raw = bytes(link.i_size)
        try:
            target = raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise InvalidDataError("Invalid symlink target") from err
        if target.startswith("/"):
            return target
        current = self.get_current_dir()
        return f"/{target}" if current == "/" else f"{current}/{target}"

    # ----- working directory --------------------------------------------

    def pwd(self) -> str:
        """Absolute path of the working directory."""
        return self.get_current_dir()

    def get_current_dir(self) -> str:
        if self.cwd.i_node == 0:
            return "/"
        return self._path_of_inode(self.cwd.i_node)

    def _path_of_inode(self, inode_no: int) -> str:
        if inode_no == 0:
            return "/"
        try:
            entry = self._entry_of_inode(inode_no)
            parent = self._parent_inode_of(inode_no)
        except (FsError, OSError):
            return "/"
        parent_path = self._path_of_inode(parent)
        name = decode_name(entry.name)
        return f"/{name}" if parent_path == "/" else f"{parent_path}/{name}"

    def _parent_inode_of(self, inode_no: int) -> int:
        inode = self.get_inode(inode_no)
        if inode.i_blocks == 0 or inode.i_mode.mode & 0b00_000_001 == 0:
            raise FsError("Not a directory")
        return self.disk.read_dir_entry(
            Disk.data_block_addr(inode.i_block[0]) + DIR_ENTRY_SIZE
        ).i_node

    def _entry_of_inode(self, inode_no: int) -> DirEntry:
        root = self.disk.read_dir_entry(Disk.data_block_addr(0))
        return self._find_entry(root, inode_no)

    def _find_entry(self, dir_entry: DirEntry, inode_no: int) -> DirEntry:
        if dir_entry.i_node == inode_no:
            return dir_entry
        for item in self.iter_dir(dir_entry):
            if item.deleted:
                continue
            name = decode_name(item.entry.name)
            if name in (".", ".."):
                continue
            if item.entry.i_node == inode_no:
                return item.entry
            if item.entry.file_type == FileType.DIR:
                try:
                    return self._find_entry(item.entry, inode_no)
                except (FsError, OSError):
                    continue
        raise NotFoundError("Entry not found")

    def chdir(self, path: str) -> None:
        """Change the working directory; needs read permission on the target."""
        entry = self.path_parse(path).dir_entry
        inode = self.get_inode(entry.i_node)
        if not inode.i_mode.can_read(self.user):
            raise PermissionDeniedError("Need read permission of directory")
        if entry.file_type == FileType.FILE:
            raise FsError(f"{decode_name(entry.name)}: Not a directory")
        self.cwd = entry

    # ----- creation -----------------------------------------------------

    def mkdir(self, name: str) -> None:
        """Create a directory at the path ``name``."""
        self._create(name, FileType.DIR)

    def create(self, name: str) -> None:
        """Create an empty regular file at the path ``name``."""
        self._create(name, FileType.FILE)

    def _create(self, path: str, file_type: FileType) -> None:
        if "/" in path:
            parent_path, _, name = path.rpartition("/")
        else:
            parent_path, name = ".", path

        parent_entry = self.path_parse(parent_path).dir_entry
        parent_inode = self.get_inode(parent_entry.i_node)
        if not parent_inode.i_mode.can_write(self.user):
            raise PermissionDeniedError("Need write permission to directory")

        items = self.iter_dir(parent_entry)
        key = encode_name(name)
        deleted_addr = None
        for item in items:
            if item.deleted:
                deleted_addr = item.real_addr
            elif item.entry.name == key:
                raise AlreadyExistsError("Files has exists")

        if file_type == FileType.SYMLINK:
            raise FsError("Symlinks should be created using symlink() function")

        inode_no = self.disk.alloc_inode() if False else self._alloc_inode()

        if file_type == FileType.FILE:
            inode = Inode(i_mode=FileMode.for_type(self.user, file_type))
        else:
            inode = Inode(
                i_mode=FileMode.for_type(self.user, file_type),
                i_size=DIR_ENTRY_SIZE * 2,
            )
            block = inode.alloc_data_block(self.disk)
            base = Disk.data_block_addr(block)
            self.disk.write_dir_entry(
                base,
                DirEntry(
                    i_node=inode_no,
                    rec_len=0,
                    name_len=1,
                    file_type=int(FileType.DIR),
                    name=encode_name("."),
                ),
            )
            self.disk.write_dir_entry(
                base + DIR_ENTRY_SIZE,
                DirEntry(
                    i_node=parent_entry.i_node,
                    rec_len=0,
                    name_len=2,
                    file_type=int(FileType.DIR),
                    name=encode_name(".."),
                ),
            )

        self.disk.write_inode(inode_no, inode)

        entry = DirEntry(
            i_node=inode_no,
            rec_len=1,
            name_len=len(name.encode("utf-8")),
            file_type=int(file_type),
            name=key,
        )

        if deleted_addr is not None:
            self.disk.write_dir_entry(deleted_addr.addr, entry)
        else:
            if parent_inode.i_size % BLOCK_SIZE == 0:
                block = parent_inode.alloc_data_block(self.disk)
                addr = Disk.data_block_addr(block)
            else:
                addr = parent_inode.convert_addr(self.disk, parent_inode.i_size).addr
            self.disk.write_dir_entry(addr, entry)

        parent_inode.i_size += DIR_ENTRY_SIZE
        if file_type == FileType.DIR:
            self.disk.desc.used_dirs_count += 1

        self.disk.write_inode(parent_entry.i_node, parent_inode)
        self.disk.write_desc()

    def _alloc_inode(self) -> int:
        from .records import BlockKind

        return self.disk.alloc(BlockKind.INODE)