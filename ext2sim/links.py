"""Hard links, symbolic links and directory removal."""

from __future__ import annotations

from typing import Optional

from .constants import BLOCK_SIZE, DIR_ENTRY_SIZE
from .directory import iter_directory_unchecked
from .disk import Disk, now
from .errors import (
    AlreadyExistsError,
    FsError,
    InvalidDataError,
    InvalidInputError,
    PermissionDeniedError,
)
from .handles import FileVolume
from .inode import Inode, RealAddr
from .mode import FileMode, FileType
from .records import BlockKind, DirEntry, decode_name, encode_name
from .volume import PathParseResult


def _split_path(path: str) -> tuple[str, str]:
    if "/" in path:
        parent, _, name = path.rpartition("/")
        return parent, name
    return ".", path


class LinkedVolume(FileVolume):
    """A volume that also manages hard links, symbolic links and directory removal."""

    # ----- shared helpers ------------------------------------------------

    def _prepare_new_entry(self, link_name: str) -> tuple[DirEntry, str, Optional[RealAddr]]:
        """Check the directory that will hold ``link_name`` and find a free slot."""
        dir_path, name = _split_path(link_name)
        dir_entry = self.path_parse(dir_path).dir_entry

        dir_inode = self.get_inode(dir_entry.i_node)
        if not dir_inode.i_mode.can_write(self.user):
            raise PermissionDeniedError("Need write permission to directory")

        items = self.iter_dir(dir_entry)
        key = encode_name(name)
        for item in items:
            if not item.deleted and item.entry.name == key:
                raise AlreadyExistsError("Link name already exists")

        deleted_addr = next(
            (
                item.real_addr
                for item in iter_directory_unchecked(self.disk, dir_entry)
                if item.deleted
            ),
            None,
        )
        return dir_entry, name, deleted_addr

    def _store_entry(
        self, dir_entry: DirEntry, entry: DirEntry, deleted_addr: Optional[RealAddr]
    ) -> None:
        """Write ``entry`` into a freed slot or append it to the directory."""
        if deleted_addr is not None:
            self.disk.write_dir_entry(deleted_addr.addr, entry)
            return

        dir_inode = self.get_inode(dir_entry.i_node)
        logic_addr = dir_inode.i_size
        if logic_addr // BLOCK_SIZE >= dir_inode.i_blocks:
            dir_inode.alloc_data_block(self.disk)
        real_addr = dir_inode.convert_addr(self.disk, logic_addr)
        self.disk.write_dir_entry(real_addr.addr, entry)

        dir_inode.i_size += DIR_ENTRY_SIZE
        dir_inode.i_mtime = now()
        self.disk.write_inode(dir_entry.i_node, dir_inode)

    # ----- links ---------------------------------------------------------

    def link(self, target: str, link_name: str) -> None:
        """Create a hard link ``link_name`` to the file ``target``."""
        target_entry = self.path_parse(target).dir_entry
        if target_entry.file_type == FileType.DIR:
            raise InvalidInputError("Hard links to directories are not allowed")

        dir_entry, name, deleted_addr = self._prepare_new_entry(link_name)

        entry = DirEntry(
            i_node=target_entry.i_node,
            rec_len=1,
            name_len=len(name.encode("utf-8")),
            file_type=target_entry.file_type,
            name=encode_name(name),
        )

        target_inode = self.get_inode(target_entry.i_node)
        target_inode.i_links_count += 1
        self.disk.write_inode(target_entry.i_node, target_inode)

        self._store_entry(dir_entry, entry, deleted_addr)

    def symlink(self, target: str, link_name: str) -> None:
        """Create a symbolic link ``link_name`` that points at ``target``."""
        dir_entry, name, deleted_addr = self._prepare_new_entry(link_name)

        inode_no = self.disk.alloc(BlockKind.INODE)
        inode = Inode(i_mode=FileMode.for_type(self.user, FileType.SYMLINK))

        block = inode.alloc_data_block(self.disk)
        target_bytes = target.encode("utf-8")
        self.disk.write_at(Disk.data_block_addr(block), target_bytes)

        inode.i_size = len(target_bytes)
        self.disk.write_inode(inode_no, inode)

        entry = DirEntry(
            i_node=inode_no,
            rec_len=1,
            name_len=len(name.encode("utf-8")),
            file_type=int(FileType.SYMLINK),
            name=encode_name(name),
        )
        self._store_entry(dir_entry, entry, deleted_addr)

    def read_symlink_target(self, symlink_path: str) -> str:
        """Return the path stored in the symbolic link at ``symlink_path``."""
        entry = self.path_parse_with_options(symlink_path, False).dir_entry
        if entry.file_type != FileType.SYMLINK:
            raise InvalidInputError("Not a symbolic link")

        inode = self.get_inode(entry.i_node)
        if inode.i_blocks > 0:
            raw = self.disk.read_at(Disk.data_block_addr(inode.i_block[0]), inode.i_size)
        else:
            raw = bytes(inode.i_size)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise InvalidDataError("Invalid symlink target") from err

    def rm_symlink(self, path: str) -> None:
        """Remove the symbolic link itself, leaving its target alone."""
        res = self.path_parse_with_options(path, False)
        if res.dir_entry.file_type != FileType.SYMLINK:
            raise InvalidInputError("Not a symbolic link")

        parent = self.get_inode(res.parent_inode_i)

        entry = self.disk.read_dir_entry(res.dir_entry_addr)
        link_inode_no = entry.i_node
        entry.i_node = 0
        entry.rec_len = 1
        self.disk.write_dir_entry(res.dir_entry_addr, entry)

        parent.i_size -= DIR_ENTRY_SIZE
        parent.i_mtime = now()
        self.disk.write_inode(res.parent_inode_i, parent)

        self.disk.free(BlockKind.INODE, [link_inode_no])

    # ----- directory removal ---------------------------------------------

    def rmdir(self, path: str) -> None:
        """Remove the empty directory at ``path``."""
        self._rmdir(path, recursive=False)

    def rmdir_recursive(self, path: str) -> None:
        """Remove the directory at ``path`` together with everything in it."""
        self._rmdir(path, recursive=True)

    def _rmdir(self, path: str, recursive: bool) -> None:
        res = self.path_parse(path)
        entry = res.dir_entry
        name = decode_name(entry.name)

        inode = self.get_inode(entry.i_node)
        if not inode.i_mode.can_write(self.user):
            raise PermissionDeniedError("Permission Denied")

        if name in (".", ".."):
            raise PermissionDeniedError(
                f"Persission Denied, can't delete . and .., skip delete {name}"
            )

        if entry.file_type == FileType.FILE:
            raise FsError("Not a directory")

        is_empty = inode.i_size == 2 * DIR_ENTRY_SIZE
        if not is_empty:
            if not recursive:
                raise FsError("Directory is not empty")
            self._clear_directory(entry)

        self._delete_empty_directory(res)

    def _clear_directory(self, dir_entry: DirEntry) -> None:
        original_cwd = self.cwd
        self.cwd = dir_entry
        try:
            children = [
                item.entry
                for item in iter_directory_unchecked(self.disk, dir_entry)
                if not item.deleted and decode_name(item.entry.name) not in (".", "..")
            ]
            for child in children:
                child_name = decode_name(child.name)
                if child.file_type == FileType.DIR:
                    self.rmdir_recursive(child_name)
                else:
                    self.rm(self.open(child_name))
        finally:
            self.cwd = original_cwd

    def _delete_empty_directory(self, res: PathParseResult) -> None:
        entry = DirEntry(
            i_node=res.dir_entry.i_node,
            rec_len=res.dir_entry.rec_len,
            name_len=res.dir_entry.name_len,
            file_type=res.dir_entry.file_type,
            name=res.dir_entry.name,
        )
        inode = self.get_inode(entry.i_node)
        inode.free_data_block(0, self.disk)
        self.disk.free(BlockKind.INODE, [entry.i_node])

        entry.i_node = 0
        self.disk.write_dir_entry(res.dir_entry_addr, entry)

        parent = self.get_inode(res.parent_inode_i)
        parent.i_size -= DIR_ENTRY_SIZE
        self.disk.write_inode(res.parent_inode_i, parent)

        self.disk.desc.used_dirs_count -= 1
        self.disk.write_desc()