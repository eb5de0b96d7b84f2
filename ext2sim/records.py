"""Fixed-size records stored on the disk and their byte encoding."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import Enum

from .constants import DATA_BLOCKS, DIR_ENTRY_SIZE, MAX_USERS, NAME_LEN
from .errors import FsError, InvalidDataError

INVALID_UTF8 = "[err invaild utf-8]"
VOLUME_NAME = "Ext2Disk"
ROOT_NAME = "root"
ROOT_PASSWORD = "password"

_EMPTY_NAME = bytes(NAME_LEN)

_DESC_STRUCT = struct.Struct(
    "<16s6H" + "16s16s" * MAX_USERS + "H"
)
# Records are aligned to 32 bytes on disk.
GROUP_DESC_SIZE = -(-_DESC_STRUCT.size // 32) * 32

_DIR_ENTRY_STRUCT = struct.Struct("<HHBB16s")


class BlockKind(Enum):
    """Which bitmap an allocation works on."""

    INODE = "inode"
    DATA = "data"


def encode_name(text: str, length: int = NAME_LEN) -> bytes:
    """Encode a name into a zero-padded field of ``length`` bytes."""
    raw = text.encode("utf-8")
    if len(raw) >= length:
        raise FsError(f"Too long!! Should less {length} bytes")
    if not raw:
        raise FsError("can't receive empty string")
    if "/" in text:
        raise FsError("Can't contains char '/'")
    return raw.ljust(length, b"\0")


def decode_name(raw: bytes) -> str:
    """Decode a zero-padded name field, dropping the trailing zeros."""
    try:
        text = bytes(raw).decode("utf-8")
    except UnicodeDecodeError:
        text = INVALID_UTF8
    return text.rstrip("\0")


@dataclass
class User:
    """An entry of the user table; an empty name marks a free slot."""

    name: bytes = _EMPTY_NAME
    password: bytes = _EMPTY_NAME


def _empty_users() -> list[User]:
    return [User() for _ in range(MAX_USERS)]


@dataclass
class GroupDesc:
    """Volume metadata kept in the first block of the disk."""

    volume_name: bytes = _EMPTY_NAME
    block_bitmap: int = 0
    inode_bitmap: int = 0
    inode_table: int = 0
    free_blocks_count: int = 0
    free_inodes_count: int = 0
    used_dirs_count: int = 0
    users: list[User] = field(default_factory=_empty_users)
    users_len: int = 0

    @classmethod
    def fresh(cls) -> GroupDesc:
        """Descriptor of a newly formatted disk with only the root user."""
        users = _empty_users()
        users[0] = User(encode_name(ROOT_NAME), encode_name(ROOT_PASSWORD))
        return cls(
            volume_name=encode_name(VOLUME_NAME),
            block_bitmap=1,
            inode_bitmap=2,
            inode_table=3,
            free_blocks_count=DATA_BLOCKS,
            free_inodes_count=DATA_BLOCKS,
            used_dirs_count=0,
            users=users,
            users_len=1,
        )

    def pack(self) -> bytes:
        if len(self.users) != MAX_USERS:
            raise InvalidDataError(f"User table must hold {MAX_USERS} entries")
        user_fields = [
            value for user in self.users for value in (user.name, user.password)
        ]
        packed = _DESC_STRUCT.pack(
            self.volume_name,
            self.block_bitmap,
            self.inode_bitmap,
            self.inode_table,
            self.free_blocks_count,
            self.free_inodes_count,
            self.used_dirs_count,
            *user_fields,
            self.users_len,
        )
        return packed.ljust(GROUP_DESC_SIZE, b"\0")

    @classmethod
    def unpack(cls, data: bytes) -> GroupDesc:
        if len(data) < _DESC_STRUCT.size:
            raise InvalidDataError("Group descriptor is truncated")
        values = _DESC_STRUCT.unpack_from(data)
        head, user_fields, users_len = values[:7], values[7:-1], values[-1]
        users = [
            User(name, password)
            for name, password in zip(user_fields[0::2], user_fields[1::2])
        ]
        return cls(*head, users=users, users_len=users_len)


@dataclass
class DirEntry:
    """A directory entry: name, inode number and type of one child."""

    i_node: int = 0
    rec_len: int = 0
    name_len: int = 0
    file_type: int = 0
    name: bytes = _EMPTY_NAME

    def pack(self) -> bytes:
        packed = _DIR_ENTRY_STRUCT.pack(
            self.i_node, self.rec_len, self.name_len, self.file_type, self.name
        )
        return packed.ljust(DIR_ENTRY_SIZE, b"\0")

    @classmethod
    def unpack(cls, data: bytes) -> DirEntry:
        if len(data) < _DIR_ENTRY_STRUCT.size:
            raise InvalidDataError("Directory entry is truncated")
        return cls(*_DIR_ENTRY_STRUCT.unpack_from(data))