"""File types and permission bits."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum

from .errors import InvalidDataError, PermissionDeniedError

_OWNER_READ = 0b00_100_000
_OWNER_WRITE = 0b00_010_000
_OWNER_EXEC = 0b00_001_000
_OTHER_READ = 0b00_000_100
_OTHER_WRITE = 0b00_000_010
_OTHER_EXEC = 0b00_000_001
_FULL_MODE = 0b00_111_111

_LETTERS = "rwxrwx"


class FileType(IntEnum):
    """Kind of object a directory entry refers to."""

    FILE = 1
    DIR = 2
    SYMLINK = 3


_DEFAULT_MODES = {
    FileType.FILE: 0b00_111_100,
    FileType.DIR: 0b00_111_101,
    FileType.SYMLINK: 0b00_111_100,
}


@dataclass
class FileMode:
    """Permission bits in the form [rwx:rwx] (owner, others) plus the owner id."""

    mode: int = 0
    owner: int = 0

    @classmethod
    def for_type(cls, owner: int, file_type: FileType) -> FileMode:
        """Default permissions for a new object of the given type."""
        return cls(mode=_DEFAULT_MODES[FileType(file_type)], owner=owner & 0xFF)

    def _is_owner(self, user: int) -> bool:
        return self.owner == (user & 0xFF)

    def _check(self, user: int, owner_bit: int, other_bit: int) -> bool:
        if self._is_owner(user):
            return bool(self.mode & owner_bit)
        return bool(self.mode & other_bit) or user == 0

    def can_read(self, user: int) -> bool:
        return self._check(user, _OWNER_READ, _OTHER_READ)

    def can_write(self, user: int) -> bool:
        return self._check(user, _OWNER_WRITE, _OTHER_WRITE)

    def can_exec(self, user: int) -> bool:
        return self._check(user, _OWNER_EXEC, _OTHER_EXEC)

    def set_mode(self, user: int, mode: int) -> None:
        """Replace the permission bits; only the owner or root may do so."""
        if not self._is_owner(user) and user != 0:
            raise PermissionDeniedError("Permission Denied. Can't set mode to file")
        if not 0 <= mode <= _FULL_MODE:
            raise PermissionDeniedError("Permission Denied. Invaild file mode")
        self.mode = mode

    def __str__(self) -> str:
        letters = "".join(
            letter if self.mode & (_OWNER_READ >> i) else "-"
            for i, letter in enumerate(_LETTERS)
        )
        return f"{letters[:3]}:{letters[3:]}"


def parse_mode(text: str) -> int:
    """Turn a string such as ``rwx:r-x`` into permission bits."""
    raw = text.encode("utf-8")
    if len(raw) != 7:
        raise InvalidDataError("Wrong file mode format")
    chars = raw[:3] + raw[4:]
    mode = 0
    for i, (char, expected) in enumerate(zip(chars, _LETTERS.encode())):
        if char == ord("-"):
            continue
        if char != expected:
            raise InvalidDataError("Wrong file mode format")
        mode |= _OWNER_READ >> i
    return mode