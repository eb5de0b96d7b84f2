"""The complete file system: user accounts, ownership and permission changes."""

from __future__ import annotations

from .errors import FsError, NotFoundError, PermissionDeniedError
from .links import LinkedVolume
from .records import User, encode_name

ROOT_USER = "root"
HOME_DIR = "/home"


class FileSystem(LinkedVolume):
    """A volume with user management on top of files, directories and links."""

    def login(self, username: str, password: str) -> None:
        """Switch to the user whose name and password match."""
        if not username or not password:
            raise PermissionDeniedError("Wrong username or password")

        name_key = encode_name(username)
        password_key = encode_name(password)
        for user_id, user in enumerate(self.disk.desc.users):
            if user.name == name_key and user.password == password_key:
                self.user = user_id
                return

        raise PermissionDeniedError("Wrong username or password")

    def useradd(self, name: str, password: str) -> None:
        """Add a user and give it a home directory under ``/home``."""
        desc = self.disk.desc
        if desc.users_len >= len(desc.users):
            raise FsError("Can't add more user")

        name_key = encode_name(name)
        for slot, user in enumerate(desc.users):
            if user.name == name_key:
                raise FsError("User exists yet.")
            if user.name[0] == 0:
                desc.users[slot] = User(name_key, encode_name(password))
                desc.users_len += 1
                break

        home = f"{HOME_DIR}/{name}"
        self.mkdir(home)
        self.chown(home, name)

        self.disk.write_desc()

    def userdel(self, name: str) -> None:
        """Remove a user account; root and the current user cannot be removed."""
        if name == ROOT_USER:
            raise FsError("Can't delete root user")

        desc = self.disk.desc
        name_key = encode_name(name)
        if name_key == desc.users[self.user].name:
            raise FsError("Can't delete yourself, please login with other account")

        found = False
        for slot, user in enumerate(desc.users):
            if user.name == name_key:
                desc.users[slot] = User()
                desc.used_dirs_count -= 1
                found = True

        if not found:
            raise NotFoundError("User not exists.")

        self.disk.write_desc()

    def chown(self, path: str, user: str) -> None:
        """Give the object at ``path`` to ``user``; only its owner or root may."""
        res = self.path_parse(path)

        name_key = encode_name(user)
        user_id = next(
            (i for i, u in enumerate(self.disk.desc.users) if u.name == name_key),
            None,
        )
        if user_id is None:
            raise NotFoundError(f"Can't find user {user}")

        inode_no = res.dir_entry.i_node
        inode = self.get_inode(inode_no)
        if inode.i_mode.owner != self.user and self.user != 0:
            raise PermissionDeniedError("Permission Denied")
        inode.i_mode.owner = user_id
        self.disk.write_inode(inode_no, inode)

    def chmod(self, path: str, mode: int) -> None:
        """Replace the permission bits of the object at ``path``."""
        inode_no = self.path_parse(path).dir_entry.i_node
        inode = self.get_inode(inode_no)
        inode.i_mode.set_mode(self.user, mode)
        self.disk.write_inode(inode_no, inode)