# ext2sim

A compact, ext2-style filesystem kept inside one ordinary file. It has users
and access rights, nested directories, regular files, hard links and symbolic
links. Free data blocks and free inodes are tracked with bitmaps.

The package is a library only: it has no command-line program, no interactive
shell and no web interface. Everything is done by calling methods on a
`FileSystem` object.

## Disk layout

The image is a single block group made of 512-byte blocks
(see `ext2sim.constants`):

| Blocks      | Contents                                               |
|-------------|--------------------------------------------------------|
| 0           | group descriptor: volume name, counters, user table    |
| 1           | data-block bitmap (4096 bits)                          |
| 2           | inode bitmap (4096 bits)                               |
| 3 … 514     | inode table; inode *n* is stored at block 3 + *n*      |
| 515 …       | 4096 data blocks (2 MiB)                               |

Each inode has six direct block pointers, one single-indirect pointer and one
double-indirect pointer. A directory is a file of fixed-size 32-byte entries
and always starts with `.` and `..`. File names, user names and passwords are
limited to 15 bytes, must not be empty, and names must not contain `/`.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Usage

```python
from ext2sim.filesystem import FileSystem

with FileSystem.format("disk.bin") as fs:
    fs.mkdir("docs")
    fs.create("docs/notes.txt")

    fd = fs.open("docs/notes.txt")
    fs.write(fd, b"hello, world")
    fs.close(fd)

    fd = fs.open("docs/notes.txt")
    print(fs.read(fd, 64))        # b'hello, world'
    fs.close(fd)

    fs.symlink("docs/notes.txt", "shortcut")
    print(fs.read_symlink_target("shortcut"))   # docs/notes.txt

    fs.chdir("docs")
    print(fs.pwd())               # /docs
```

`FileSystem.format(path)` creates a new image, overwriting any file already
at that path. The new image holds a root directory containing `/home` and
`/root`. `FileSystem.load(path)` reopens an existing image and checks that it
holds a valid root directory. Used as a context manager, the filesystem writes
its descriptor, flushes and closes the image on exit; `exit()` writes and
flushes without closing.

Paths may be absolute or relative to the working directory, and `.` and `..`
are understood. Symbolic links are followed during lookup; a relative link
target is resolved against the current working directory.

### Files

- `open(path)` returns a descriptor; directories cannot be opened and at most
  20 files may be open at once.
- `read(fd, size=-1)` returns bytes from the current position.
- `write(fd, data)` writes at the current position and grows the file.
- `seek(fd, offset, whence)` moves the cursor, with `whence` a
  `ext2sim.handles.Whence` (`START`, `CURRENT`, `END`).
- `cut(fd, new_len)` shrinks the file and frees the blocks beyond `new_len`.
- `rm(fd)` removes the open file; when other hard links remain, only this
  name is removed.

### Directories and links

- `mkdir(path)`, `create(path)`, `chdir(path)`, `pwd()`
- `rmdir(path)` removes an empty directory; `rmdir_recursive(path)` removes a
  directory and everything in it.
- `link(target, name)` makes a hard link to a file (not to a directory).
- `symlink(target, name)`, `read_symlink_target(path)`, `rm_symlink(path)`

### Users and permissions

Each object records an owner and a six-bit mode, written `rwx:rwx` for the
owner and for everyone else (`ext2sim.mode.FileMode`, `parse_mode`). The root
user, id 0, may read, write and traverse anything owned by others. A fresh
image has the single user `root` with the password `password`. Up to ten users
fit in the descriptor, and adding a user also creates `/home/<name>` owned by
that user:

```python
from ext2sim.mode import parse_mode

password = "password"
fs.useradd("alice", password)
fs.chmod("docs/notes.txt", parse_mode("rw-:r--"))
fs.chown("docs/notes.txt", "alice")
fs.login("alice", password)
```

`userdel(name)` removes an account; `root` and the logged-in user cannot be
removed, and the user's home directory is left in place.

### Errors

Failed operations raise `ext2sim.errors.FsError` or one of its subclasses:

- `PermissionDeniedError`
- `NotFoundError`
- `AlreadyExistsError`
- `InvalidDataError`
- `InvalidInputError`
- `OutOfSpaceError`