"""Exceptions raised by the file system."""


class FsError(Exception):
    """Base class of every file system error."""


class PermissionDeniedError(FsError):
    """The current user lacks the permission the operation needs."""


class NotFoundError(FsError):
    """A path, user or free slot could not be found."""


class AlreadyExistsError(FsError):
    """A name is already taken."""


class InvalidDataError(FsError):
    """Stored or supplied data is malformed."""


class InvalidInputError(FsError):
    """An argument is not acceptable for the operation."""


class OutOfSpaceError(FsError):
    """An address falls outside the area reserved for it."""