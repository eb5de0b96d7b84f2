"""A small multi-user, ext2-style filesystem kept in a single disk image file."""

__version__ = "0.1.0"