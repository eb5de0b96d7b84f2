"""Layout constants of the simulated single-group disk."""

# Size of every disk block, in bytes.
BLOCK_SIZE = 512

# One bitmap block tracks BLOCK_SIZE * 8 data blocks.
DATA_BLOCKS = BLOCK_SIZE * 8

# At most one file per data block.
MAX_FILES = DATA_BLOCKS

# On-disk size of an inode record, in bytes.
INODE_SIZE = 64

INODES_PER_BLOCK = BLOCK_SIZE // INODE_SIZE

# Blocks reserved for the inode table.
INODE_BLOCKS = (MAX_FILES + INODES_PER_BLOCK - 1) // INODES_PER_BLOCK

# The group descriptor and the two bitmaps take the first three blocks,
# the inode table follows, then the data area.
DATA_BEGIN_BLOCK = 3 + INODE_BLOCKS

# Total number of blocks on the disk.
BLOCKS = DATA_BEGIN_BLOCK + DATA_BLOCKS

# On-disk size of a directory entry, in bytes.
DIR_ENTRY_SIZE = 32

# Number of entries that fit into one block.
BLOCK_ADDR_NUM = BLOCK_SIZE // DIR_ENTRY_SIZE

# Default path of the disk image.
DISK_PATH = "disk.bin"

# How many files may be open at once.
FD_LIMIT = 20

# Fixed width of file names, user names and passwords.
NAME_LEN = 16

# Capacity of the user table.
MAX_USERS = 10