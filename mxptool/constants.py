# Header
HEADER_SIZE = 8
HEADER_TAIL = bytes([0, 0, 0, 1, 0, 0, 0])  # 7 bytes following the version byte

MIN_MXP_VERSION = 1
MAX_MXP_VERSION = 4
DEFAULT_MXP_VERSION = 3


# Entry layout
MAX_PATH_LENGTH = 256
TYPE_TAG_SIZE = 8
ZERO_TYPE_TAG = b"\x00" * TYPE_TAG_SIZE

# Archive paths always use backslashes
ARCHIVE_SEP = "\\"

MANIFEST_EXTENSION = ".mxi"


# Blocks
BLOCK_SIZE = 1024
BLOCK_TERMINATOR = b"\x00" * 8  # (0, 0) length pair
DEFLATE_LEVEL = 9


# Field limits
MAX_UINT16 = 0xFFFF
MAX_UINT32 = 0xFFFFFFFF
# Sizes are used for addressing; anything that would go negative as a signed
# 32-bit value is rejected on read.
MAX_SAFE_SIZE = 0x7FFFFFFF
