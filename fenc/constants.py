from enum import Enum


# Marker and header layout
MARKER_STRING = "Encrypted by FEnc."
MARKER_SIZE = 32   # SHA-256 digest
IV_SIZE = 16       # AES block size
KEY_SIZE = 32      # AES-256

HEADER_SIZE = MARKER_SIZE + IV_SIZE


DEFAULT_BUFFER_SIZE = 65536  # 64 KiB
DEFAULT_STATUS_DELAY = 2.5   # seconds between periodic status lines
DEFAULT_KEYGEN_SIZE = 10

TEMP_PREFIX = "enc"


# Status prefixes, kept short so log scanners can grep for them
PREFIX_SUCCESS = "SUCC"
PREFIX_SKIPPED = "SKIP"
PREFIX_STATUS = "STAT"
PREFIX_ABNORMAL = "ABNF"
PREFIX_DIRECTORY = "DIRF"
PREFIX_TEMP_CREATE = "TMPF"
PREFIX_ALGORITHM = "EFL"
PREFIX_IO = "IOEX"
PREFIX_FORMAT = "ENEX"
PREFIX_REPLACE = "TMPC"
PREFIX_UNKNOWN = "UNKN"
PREFIX_DIGEST_FAIL = "FAIL"


class Mode(Enum):
    ENCRYPT = "encrypt"
    DECRYPT = "decrypt"
    HASH = "hash"
    KEYGEN = "keygen"
