"""qrferry protocol constants.

Single source of truth for the wire record layout and on-disk naming.
Keep this file stable. Splitter and merger must remain synchronized.
"""

# Record layout: fileName|~|index|~|totalCount|~|base64Payload
# The delimiter cannot occur in base64 output ([A-Za-z0-9+/=]).
DELIMITER = "|~|"
FIELD_COUNT = 4

# Base64 characters per record. Multiples of 4 keep partial output aligned.
DEFAULT_CHUNK_SIZE = 800

# Safety bounds. A noise text declaring a huge total must not size the report.
# 1M records is about 800 MB of base64 at the default chunk size.
MAX_TOTAL_COUNT = 1_000_000

# On-disk naming
RECORD_FILE_FMT = "qr_{:04d}.txt"
INDEX_FILE = "README.txt"
TEXT_SUFFIX = ".txt"
ARCHIVE_SUFFIX = ".zip"
PARTIAL_SUFFIX = "_PARTIAL"
DEFAULT_OUTPUT_DIR = "reconstructed_files"

# Reconstruction modes
MODE_STRICT = "strict"
MODE_PARTIAL = "partial"
MODES = (MODE_STRICT, MODE_PARTIAL)

# Console display bounds
MAX_LISTED_MISSING = 50
MAX_LISTED_GAPS = 10
