"""qrferry split - Encode-time chunk splitting."""
from .splitter import split, write_records

__all__ = ["split", "write_records"]
