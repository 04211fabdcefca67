"""qrferry core - Shared protocol and record codec."""
from .records import ChunkRecord, ProvenanceTag, MalformedRecord, encode_record, decode_record

__all__ = ["ChunkRecord", "ProvenanceTag", "MalformedRecord", "encode_record", "decode_record"]
