from __future__ import annotations

from pathlib import Path

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from .reconcile import ChunkTable

PROVENANCE_SCHEMA = pa.schema(
    [
        ("file_name", pa.string()),
        ("chunk_index", pa.int64()),
        ("total_count", pa.int64()),
        ("source_id", pa.string()),
        ("entry", pa.string()),
        ("payload_len", pa.int64()),
        ("status", pa.string()),
    ]
)


def provenance_frame(table: ChunkTable) -> pd.DataFrame:
    """Every observed record instance, in arrival order."""
    columns = [f.name for f in PROVENANCE_SCHEMA]
    return pd.DataFrame(table.history, columns=columns)


def export_provenance(table: ChunkTable, out_path: Path) -> Path:
    """Write the provenance history of a table as Parquet."""
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    df = provenance_frame(table)
    if df.empty:
        pq.write_table(PROVENANCE_SCHEMA.empty_table(), out_path)
        return out_path

    pq.write_table(pa.Table.from_pandas(df, schema=PROVENANCE_SCHEMA, preserve_index=False), out_path)
    return out_path
