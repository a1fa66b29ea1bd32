"""
Tabular I/O
===========

Event tables live in Apache Parquet files (single file or a partitioned
dataset directory). Reading checks existence and column presence before any
data is touched; writing always overwrites and records the table name
(ntuple title) in the Parquet key-value metadata.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from mvareg.errors import ResourceNotFound, SchemaMismatch

logger = logging.getLogger(__name__)

TABLE_NAME_KEY = b'mvareg.table_name'

PathLike = Union[str, Path]


def _require(path: PathLike, what: str) -> Path:
    path = Path(path)
    if not path.exists():
        raise ResourceNotFound(path, what=what)
    return path


def _read_schema(path: Path) -> pa.Schema:
    return pq.read_schema(path) if path.is_file() else pq.ParquetDataset(path).schema


def table_columns(path: PathLike) -> List[str]:
    """Column names of a Parquet table, read from its schema only."""
    path = _require(path, 'data file')
    schema = _read_schema(path)
    return [name for name in schema.names if not name.startswith('__index_level_')]


def count_rows(path: PathLike) -> int:
    """Number of rows, from the Parquet footer(s) without reading data."""
    path = _require(path, 'data file')
    if path.is_file():
        return pq.read_metadata(path).num_rows
    return sum(pq.read_metadata(p).num_rows for p in sorted(path.rglob('*.parquet')))


def table_name(path: PathLike) -> Optional[str]:
    """Table name stored by write_table(), or None."""
    path = _require(path, 'data file')
    metadata = _read_schema(path).metadata or {}
    name = metadata.get(TABLE_NAME_KEY)
    return name.decode('utf-8') if name is not None else None


def open_table(
    path: PathLike,
    columns: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """
    Read an event table.

    Args:
        path: Parquet file or dataset directory
        columns: Columns to read (None = all). Checked against the file
            schema before reading.

    Returns:
        DataFrame with the requested columns in the requested order

    Raises:
        ResourceNotFound: Path does not exist
        SchemaMismatch: A requested column is absent from the file
    """
    path = _require(path, 'data file')

    if columns is not None:
        available = set(table_columns(path))
        missing = [c for c in columns if c not in available]
        if missing:
            raise SchemaMismatch(missing, source=str(path))
        columns = list(columns)

    table = pq.read_table(path, columns=columns)
    df = table.to_pandas()
    if columns is not None:
        df = df[columns]

    logger.info(f"Read {len(df):,} rows x {len(df.columns)} columns from {path}")
    return df.reset_index(drop=True)


def write_table(
    df: pd.DataFrame,
    path: PathLike,
    name: Optional[str] = None,
) -> Path:
    """
    Write ``df`` to a single Parquet file, replacing any existing file.

    A zero-row frame still produces a valid file carrying the column header.

    Args:
        df: Table to write (index is dropped)
        path: Output file
        name: Table name stored in the file metadata

    Returns:
        Path of the written file
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    table = pa.Table.from_pandas(df, preserve_index=False)
    if name is not None:
        metadata = dict(table.schema.metadata or {})
        metadata[TABLE_NAME_KEY] = name.encode('utf-8')
        table = table.replace_schema_metadata(metadata)

    pq.write_table(table, path)

    logger.info(f"Wrote {len(df):,} rows to {path}" + (f" ({name})" if name else ""))
    return path
