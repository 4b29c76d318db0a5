"""
Parquet input side: source adapter and the streaming batch reader.
"""

from parquet2csv.io.reader import ParquetReader, Record, open_reader
from parquet2csv.io.source import ParquetSource, SourceFile

__all__ = ["ParquetReader", "ParquetSource", "Record", "SourceFile", "open_reader"]
