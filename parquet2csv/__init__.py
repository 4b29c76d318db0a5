"""
Stream parquet files into delimiter separated text.
"""

from parquet2csv.convert import ConversionContext, Sink, convert, parquet_file_to_csv
from parquet2csv.errors import (
    ConversionCancelled,
    ConversionErrors,
    DecodeError,
    OpenError,
    Parquet2CsvError,
    RecordReleasedError,
)
from parquet2csv.io import ParquetReader, Record, SourceFile, open_reader
from parquet2csv.options import DEFAULT_BATCH_SIZE, ColumnOverride, ParquetReadOptions
from parquet2csv.writer import (
    CsvWriteOptions,
    RowCounter,
    count_writer,
    csv_writer,
    discard_writer,
    with_progress,
)

__all__ = [
    "ColumnOverride",
    "ConversionCancelled",
    "ConversionContext",
    "ConversionErrors",
    "CsvWriteOptions",
    "DEFAULT_BATCH_SIZE",
    "DecodeError",
    "OpenError",
    "Parquet2CsvError",
    "ParquetReadOptions",
    "ParquetReader",
    "Record",
    "RecordReleasedError",
    "RowCounter",
    "Sink",
    "SourceFile",
    "convert",
    "count_writer",
    "csv_writer",
    "discard_writer",
    "open_reader",
    "parquet_file_to_csv",
    "with_progress",
]
