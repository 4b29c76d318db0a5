"""
Streaming parquet reader.

Opens a parquet source in two stages (metadata, then batch decoder) and
exposes the file as a lazy, single-pass sequence of `Record`s.
"""

import logging
import threading
import weakref
from typing import Iterator, Optional

import pyarrow as pa
import pyarrow.compute as pc
from pyarrow import parquet as pq

from parquet2csv.errors import (
    ConversionCancelled,
    DecodeError,
    OpenError,
    RecordReleasedError,
    capture_close,
    join_errors,
)
from parquet2csv.io.source import ParquetSource, SourceFile
from parquet2csv.options import ParquetReadOptions

logger = logging.getLogger(__name__)

# pyarrow raises thrift and page-header corruption as plain OSError
PARQUET_ERRORS = (pa.ArrowException, OSError)


class Record:
    """
    A decoded record batch handed out by `ParquetReader.iter_records`.

    The batch itself is immutable; `release` drops this handle's reference
    so its buffers can be returned to the memory pool.
    """

    def __init__(self, batch: pa.RecordBatch):
        self._batch: Optional[pa.RecordBatch] = batch

    @property
    def released(self) -> bool:
        return self._batch is None

    @property
    def batch(self) -> pa.RecordBatch:
        if self._batch is None:
            raise RecordReleasedError("record has been released")
        return self._batch

    @property
    def schema(self) -> pa.Schema:
        return self.batch.schema

    @property
    def num_rows(self) -> int:
        return self.batch.num_rows

    def release(self):
        if self._batch is None:
            raise RecordReleasedError("record released twice")
        self._batch = None

    def __repr__(self):
        if self._batch is None:
            return "Record(released)"
        return f"Record(num_rows={self._batch.num_rows})"


def _large_type(data_type: pa.DataType) -> pa.DataType:
    if pa.types.is_string(data_type):
        return pa.large_string()
    if pa.types.is_binary(data_type):
        return pa.large_binary()
    if pa.types.is_list(data_type):
        return pa.large_list(data_type.value_field)
    return data_type


def _target_schema(schema: pa.Schema, options: ParquetReadOptions) -> pa.Schema:
    fields = [
        f.with_type(_large_type(f.type)) if options.force_large(i) else f
        for i, f in enumerate(schema)
    ]
    return pa.schema(fields, metadata=schema.metadata)


def _build_decoder(
    metadata_file: pq.ParquetFile, source: SourceFile, options: ParquetReadOptions
) -> pq.ParquetFile:
    names = metadata_file.schema_arrow.names
    for column in options.column_overrides:
        if not 0 <= column < len(names):
            raise OpenError(
                f"column override {column} out of range: "
                f"{source.name} has {len(names)} columns"
            )

    read_dictionary = [
        names[column]
        for column, override in sorted(options.column_overrides.items())
        if override.read_dict
    ]
    if not read_dictionary:
        return metadata_file

    logger.info(f"Reading columns {read_dictionary} as dictionaries")
    try:
        decoder = pq.ParquetFile(
            source,
            metadata=metadata_file.metadata,
            read_dictionary=read_dictionary,
            **options.file_read_options,
        )
    except PARQUET_ERRORS as e:
        _raise_source_failure(source)
        raise OpenError(f"could not build batch decoder for {source.name}") from e

    metadata_file.close()
    return decoder


def _raise_source_failure(source: SourceFile):
    """Re-raise an error that came from the caller's source, unchanged."""
    failure = source.take_failure()
    if failure is not None:
        raise failure


def open_reader(
    source: ParquetSource,
    options: Optional[ParquetReadOptions] = None,
    memory_pool: Optional[pa.MemoryPool] = None,
) -> "ParquetReader":
    """
    Open a parquet source for streaming.

    Args:
        source: random-access byte source; the returned reader closes it
        options: read options, defaults to `ParquetReadOptions()`
        memory_pool: pool used when coercing columns, defaults to pyarrow's

    If metadata parsing fails the source is left open for the caller.
    If building the decoder fails the source is closed and the failure is
    raised together with any close error.
    """
    options = options or ParquetReadOptions()
    source = SourceFile.wrap(source)

    try:
        metadata_file = pq.ParquetFile(source, **options.file_read_options)
    except PARQUET_ERRORS as e:
        _raise_source_failure(source)
        raise OpenError(f"could not read parquet metadata from {source.name}") from e

    try:
        decoder = _build_decoder(metadata_file, source, options)
        reader = ParquetReader(decoder, source, options, memory_pool=memory_pool)
    except Exception as e:
        error = join_errors(e, capture_close(metadata_file), capture_close(source))
        if error is e:
            raise
        raise error from None

    logger.info(
        f"Opened {source.name}: {reader.num_rows} rows, "
        f"{reader.metadata.num_row_groups} row groups, "
        f"{len(reader.schema)} columns"
    )
    return reader


class ParquetReader:
    """
    Owns an open parquet file and its source.

    `close` finalizes any live record iterators, then closes the parquet
    file and the source. Closing more than once is a no-op.
    """

    def __init__(
        self,
        parquet_file: pq.ParquetFile,
        source: SourceFile,
        options: ParquetReadOptions,
        memory_pool: Optional[pa.MemoryPool] = None,
    ):
        self._file = parquet_file
        self._source = source
        self.options = options
        self.memory_pool = memory_pool or pa.default_memory_pool()
        self.schema = _target_schema(parquet_file.schema_arrow, options)
        self._iterators = weakref.WeakSet()
        self._closed = False

    @property
    def metadata(self) -> pq.FileMetaData:
        return self._file.metadata

    @property
    def num_rows(self) -> int:
        return self._file.metadata.num_rows

    @property
    def closed(self) -> bool:
        return self._closed

    def iter_records(
        self,
        columns: Optional[list] = None,
        row_groups: Optional[list] = None,
        cancel: Optional[threading.Event] = None,
    ) -> Iterator[Record]:
        """
        Lazily decode the file into records, in file order.

        A decode failure is raised once as `DecodeError` and ends the
        sequence. `cancel` is checked before every batch.
        """
        if self._closed:
            raise ValueError(f"reader for {self._source.name} is closed")
        records = self._records(columns, row_groups, cancel)
        self._iterators.add(records)
        return records

    def _records(self, columns, row_groups, cancel) -> Iterator[Record]:
        batches = self._file.iter_batches(
            batch_size=self.options.batch_size,
            row_groups=row_groups,
            columns=columns,
            use_threads=self.options.parallel,
        )
        index = 0
        while True:
            if cancel is not None and cancel.is_set():
                raise ConversionCancelled(
                    f"reading {self._source.name} cancelled after {index} batches"
                )
            try:
                batch = next(batches, None)
                if batch is None:
                    break
                batch = self._coerce(batch)
            except PARQUET_ERRORS as e:
                _raise_source_failure(self._source)
                raise DecodeError(
                    f"failed to decode batch {index} of {self._source.name}"
                ) from e

            logger.debug(f"Batch {index}: {batch.num_rows} rows")
            yield Record(batch)
            index += 1

        logger.info(f"Finished {self._source.name} after {index} batches")

    def _coerce(self, batch: pa.RecordBatch) -> pa.RecordBatch:
        if batch.schema.equals(self.schema):
            return batch

        fields, arrays = [], []
        for f, column in zip(batch.schema, batch.columns):
            i = self.schema.get_field_index(f.name)
            target = self.schema.field(i) if i >= 0 else f
            if column.type != target.type:
                column = pc.cast(column, target.type, memory_pool=self.memory_pool)
            fields.append(target)
            arrays.append(column)
        return pa.RecordBatch.from_arrays(
            arrays, schema=pa.schema(fields, metadata=self.schema.metadata)
        )

    def close(self):
        if self._closed:
            return
        self._closed = True
        for records in list(self._iterators):
            records.close()

        error = join_errors(capture_close(self._file), capture_close(self._source))
        logger.debug(
            f"Closed {self._source.name}; "
            f"pool holds {self.memory_pool.bytes_allocated()} bytes"
        )
        if error is not None:
            raise error

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
