import dataclasses
import logging
import threading
from typing import Callable, Iterator, Optional

import pyarrow as pa

from parquet2csv.errors import capture_close, join_errors
from parquet2csv.io.reader import Record, open_reader
from parquet2csv.io.source import ParquetSource, SourceFile
from parquet2csv.options import ParquetReadOptions

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class ConversionContext:
    schema: pa.Schema
    num_rows: int
    source_name: str
    cancel: Optional[threading.Event] = None

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()


# a sink consumes the record sequence and raises on failure
Sink = Callable[[ConversionContext, Iterator[Record]], None]


def convert(
    source: ParquetSource,
    sink: Sink,
    options: Optional[ParquetReadOptions] = None,
    *,
    memory_pool: Optional[pa.MemoryPool] = None,
    cancel: Optional[threading.Event] = None,
) -> None:
    """
    Stream one parquet source through `sink`.

    The source is closed exactly once whatever happens. A failure of the
    open or the sink is raised unchanged when closing succeeds, and as a
    `ConversionErrors` group together with the close error when it does not.
    Output the sink already produced before a failure is left in place.
    """
    options = options or ParquetReadOptions()
    source = SourceFile.wrap(source)

    try:
        reader = open_reader(source, options, memory_pool=memory_pool)
    except Exception as e:
        error = join_errors(e, capture_close(source))
        if error is e:
            raise
        raise error from None

    context = ConversionContext(
        schema=reader.schema,
        num_rows=reader.num_rows,
        source_name=source.name,
        cancel=cancel,
    )
    try:
        sink(context, reader.iter_records(cancel=cancel))
    except BaseException as e:
        error = join_errors(e, capture_close(reader))
        if error is e:
            raise
        raise error from None

    reader.close()
    logger.info(f"Converted {source.name}")


def parquet_file_to_csv(source: ParquetSource, sink: Sink) -> None:
    """Run `convert` with default read options."""
    convert(source, sink, ParquetReadOptions())
