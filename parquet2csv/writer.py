import dataclasses
import logging
import sys
from typing import Iterator, TextIO

import pandas as pd
import tqdm

from parquet2csv.convert import ConversionContext, Sink
from parquet2csv.io.reader import Record

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class RowCounter:
    rows: int = 0


def discard_writer(*, release_records: bool = False) -> Sink:
    """Sink that drains every record and keeps nothing."""

    def write(context: ConversionContext, records: Iterator[Record]) -> None:
        for record in records:
            if release_records:
                record.release()

    return write


def count_writer(counter: RowCounter, *, release_records: bool = False) -> Sink:
    """Sink that adds the row count of every record to `counter.rows`."""

    def write(context: ConversionContext, records: Iterator[Record]) -> None:
        for record in records:
            counter.rows += record.num_rows
            if release_records:
                record.release()

    return write


@dataclasses.dataclass(frozen=True)
class CsvWriteOptions:
    delimiter: str = ","
    crlf: bool = False
    header: bool = True
    null_string: str = ""
    release_records: bool = False

    def __post_init__(self):
        if len(self.delimiter) != 1:
            raise ValueError(
                f"delimiter must be a single character, got {self.delimiter!r}"
            )

    @property
    def lineterminator(self) -> str:
        return "\r\n" if self.crlf else "\n"

    def to_csv_kwargs(self) -> dict:
        return {
            "sep": self.delimiter,
            "na_rep": self.null_string,
            "lineterminator": self.lineterminator,
            "index": False,
        }


def csv_writer(stream: TextIO, options: CsvWriteOptions = CsvWriteOptions()) -> Sink:
    """
    Sink that encodes records as delimiter separated text onto `stream`.

    The header comes from the file schema, so it is written even when the
    file holds no rows. Values go through pandas with Arrow backed dtypes,
    which keeps integer columns with nulls as integers.
    """
    kwargs = options.to_csv_kwargs()

    def write(context: ConversionContext, records: Iterator[Record]) -> None:
        if options.header:
            pd.DataFrame(columns=context.schema.names).to_csv(
                stream, header=True, **kwargs
            )

        rows = 0
        for record in records:
            frame = record.batch.to_pandas(
                types_mapper=pd.ArrowDtype, ignore_metadata=True
            )
            frame.to_csv(stream, header=False, **kwargs)
            rows += len(frame)
            del frame
            if options.release_records:
                record.release()

        stream.flush()
        logger.info(f"Wrote {rows} rows from {context.source_name}")

    return write


def with_progress(sink: Sink, desc: str | None = None) -> Sink:
    """Wrap `sink` so a tqdm bar on stderr follows the rows it consumes."""

    def write(context: ConversionContext, records: Iterator[Record]) -> None:
        with tqdm.tqdm(
            total=context.num_rows,
            desc=desc or context.source_name,
            unit="rows",
            file=sys.stderr,
            leave=True,
        ) as pbar:

            def tick() -> Iterator[Record]:
                for record in records:
                    pbar.update(record.num_rows)
                    yield record

            sink(context, tick())

    return write
