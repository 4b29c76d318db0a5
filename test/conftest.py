import io
import pathlib
import tempfile

import pyarrow as pa
import pytest
from pyarrow import parquet as pq

from parquet2csv.io.reader import Record


class CountingSource:
    """Seekable in-memory parquet source that records how often it is closed."""

    def __init__(self, data: bytes, close_error: Exception | None = None):
        self._buffer = io.BytesIO(data)
        self.close_count = 0
        self.close_error = close_error
        self.read_error: OSError | None = None

    def read(self, size=-1):
        if self.read_error is not None:
            raise self.read_error
        return self._buffer.read(size)

    def seek(self, offset, whence=0):
        return self._buffer.seek(offset, whence)

    def tell(self):
        return self._buffer.tell()

    def close(self):
        self.close_count += 1
        if self.close_error is not None:
            raise self.close_error


def table_to_parquet_bytes(table: pa.Table, **kwargs) -> bytes:
    buf = io.BytesIO()
    pq.write_table(table, buf, **kwargs)
    return buf.getvalue()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield pathlib.Path(tmp_dir)


@pytest.fixture
def schema():
    return pa.schema(
        [
            pa.field("int_field", pa.int64()),
            pa.field("string_field", pa.string()),
        ]
    )


@pytest.fixture
def table(schema):
    """Three rows, two columns: (1, a), (2, b), (3, c)."""
    return pa.table(
        {"int_field": [1, 2, 3], "string_field": ["a", "b", "c"]}, schema=schema
    )


@pytest.fixture
def parquet_data(table):
    return table_to_parquet_bytes(table)


@pytest.fixture
def grouped_table(schema):
    """Ten rows spread over three row groups by `grouped_parquet_data`."""
    return pa.table(
        {
            "int_field": list(range(10)),
            "string_field": [f"s{i}" for i in range(10)],
        },
        schema=schema,
    )


@pytest.fixture
def grouped_parquet_data(grouped_table):
    return table_to_parquet_bytes(grouped_table, row_group_size=4)


@pytest.fixture
def source(parquet_data):
    return CountingSource(parquet_data)


@pytest.fixture
def parquet_path(temp_dir, table):
    path = temp_dir / "three_rows.parquet"
    pq.write_table(table, path)
    return path


@pytest.fixture
def sample_records(schema):
    """Factory for in-memory record streams, independent of any parquet file."""

    def make(row_counts):
        records = []
        for n in row_counts:
            batch = pa.record_batch(
                [pa.array(list(range(n)), pa.int64()), pa.array(["x"] * n)],
                schema=schema,
            )
            records.append(Record(batch))
        return records

    return make


def corrupt(data: bytes, offset: int, length: int) -> bytes:
    """Overwrite `length` bytes at `offset` with 0xFF."""
    return data[:offset] + b"\xff" * length + data[offset + length :]


@pytest.fixture
def wide_table():
    """5000 rows in row groups of 1000."""
    return pa.table(
        {
            "int_field": pa.array(range(5000), pa.int64()),
            "string_field": [f"row-{i}" for i in range(5000)],
        }
    )


@pytest.fixture
def wide_parquet_data(wide_table):
    return table_to_parquet_bytes(
        wide_table, row_group_size=1000, use_dictionary=False, compression="none"
    )
