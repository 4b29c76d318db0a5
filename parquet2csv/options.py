import dataclasses
from dataclasses import field
from types import MappingProxyType
from typing import Any, Mapping

DEFAULT_BATCH_SIZE = 1024


@dataclasses.dataclass(frozen=True)
class ColumnOverride:
    force_large: bool = False
    read_dict: bool = False


@dataclasses.dataclass(frozen=True)
class ParquetReadOptions:
    """
    Immutable settings for decoding a parquet file into record batches.

    Every `with_*` method returns a new value; the receiver is left as is.
    Batch size is not validated here, pyarrow rejects values it cannot use.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    parallel: bool = False
    # column index -> per-column decode behaviour
    column_overrides: Mapping[int, ColumnOverride] = field(
        default_factory=lambda: MappingProxyType({})
    )
    # keyword arguments for pyarrow.parquet.ParquetFile
    file_read_options: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self):
        object.__setattr__(
            self, "column_overrides", MappingProxyType(dict(self.column_overrides))
        )
        object.__setattr__(
            self, "file_read_options", MappingProxyType(dict(self.file_read_options))
        )

    def with_batch_size(self, batch_size: int) -> "ParquetReadOptions":
        return dataclasses.replace(self, batch_size=batch_size)

    def with_parallel(self, parallel: bool) -> "ParquetReadOptions":
        return dataclasses.replace(self, parallel=parallel)

    def with_force_large(self, column: int, force_large: bool) -> "ParquetReadOptions":
        return self._with_override(column, force_large=force_large)

    def with_read_dict(self, column: int, read_dict: bool) -> "ParquetReadOptions":
        return self._with_override(column, read_dict=read_dict)

    def with_file_read_options(self, **kwargs) -> "ParquetReadOptions":
        return dataclasses.replace(
            self, file_read_options={**self.file_read_options, **kwargs}
        )

    def override(self, column: int) -> ColumnOverride:
        return self.column_overrides.get(column, ColumnOverride())

    def force_large(self, column: int) -> bool:
        return self.override(column).force_large

    def read_dict(self, column: int) -> bool:
        return self.override(column).read_dict

    def _with_override(self, column: int, **changes) -> "ParquetReadOptions":
        updated = dataclasses.replace(self.override(column), **changes)
        return dataclasses.replace(
            self, column_overrides={**self.column_overrides, column: updated}
        )
