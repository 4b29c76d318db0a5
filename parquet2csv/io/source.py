import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class ParquetSource(Protocol):
    """Random-access byte source; binary file objects qualify."""

    def read(self, size: int = -1) -> bytes: ...

    def seek(self, offset: int, whence: int = 0) -> int: ...

    def tell(self) -> int: ...

    def close(self) -> None: ...


class SourceFile:
    """
    Wraps a caller's source so it is closed at most once.

    pyarrow only sees `read`, `seek` and `tell`; since `closed` reports False
    until `close` runs, pyarrow leaves closing to whoever owns this wrapper.
    """

    def __init__(self, source: ParquetSource, name: str | None = None):
        self._source = source
        self._closed = False
        self._failure: OSError | None = None
        self.name = name or getattr(source, "name", None) or repr(source)

    @classmethod
    def wrap(cls, source) -> "SourceFile":
        if isinstance(source, cls):
            return source
        return cls(source)

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def writable(self) -> bool:
        return False

    def read(self, size: int = -1) -> bytes:
        return self._call(self._source.read, size)

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._call(self._source.seek, offset, whence)

    def tell(self) -> int:
        return self._call(self._source.tell)

    def _call(self, method, *args):
        try:
            return method(*args)
        except OSError as e:
            self._failure = e
            raise

    def take_failure(self) -> OSError | None:
        """
        Return and forget the last `OSError` raised by the wrapped source.

        pyarrow reports its own I/O and corruption errors as `OSError` too;
        this tells the two apart.
        """
        failure, self._failure = self._failure, None
        return failure

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        logger.debug(f"closing source {self.name}")
        self._source.close()

    def __repr__(self):
        return f"SourceFile({self.name})"
