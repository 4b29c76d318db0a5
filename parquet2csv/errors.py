import logging

logger = logging.getLogger(__name__)


class Parquet2CsvError(Exception):
    pass


class OpenError(Parquet2CsvError):
    """Parquet metadata could not be parsed or the decoder could not be built."""


class DecodeError(Parquet2CsvError):
    """A record batch could not be materialized; the stream stops here."""


class ConversionCancelled(Parquet2CsvError):
    pass


class RecordReleasedError(Parquet2CsvError):
    pass


class ConversionErrors(ExceptionGroup):
    """
    Independent failures of one conversion, e.g. a sink error and a close error.

    Every cause stays inspectable through `exceptions`, `split` or `except*`.
    """

    def derive(self, excs):
        return ConversionErrors(self.message, excs)


def join_errors(*errors: BaseException | None) -> BaseException | None:
    """
    Merge independent failures into one error without dropping any.

    None entries are skipped; a single remaining error is returned as is,
    so callers can still match it by type.
    """
    present = [e for e in errors if e is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    if not all(isinstance(e, Exception) for e in present):
        # ExceptionGroup cannot hold KeyboardInterrupt and friends
        head, *rest = sorted(present, key=lambda e: isinstance(e, Exception))
        for e in rest:
            head.add_note(f"also failed: {e!r}")
        return head
    return ConversionErrors(f"{len(present)} errors during conversion", present)


def capture_close(resource) -> Exception | None:
    """Close `resource` and hand back the failure instead of raising it."""
    try:
        resource.close()
    except Exception as e:
        logger.debug(f"closing {resource!r} failed: {e}")
        return e
    return None


def describe_error(error: BaseException) -> str:
    if isinstance(error, BaseExceptionGroup):
        return "; ".join(describe_error(e) for e in error.exceptions)
    text = str(error) or type(error).__name__
    cause = error.__cause__
    if cause is not None and str(cause) and str(cause) not in text:
        text = f"{text}: {cause}"
    return text
