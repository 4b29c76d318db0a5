# pylint: disable=E1120

import logging
import logging.config
import pathlib
import sys

import click

from parquet2csv.convert import convert
from parquet2csv.errors import describe_error
from parquet2csv.options import DEFAULT_BATCH_SIZE, ParquetReadOptions
from parquet2csv.writer import CsvWriteOptions, csv_writer, with_progress

logger = logging.getLogger(__name__)


def setup_logging(level: str, logging_conf: pathlib.Path | None = None):
    if logging_conf is not None:
        logging.config.fileConfig(logging_conf, disable_existing_loggers=False)
        return
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        stream=sys.stderr,
    )


def convert_file(
    path: pathlib.Path,
    read_options: ParquetReadOptions,
    write_options: CsvWriteOptions,
    progress: bool = False,
):
    sink = csv_writer(sys.stdout, write_options)
    if progress:
        sink = with_progress(sink, desc=path.name)

    logger.info(f"Converting {path}")
    # convert owns the file from here and closes it on every path
    parquet_file = open(path, "rb")
    convert(parquet_file, sink, read_options)


@click.command()
@click.option(
    "--batch-size",
    type=click.INT,
    default=DEFAULT_BATCH_SIZE,
    help="batch size for reading parquet files",
)
@click.option(
    "--parallel",
    is_flag=True,
    default=False,
    help="decode parquet columns in parallel",
)
@click.option("--crlf", is_flag=True, default=False, help="use CRLF as line terminator")
@click.option(
    "--comma",
    type=click.STRING,
    default=",",
    help="field delimiter; only the first character is used",
)
@click.option("--header/--no-header", default=True, help="write header row")
@click.option(
    "--null",
    "null_string",
    type=click.STRING,
    default="",
    help="string representation of null values",
)
@click.option(
    "--progress",
    is_flag=True,
    default=False,
    help="show a progress bar on stderr",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
)
@click.option(
    "--logging-conf",
    type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path),
    default=None,
    help="logging config file in `logging.config.fileConfig` format",
)
@click.argument("filenames", nargs=-1, type=click.Path(path_type=pathlib.Path))
def run(
    batch_size,
    parallel,
    crlf,
    comma,
    header,
    null_string,
    progress,
    log_level,
    logging_conf,
    filenames,
):
    """Convert parquet FILENAMES to CSV on stdout, one after another."""
    setup_logging(log_level, logging_conf)

    if not filenames:
        raise click.UsageError("missing parquet filename")

    read_options = (
        ParquetReadOptions().with_batch_size(batch_size).with_parallel(parallel)
    )
    write_options = CsvWriteOptions(
        delimiter=comma[0] if comma else ",",
        crlf=crlf,
        header=header,
        null_string=null_string,
        release_records=True,
    )

    for path in filenames:
        try:
            convert_file(path, read_options, write_options, progress=progress)
        except Exception as e:
            logger.debug(f"Failed to convert {path}", exc_info=True)
            raise click.ClickException(f"{path}: {describe_error(e)}") from e


if __name__ == "__main__":
    run()
