"""Pipeline orchestration for the input -> records -> action/output flow.

The pipeline follows this flow for every input, in the order given:

1. Open: the named file, or standard input when no files are given
2. Resolve: explicit format, else extension, else content sniffing through a
   ReplayBuffer (see each.core.matcher)
3. Decode: the whole input into an ordered list of records
4. Apply: with an action, hand the records to the Scheduler and stop at the
   first input that produced a failed record; without one, append the
   records to a single ordered list

After the last input, accumulated records are encoded with the output format,
so output order is input order, then record order within each input.
"""

import logging
import sys
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import BinaryIO, TextIO

from each.core.exceptions import DataError, InputError
from each.core.matcher import lookup, resolve
from each.core.protocols import Format, Record
from each.core.replay import ReplayBuffer
from each.core.scheduler import Scheduler

logger = logging.getLogger(__name__)

STDIN_NAME = "<stdin>"


@contextmanager
def open_input(path: Path | None, stdin: BinaryIO | None = None) -> Iterator[BinaryIO]:
    """Open one input as a binary stream.

    Args:
        path: File to open, or None for standard input
        stdin: Stream used for standard input (default: sys.stdin.buffer)

    Raises:
        InputError: If the file cannot be opened
    """
    if path is None:
        yield stdin if stdin is not None else sys.stdin.buffer
        return

    try:
        handle = path.open("rb")
    except OSError as e:
        raise InputError(
            f"Couldn't open file {path}: {e.strerror or e}",
            path=str(path),
            reason=type(e).__name__,
        ) from e
    with handle:
        yield handle


def read_records(
    source: BinaryIO,
    name: str,
    registry: Mapping[str, Format],
    explicit_id: str | None = None,
    extension: str | None = None,
) -> tuple[Format, list[Record]]:
    """Resolve the format of one input and decode it.

    Args:
        source: Binary stream positioned at the start of the input
        name: Display name of the input (path or "<stdin>")
        registry: Configured formats in priority order
        explicit_id: Format id chosen by the operator, if any
        extension: File extension of the input, if any

    Returns:
        The format used and the decoded records

    Raises:
        UsageError: If explicit_id is unknown
        DataError: If no format applies or decoding fails
        InputError: If reading the stream fails
    """
    buffer = ReplayBuffer(source)
    try:
        fmt = resolve(explicit_id, extension, buffer, registry)
        if fmt is None:
            raise DataError("Unable to guess format for input", source=name)
        records = fmt.decode(buffer)
    except DataError as e:
        e.context.setdefault("source", name)
        raise
    except OSError as e:
        raise InputError(
            f"Failed to read {name}: {e.strerror or e}",
            path=name,
            reason=type(e).__name__,
        ) from e

    logger.info("Read %d records from %s as %s", len(records), name, fmt.id)
    return fmt, records


def write_records(records: Sequence[Record], fmt: Format, sink: TextIO | None = None) -> None:
    """Encode records to ``sink`` (default: standard output).

    Raises:
        EncodeError: If the records cannot be represented in ``fmt``
        InputError: If writing to the sink fails
    """
    sink = sink if sink is not None else sys.stdout
    try:
        fmt.encode(records, sink)
        sink.flush()
    except OSError as e:
        raise InputError(
            f"Failed to write output: {e.strerror or e}",
            path="<stdout>",
            reason=type(e).__name__,
        ) from e
    logger.info("Wrote %d records as %s", len(records), fmt.id)


def execute_pipeline(
    inputs: Sequence[Path],
    registry: Mapping[str, Format],
    input_format: str | None = None,
    scheduler: Scheduler | None = None,
    output_format: Format | None = None,
    sink: TextIO | None = None,
    stdin: BinaryIO | None = None,
) -> int:
    """Run every input through the pipeline.

    Exactly one of ``scheduler`` (action mode) and ``output_format``
    (conversion mode) must be given.

    Args:
        inputs: Files to read, in order; standard input when empty
        registry: Configured formats in priority order
        input_format: Explicit input format id, if any
        scheduler: Scheduler applying the action to every record
        output_format: Format used to re-encode all records
        sink: Text sink for conversion output (default: standard output)
        stdin: Stream used for standard input (default: sys.stdin.buffer)

    Returns:
        Total number of records read

    Raises:
        UsageError: If input_format is unknown (before any input is opened)
        DataError: For undetectable formats, decode/encode failures, or the
                  first failed record of an input in action mode
        InputError: If an input cannot be opened or read

    Example:
        >>> from each.cli.registry import load_formats
        >>> registry = load_formats()
        >>> execute_pipeline(
        ...     [Path("people.csv"), Path("more.json")],
        ...     registry,
        ...     output_format=registry["json"],
        ... )
        5
    """
    if (scheduler is None) == (output_format is None):
        raise ValueError("execute_pipeline needs exactly one of scheduler and output_format")

    if input_format is not None:
        lookup(input_format, registry)

    sources: list[Path | None] = list(inputs) or [None]
    accumulated: list[Record] = []
    total = 0

    for path in sources:
        name = str(path) if path is not None else STDIN_NAME
        extension = path.suffix if path is not None else None
        with open_input(path, stdin) as source:
            _, records = read_records(source, name, registry, input_format, extension)
        total += len(records)

        if scheduler is not None:
            report = scheduler.run(records)
            error = report.first_error
            if error is not None:
                error.context.setdefault("source", name)
                raise error
        else:
            accumulated.extend(records)

    if output_format is not None:
        write_records(accumulated, output_format, sink)

    return total

