"""I/O utils."""

import typing

from dictidx.reader import IndexRecord


FIELD_SEPARATOR = " | "


def format_record(record: IndexRecord) -> str:
    """Render a record as `key | offset | size`, without a newline."""
    return FIELD_SEPARATOR.join((record.key, str(record.offset), str(record.size)))


def write_records(records: typing.Iterable[IndexRecord],
                  stream: typing.TextIO) -> int:
    """Write one formatted line per record to a text stream.

    Records are consumed as they are written, so lines already written
    stay on the stream if the iterator raises midway.

    Params:
    -------
    records: iterable of IndexRecord
        Records to write, typically an `idx_iterator`.

    stream: text file object
        Destination, e.g. `sys.stdout`.

    Returns:
    --------
    count: int
        Number of lines written.
    """
    count = 0
    for record in records:
        stream.write(format_record(record) + "\n")
        count += 1
    return count
