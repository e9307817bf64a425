import io
import sys
import typing

from dictidx.errors import IdxError
from dictidx.io_utils import write_records
from dictidx.reader import index_loader


USAGE = """Usage:
    To print the entries of an index file:
    idx2txt <idx path>

    To read the index with the layout declared by the dictionary metadata:
    idx2txt <idx path> <ifo path>

    Each entry is printed on its own line as "key | offset | size".
    Index files ending in ".gz" are decompressed on the fly.
"""


def print_index(index_path: str, ifo_path: typing.Optional[str] = None) -> int:
    """Print the entries of an index file to stdout.

    Params:
    -------
    index_path: str
        Path to the index file.

    ifo_path: str, optional, default=None
        Path to the dictionary metadata file.

    Returns:
    --------
    count: int
        Number of entries printed.
    """
    compression_type = "gzip" if index_path.endswith(".gz") else None
    records = index_loader(index_path, ifo_path, compression_type=compression_type)
    return write_records(records, sys.stdout)


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) not in [1, 2]:
        print(USAGE, file=sys.stderr)
        return 2

    if isinstance(sys.stdout, io.TextIOWrapper):
        sys.stdout.reconfigure(encoding="utf-8", errors="surrogateescape")

    try:
        print_index(*argv)
    except IdxError as exc:
        sys.stdout.flush()
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
