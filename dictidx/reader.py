"""Reader utils."""

import gzip
import io
import os
import typing
import warnings
import zlib

import numpy as np

from dictidx.errors import (
    FileOpenError,
    IfoError,
    KeyTooLongError,
    TruncatedRecordError,
)


# Keys are at most 255 bytes long, 256 with the terminator.
MAX_KEY_LENGTH = 255

IFO_MAGIC = "StarDict's dict ifo file"
IFO_VERSIONS = ("2.4.2", "3.0.0")

_BYTEORDER_PREFIXES = {"little": "<", "big": ">"}


class IndexRecord(typing.NamedTuple):
    """A single index entry: a key and the location of its data blob."""
    key: str
    offset: int
    size: int


class IfoInfo(typing.NamedTuple):
    """Dictionary metadata read from an `.ifo` file."""
    version: str
    extra: typing.Dict[str, str]
    bookname: str = ""
    wordcount: typing.Optional[int] = None
    synwordcount: int = 0
    idxfilesize: typing.Optional[int] = None
    idxoffsetbits: int = 32
    author: str = ""
    email: str = ""
    website: str = ""
    description: str = ""
    date: str = ""
    sametypesequence: str = ""
    dicttype: str = ""


def _open_regular_file(path: str, compression_type: typing.Optional[str] = None):
    if not os.path.isfile(path):
        raise FileOpenError(f"'{path}' does not exist or is not a regular file.")
    try:
        if compression_type == "gzip":
            return gzip.open(path, "rb")
        return io.open(path, "rb")
    except OSError as exc:
        raise FileOpenError(f"Failed to open '{path}': {exc.strerror or exc}") from exc


def _integer_dtypes(byteorder: str, offset_bits: int) -> typing.Tuple[np.dtype, np.dtype]:
    if byteorder not in _BYTEORDER_PREFIXES:
        raise ValueError("byteorder should be either 'little' or 'big'")
    if offset_bits not in (32, 64):
        raise ValueError("offset_bits should be either 32 or 64")
    prefix = _BYTEORDER_PREFIXES[byteorder]
    return np.dtype(f"{prefix}u{offset_bits // 8}"), np.dtype(f"{prefix}u4")


def idx_iterator(
    index_path: str,
    byteorder: str = "little",
    offset_bits: int = 32,
    max_key_length: int = MAX_KEY_LENGTH,
    compression_type: typing.Optional[str] = None,
) -> typing.Iterable[IndexRecord]:
    """Create an iterator over the records of an index file.

    Each record is a NUL terminated key followed by the offset and the
    size of the corresponding blob in the data file. Records are
    decoded one at a time, in file order.

    Params:
    -------
    index_path: str
        Index file path.

    byteorder: str, optional, default="little"
        Byte order of the offset and size fields, either 'little' or
        'big'. Dictionaries built by StarDict tools are big endian.

    offset_bits: int, optional, default=32
        Width of the offset field, either 32 or 64. The size field is
        always 32 bits wide.

    max_key_length: int, optional, default=255
        Maximum number of key bytes, not counting the terminator.

    compression_type: str, optional, default=None
        The type of compression used for the index. Choose either
        'gzip' or None.

    Yields:
    -------
    record: IndexRecord
        The decoded (key, offset, size) triple.

    Raises:
    -------
    FileOpenError
        The file does not exist, is not a regular file or can't be read.
    TruncatedRecordError
        The file ends in the middle of a record.
    KeyTooLongError
        A key is longer than `max_key_length` bytes.
    """
    offset_dtype, size_dtype = _integer_dtypes(byteorder, offset_bits)
    if max_key_length < 1:
        raise ValueError("max_key_length should be a positive integer")
    if compression_type not in ("gzip", None):
        raise ValueError("compression_type should be either 'gzip' or None")

    tail_bytes = bytearray(offset_dtype.itemsize + size_dtype.itemsize)
    key_bytes = bytearray()
    position = 0

    with _open_regular_file(index_path, compression_type) as file:
        try:
            while True:
                byte = file.read(1)
                if not byte:
                    if key_bytes:
                        raise TruncatedRecordError(
                            f"Record at byte {position}: key is not terminated "
                            f"before the end of the file.")
                    return
                if byte != b"\0":
                    if len(key_bytes) >= max_key_length:
                        raise KeyTooLongError(
                            f"Record at byte {position}: key is longer than "
                            f"{max_key_length} bytes.")
                    key_bytes += byte
                    continue

                read = file.readinto(tail_bytes)
                if read != len(tail_bytes):
                    raise TruncatedRecordError(
                        f"Record at byte {position}: expected {len(tail_bytes)} "
                        f"bytes of offset and size, got {read}.")
                offset = np.frombuffer(tail_bytes, dtype=offset_dtype, count=1)[0]
                size = np.frombuffer(tail_bytes, dtype=size_dtype, count=1,
                                     offset=offset_dtype.itemsize)[0]
                yield IndexRecord(key_bytes.decode("utf-8", errors="surrogateescape"),
                                  int(offset), int(size))

                position += len(key_bytes) + 1 + len(tail_bytes)
                key_bytes = bytearray()
        except EOFError as exc:
            # gzip stream cut short
            raise TruncatedRecordError(
                f"Record at byte {position}: compressed stream ended early.") from exc
        except (gzip.BadGzipFile, zlib.error) as exc:
            raise FileOpenError(f"Failed to read '{index_path}': {exc}") from exc


def read_ifo(ifo_path: str) -> IfoInfo:
    """Read the metadata (`.ifo`) file of a dictionary.

    The first line must be the StarDict magic, followed by `key=value`
    lines. Unknown keys are kept in `IfoInfo.extra`.

    Params:
    -------
    ifo_path: str
        Metadata file path.

    Returns:
    --------
    info: IfoInfo
        The parsed metadata.
    """
    with _open_regular_file(ifo_path) as file:
        try:
            lines = file.read().decode("utf-8-sig").splitlines()
        except UnicodeDecodeError as exc:
            raise IfoError(f"'{ifo_path}' is not valid UTF-8.") from exc

    if not lines or lines[0].strip() != IFO_MAGIC:
        raise IfoError(f"'{ifo_path}' does not start with \"{IFO_MAGIC}\".")

    text_fields = ("bookname", "author", "email", "website", "description",
                   "date", "sametypesequence", "dicttype")
    int_fields = ("wordcount", "synwordcount", "idxfilesize", "idxoffsetbits")

    fields = {}
    extra = {}
    for line in lines[1:]:
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key in int_fields:
            try:
                fields[key] = int(value)
            except ValueError:
                raise IfoError(f"Failed to parse '{key}' in '{ifo_path}': "
                               f"{value!r} is not an integer.") from None
        elif key in text_fields or key == "version":
            fields[key] = value
        else:
            extra[key] = value

    version = fields.pop("version", None)
    if version not in IFO_VERSIONS:
        raise IfoError(f"Unsupported dictionary version {version!r} in '{ifo_path}' "
                       f"(should be one of {list(IFO_VERSIONS)}).")

    offset_bits = fields.get("idxoffsetbits", 32)
    if offset_bits not in (32, 64) or (offset_bits == 64 and version != "3.0.0"):
        raise IfoError(f"Invalid idxoffsetbits={offset_bits} for version {version} "
                       f"in '{ifo_path}'.")

    return IfoInfo(version=version, extra=extra, **fields)


def index_loader(
    index_path: str,
    ifo_path: typing.Optional[str] = None,
    byteorder: typing.Optional[str] = None,
    max_key_length: int = MAX_KEY_LENGTH,
    compression_type: typing.Optional[str] = None,
) -> typing.Iterable[IndexRecord]:
    """Create an iterator over an index file, using the dictionary
    metadata to pick the record layout when it is available.

    Params:
    -------
    index_path: str
        Index file path.

    ifo_path: str, optional, default=None
        Metadata file path. When given, the index is read as big endian
        with the offset width declared by `idxoffsetbits`. When None,
        the defaults of `idx_iterator` apply.
        A warning is emitted when the index size or the number of
        records differs from what the metadata declares.

    byteorder: str, optional, default=None
        Overrides the byte order chosen from the metadata.

    max_key_length: int, optional, default=255
        Maximum number of key bytes, not counting the terminator.

    compression_type: str, optional, default=None
        The type of compression used for the index. Choose either
        'gzip' or None.

    Returns:
    --------
    it: iterator
        An iterator of IndexRecord, see `idx_iterator`.
    """
    if ifo_path is None:
        return idx_iterator(index_path,
                            byteorder=byteorder or "little",
                            max_key_length=max_key_length,
                            compression_type=compression_type)

    info = read_ifo(ifo_path)
    if info.idxfilesize is not None and os.path.isfile(index_path):
        actual_size = index_file_size(index_path, compression_type)
        if actual_size != info.idxfilesize:
            warnings.warn(f"'{index_path}' is {actual_size} bytes long but "
                          f"'{ifo_path}' declares idxfilesize={info.idxfilesize}.")

    records = idx_iterator(index_path,
                           byteorder=byteorder or "big",
                           offset_bits=info.idxoffsetbits,
                           max_key_length=max_key_length,
                           compression_type=compression_type)
    if info.wordcount is None:
        return records
    return _check_wordcount(records, info.wordcount, index_path, ifo_path)


def _check_wordcount(records, wordcount, index_path, ifo_path):
    count = 0
    for record in records:
        count += 1
        yield record
    if count != wordcount:
        warnings.warn(f"'{index_path}' holds {count} records but "
                      f"'{ifo_path}' declares wordcount={wordcount}.")


def index_file_size(index_path: str, compression_type: typing.Optional[str] = None) -> int:
    """Size of the (uncompressed) index in bytes."""
    if compression_type == "gzip":
        try:
            with gzip.open(index_path, "rb") as fd:
                fd.seek(0, io.SEEK_END)
                return fd.tell()
        except EOFError as exc:
            raise TruncatedRecordError(
                f"'{index_path}': compressed stream ended early.") from exc
        except (gzip.BadGzipFile, zlib.error) as exc:
            raise FileOpenError(f"Failed to read '{index_path}': {exc}") from exc
    return os.path.getsize(index_path)
