"""
FASTA input and output with transparent compression, plus delimited tables.
"""

import bz2
import csv
import gzip
import lzma
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Iterator, List, Optional, Sequence

# magic bytes of the supported (and one unsupported) compressed formats
_GZIP_MAGIC = b"\x1f\x8b"
_BZIP2_MAGIC = b"BZh"
_XZ_MAGIC = b"\xfd7zXZ\x00"
_ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"


@dataclass
class FastaRecord:
    """One FASTA record; `seq` holds the raw bytes with line breaks removed."""
    id: str
    description: str
    seq: bytes

    @property
    def head(self) -> str:
        """Full header line without the leading '>'."""
        if self.description:
            return f"{self.id} {self.description}"
        return self.id


def _is_stream(path: Optional[str]) -> bool:
    return path is None or path == "-"


def _detect_compression(magic: bytes) -> Optional[str]:
    if magic.startswith(_GZIP_MAGIC):
        return 'gzip'
    if magic.startswith(_BZIP2_MAGIC):
        return 'bzip2'
    if magic.startswith(_XZ_MAGIC):
        return 'xz'
    if magic.startswith(_ZSTD_MAGIC):
        return 'zstd'
    return None


def _open_input(path: Optional[str]) -> BinaryIO:
    """Open a path (or stdin) for reading, decompressing by magic bytes."""
    if _is_stream(path):
        raw = sys.stdin.buffer
        compression = _detect_compression(raw.peek(len(_XZ_MAGIC))[:len(_XZ_MAGIC)])
    else:
        raw = None
        with open(path, 'rb') as f:
            compression = _detect_compression(f.read(len(_XZ_MAGIC)))

    if compression == 'zstd':
        raise ValueError(f"zstd-compressed input is not supported: {path or 'stdin'}")
    # wrappers around stdin leave it open when they are closed
    if compression == 'gzip':
        return gzip.open(raw or path, 'rb')
    if compression == 'bzip2':
        return bz2.open(raw or path, 'rb')
    if compression == 'xz':
        return lzma.open(raw or path, 'rb')
    return raw or open(path, 'rb')


def _parse_header(line: bytes) -> FastaRecord:
    fields = line[1:].decode('utf-8').strip().split(None, 1)
    record_id = fields[0] if fields else ""
    description = fields[1] if len(fields) > 1 else ""
    return FastaRecord(id=record_id, description=description, seq=b"")


def read_fasta(path: Optional[str] = None) -> Iterator[FastaRecord]:
    """Iterate over the records of a FASTA file.

    Args:
        path: File path, or None/"-" for stdin. gzip, bzip2 and xz files
            are detected from their content, not their extension.

    Yields:
        FastaRecord for each '>' header, with multi-line sequences joined

    Raises:
        FileNotFoundError: If `path` does not exist
        ValueError: If the input is zstd-compressed or does not start with '>'
    """
    handle = _open_input(path)
    try:
        record = None
        chunks: List[bytes] = []
        for line in handle:
            line = line.strip()
            if line.startswith(b'>'):
                if record is not None:
                    record.seq = b"".join(chunks)
                    yield record
                record = _parse_header(line)
                chunks = []
            elif line:
                if record is None:
                    raise ValueError(f"FASTA input must start with '>': {path or 'stdin'}")
                chunks.append(line)

        if record is not None:
            record.seq = b"".join(chunks)
            yield record
    finally:
        if handle is not sys.stdin.buffer:
            handle.close()


@contextmanager
def open_output(path: Optional[str] = None) -> Iterator[BinaryIO]:
    """Open a binary output handle, compressed according to the extension.

    None or "-" writes to stdout, which is flushed but left open.
    """
    if _is_stream(path):
        yield sys.stdout.buffer
        sys.stdout.buffer.flush()
        return

    if path.endswith('.gz'):
        handle = gzip.open(path, 'wb')
    elif path.endswith('.bz2'):
        handle = bz2.open(path, 'wb')
    elif path.endswith('.xz'):
        handle = lzma.open(path, 'wb')
    else:
        handle = open(path, 'wb')
    with handle:
        yield handle


def write_fasta(handle: BinaryIO, head: str, seq: bytes):
    """Write one record with the sequence on a single line."""
    handle.write(b">" + head.encode('utf-8') + b"\n" + seq + b"\n")


class TableWriter:
    """Header plus one delimited row per call; tab for .tsv, comma otherwise.

    Cells containing the delimiter or quotes (e.g. FASTA descriptions) are
    quoted by the csv module. None is written as an empty cell.
    """

    def __init__(self, path: str, fields: Sequence[str]):
        self.path = path
        self.fields = list(fields)
        self.delimiter = '\t' if path.endswith('.tsv') else ','
        self._file = open(path, 'w', newline='')
        self._writer = csv.writer(self._file, delimiter=self.delimiter, lineterminator='\n')
        self._writer.writerow(self.fields)

    def write_row(self, *values):
        if len(values) != len(self.fields):
            raise ValueError(
                f"Expected {len(self.fields)} values for {self.fields}, got {len(values)}."
            )
        self._writer.writerow(values)

    def close(self):
        self._file.close()

    def __enter__(self) -> 'TableWriter':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
