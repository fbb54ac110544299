"""
Record-level drivers behind the command line tools.

Each driver maps a module-level worker over FASTA records, either in the
calling process or over a multiprocessing pool, and yields results in the
order the records arrived.
"""

import hashlib
import math
from multiprocessing import Pool
from typing import Callable, Dict, Iterable, Iterator, Optional, Sequence, Tuple

from circkit.canonical import canonicalize, normalize, reverse_complement
from circkit.fasta import FastaRecord
from circkit.monomerize import Monomerizer
from circkit.orfs import Orf, OrfFilter, find_orfs, longest_orfs
from circkit.rotation import rotate

DEFAULT_BATCH_SIZE = 64

STRANDS = ("forward", "reverse", "both")


def map_records(worker: Callable, tasks: Iterable, threads: int = 1,
                batch_size: int = DEFAULT_BATCH_SIZE) -> Iterator:
    """Apply `worker` to every task, keeping the input order.

    Args:
        worker: Module-level function taking one picklable task
        tasks: Iterable of tasks, consumed lazily
        threads: Number of worker processes (<= 1 runs in this process)
        batch_size: Tasks sent to a worker process at a time
    """
    if threads <= 1:
        for task in tasks:
            yield worker(task)
        return

    with Pool(threads) as pool:
        yield from pool.imap(worker, tasks, chunksize=batch_size)


def _canonicalize_worker(record: FastaRecord) -> Tuple[FastaRecord, bytes]:
    seq = normalize(record.seq)
    if not seq:
        return record, seq
    return record, canonicalize(seq)


def canonicalize_records(records: Iterable[FastaRecord],
                         threads: int = 1) -> Iterator[Tuple[FastaRecord, bytes]]:
    """Yield (record, canonical form) for every record."""
    return map_records(_canonicalize_worker, records, threads)


def deduplicate_records(records: Iterable[FastaRecord], threads: int = 1
                        ) -> Iterator[Tuple[FastaRecord, bytes, Optional[str]]]:
    """Yield (record, canonical form, first_id) for every record.

    `first_id` is None for the first record with a given canonical form and
    the id of that first record for every later duplicate.
    """
    first_seen: Dict[bytes, str] = {}
    for record, canonical in canonicalize_records(records, threads):
        key = hashlib.blake2b(canonical, digest_size=16).digest()
        if key in first_seen:
            yield record, canonical, first_seen[key]
        else:
            first_seen[key] = record.id
            yield record, canonical, None


def _monomerize_worker(args) -> Tuple[FastaRecord, bytes]:
    """Worker function for parallel monomerization.

    Args:
        args: Tuple of (record, monomerizer, sensitive)
    """
    record, monomerizer, sensitive = args
    if sensitive:
        return record, monomerizer.monomerize_sensitive(record.seq)
    return record, monomerizer.monomerize(record.seq)


def monomerize_records(records: Iterable[FastaRecord], monomerizer: Monomerizer,
                       sensitive: bool = False, keep_all: bool = False,
                       min_overlap: int = 0, min_overlap_percent: float = 0.0,
                       threads: int = 1) -> Iterator[Tuple[FastaRecord, bytes]]:
    """Yield (record, monomer) for records whose overlap passes the cutoffs.

    Args:
        records: Input records
        monomerizer: Configured monomerizer, shared by all workers
        sensitive: Also search for overlaps from the reverse strand
        keep_all: Emit failing records unchanged instead of dropping them
        min_overlap: Minimum overlap length in bases
        min_overlap_percent: Minimum overlap length as a fraction of the
            monomer length (1.0 means a full extra copy)
        threads: Number of worker processes
    """
    tasks = ((record, monomerizer, sensitive) for record in records)
    for record, monomer in map_records(_monomerize_worker, tasks, threads):
        overlap = len(record.seq) - len(monomer)
        if (overlap > 0 and overlap >= min_overlap
                and overlap / len(monomer) >= min_overlap_percent):
            yield record, monomer
        elif keep_all:
            yield record, record.seq


def rotation_offset(seq_len: int, bases: Optional[int] = None,
                    percent: Optional[float] = None) -> int:
    """Left-rotation offset for rotating `bases` (or a fraction) to the right.

    Raises:
        ValueError: Unless exactly one non-zero amount is given
    """
    if (bases is None) == (percent is None):
        raise ValueError("Exactly one of bases and percent must be given.")
    if bases == 0 or percent == 0:
        raise ValueError("Rotation by 0 is not allowed.")
    if percent is not None:
        bases = math.floor(seq_len * percent)
    return -bases


def rotate_records(records: Iterable[FastaRecord], bases: Optional[int] = None,
                   percent: Optional[float] = None) -> Iterator[Tuple[FastaRecord, bytes]]:
    """Rotate every record right by `bases`, or by a fraction of its length."""
    # validate before the first record is read
    rotation_offset(1, bases, percent)
    for record in records:
        offset = rotation_offset(len(record.seq), bases, percent)
        yield record, rotate(record.seq, offset)


def concatenate_records(records: Iterable[FastaRecord]) -> Iterator[Tuple[FastaRecord, bytes]]:
    """Join every sequence to itself."""
    for record in records:
        yield record, record.seq + record.seq


def deconcatenate_records(records: Iterable[FastaRecord]) -> Iterator[Tuple[FastaRecord, bytes]]:
    """Keep the first half of every sequence, undoing `concatenate_records`.

    Odd-length sequences keep the shorter half; callers decide whether to
    warn about them.
    """
    for record in records:
        yield record, record.seq[:len(record.seq) // 2]


def _orf_worker(args):
    """Worker function for parallel ORF finding.

    Args:
        args: Tuple of (record, start_codons, stop_codons, strand, orf_filter)

    Returns:
        (record, hits) where hits lists (orf, reverse, strand_seq) tuples
    """
    record, start_codons, stop_codons, strand, orf_filter = args
    seq = normalize(record.seq)
    n = len(seq)

    strands = []
    if strand in ("forward", "both"):
        strands.append((False, seq))
    if strand in ("reverse", "both"):
        strands.append((True, reverse_complement(seq)))

    hits = []
    for reverse, strand_seq in strands:
        orfs = [orf for orf in find_orfs(strand_seq, start_codons, stop_codons)
                if orf_filter.accepts(orf, n)]
        for orf in longest_orfs(orfs):
            hits.append((orf, reverse, strand_seq))
    return record, hits


def orf_records(records: Iterable[FastaRecord], start_codons: Sequence[str],
                stop_codons: Sequence[str], strand: str = "forward",
                orf_filter: Optional[OrfFilter] = None, threads: int = 1
                ) -> Iterator[Tuple[FastaRecord, Orf, bool, bytes]]:
    """Yield (record, orf, reverse, strand_seq) for every selected ORF.

    Raises:
        ValueError: If `strand` is not one of forward, reverse or both
    """
    if strand not in STRANDS:
        raise ValueError(f"strand must be one of {', '.join(STRANDS)}, got {strand!r}.")
    if orf_filter is None:
        orf_filter = OrfFilter()
    # fail on bad codons before any worker starts
    find_orfs(b"", start_codons, stop_codons)

    tasks = ((record, tuple(start_codons), tuple(stop_codons), strand, orf_filter)
             for record in records)
    for record, hits in map_records(_orf_worker, tasks, threads):
        for orf, reverse, strand_seq in hits:
            yield record, orf, reverse, strand_seq


def forward_position(pos: Optional[int], seq_len: int, reverse: bool) -> Optional[int]:
    """Map a position on the reverse complement back to the forward strand."""
    if pos is None or not reverse:
        return pos
    return seq_len - 1 - pos
