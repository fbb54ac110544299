"""
Open reading frames on circular sequences.

On a circle an ORF may run past the origin. When the sequence length is a
multiple of three the reading frame is the same on every lap, so an ORF
either stops within one lap or never stops. Otherwise each lap moves the
frame by ``len(seq) % 3`` and an ORF can wrap up to three times before all
frames have been visited.
"""

from bisect import bisect_right
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from circkit.utils import SequenceLike, as_array, as_bytes

DEFAULT_START_CODONS: Tuple[str, ...] = ("ATG",)
DEFAULT_STOP_CODONS: Tuple[str, ...] = ("TAA", "TAG", "TGA")

CODON_LENGTH = 3
MAX_WRAPS = 3

PositionsByFrame = List[List[int]]


@dataclass
class Orf:
    """An ORF on a circular sequence.

    `stop` is the position of the first base of the stop codon, or None when
    no in-frame stop exists. `length` counts bases from the start codon up
    to and including the stop codon and may exceed the sequence length when
    the ORF wraps.
    """
    start: int
    stop: Optional[int]
    wraps: int
    length: int

    def sequence(self, seq: SequenceLike, include_stop: bool = True) -> bytes:
        """Nucleotides of the ORF read around the circle from `start`."""
        arr = as_array(seq)
        length = self.length
        if not include_stop and self.stop is not None:
            length -= CODON_LENGTH
        if arr.size == 0 or length <= 0:
            return b""
        positions = (self.start + np.arange(length)) % arr.size
        return arr[positions].tobytes()


class CodonScanner:
    """Locate start and stop codons per reading frame on a circular sequence."""

    def __init__(self, start_codons: Iterable[SequenceLike],
                 stop_codons: Iterable[SequenceLike]):
        """
        Args:
            start_codons: Start codons, all of the same length
            stop_codons: Stop codons, same length as the start codons

        Raises:
            ValueError: If the codons are empty or differ in length
        """
        self.start_codons = tuple(as_bytes(c) for c in start_codons)
        self.stop_codons = tuple(as_bytes(c) for c in stop_codons)

        lengths = {len(c) for c in self.start_codons + self.stop_codons}
        if len(lengths) != 1 or 0 in lengths:
            raise ValueError(
                "Start and stop codons must be non-empty and share one length, "
                f"got lengths {sorted(lengths)}."
            )
        self.codon_length = lengths.pop()
        self._start_table = self._codon_table(self.start_codons)
        self._stop_table = self._codon_table(self.stop_codons)

    def _codon_table(self, codons: Sequence[bytes]) -> np.ndarray:
        table = np.array([list(c) for c in codons], dtype=np.uint8)
        return table.reshape(-1, self.codon_length)

    @staticmethod
    def _hits(windows: np.ndarray, table: np.ndarray) -> np.ndarray:
        """Boolean mask of windows equal to any row of `table`."""
        return (windows[:, None, :] == table[None, :, :]).all(axis=2).any(axis=1)

    def scan(self, seq: SequenceLike) -> Tuple[PositionsByFrame, PositionsByFrame]:
        """Find codon positions, including codons that straddle the origin.

        Returns:
            (starts_by_frame, stops_by_frame): one ascending position list per
            frame (``position % codon_length``). A codon that is both a start
            and a stop is reported as a start only.
        """
        s = as_bytes(seq)
        n = len(s)
        k = self.codon_length
        starts: PositionsByFrame = [[] for _ in range(k)]
        stops: PositionsByFrame = [[] for _ in range(k)]
        if n == 0:
            return starts, stops

        # n windows over the sequence plus its first k-1 bases
        circular = s + (s * ((k - 1) // n + 1))[:k - 1]
        windows = sliding_window_view(as_array(circular), k)

        start_hits = self._hits(windows, self._start_table)
        stop_hits = self._hits(windows, self._stop_table) & ~start_hits

        for pos in np.flatnonzero(start_hits).tolist():
            starts[pos % k].append(pos)
        for pos in np.flatnonzero(stop_hits).tolist():
            stops[pos % k].append(pos)
        return starts, stops


def _regular_orf(start: int, frame_stops: List[int], seq_len: int) -> Orf:
    """ORF for a sequence whose length is a multiple of three."""
    i = bisect_right(frame_stops, start)
    if i < len(frame_stops):
        stop = frame_stops[i]
        return Orf(start=start, stop=stop, wraps=0, length=stop - start + CODON_LENGTH)
    if frame_stops and frame_stops[0] < start:
        stop = frame_stops[0]
        return Orf(start=start, stop=stop, wraps=0,
                   length=stop + seq_len - start + CODON_LENGTH)
    return Orf(start=start, stop=None, wraps=0, length=seq_len)


def _irregular_orf(start: int, stops_by_frame: PositionsByFrame, seq_len: int) -> Orf:
    """ORF for a sequence whose length is not a multiple of three."""
    frame = start % CODON_LENGTH
    frame_stops = stops_by_frame[frame]
    i = bisect_right(frame_stops, start)
    if i < len(frame_stops):
        stop = frame_stops[i]
        return Orf(start=start, stop=stop, wraps=0, length=stop - start + CODON_LENGTH)

    shift = seq_len % CODON_LENGTH
    length = seq_len - start
    for wraps in range(1, MAX_WRAPS + 1):
        frame = (frame - shift) % CODON_LENGTH
        frame_stops = stops_by_frame[frame]
        # the last lap ends back at the start codon
        if frame_stops and (wraps < MAX_WRAPS or frame_stops[0] < start):
            stop = frame_stops[0]
            return Orf(start=start, stop=stop, wraps=wraps,
                       length=length + stop + CODON_LENGTH)
        length += seq_len

    # every frame was visited: three full laps
    return Orf(start=start, stop=None, wraps=MAX_WRAPS, length=MAX_WRAPS * seq_len)


def find_orfs_with_indices(seq_len: int, starts_by_frame: PositionsByFrame,
                           stops_by_frame: PositionsByFrame) -> List[Orf]:
    """Build one ORF per start codon from precomputed codon positions.

    Args:
        seq_len: Length of the circular sequence
        starts_by_frame: Ascending start codon positions for frames 0-2
        stops_by_frame: Ascending stop codon positions for frames 0-2

    Returns:
        ORFs ordered by frame, then by start position
    """
    orfs: List[Orf] = []
    regular = seq_len % CODON_LENGTH == 0
    for frame_starts in starts_by_frame:
        for start in frame_starts:
            if regular:
                orfs.append(_regular_orf(start, stops_by_frame[start % CODON_LENGTH], seq_len))
            else:
                orfs.append(_irregular_orf(start, stops_by_frame, seq_len))
    return orfs


def find_orfs(seq: SequenceLike,
              start_codons: Iterable[SequenceLike] = DEFAULT_START_CODONS,
              stop_codons: Iterable[SequenceLike] = DEFAULT_STOP_CODONS) -> List[Orf]:
    """Find every ORF of a circular sequence, one per start codon.

    Raises:
        ValueError: If the codons are not triplets
    """
    scanner = CodonScanner(start_codons, stop_codons)
    if scanner.codon_length != CODON_LENGTH:
        raise ValueError(f"ORF codons must be {CODON_LENGTH} bases long, "
                         f"got {scanner.codon_length}.")
    starts, stops = scanner.scan(seq)
    return find_orfs_with_indices(len(as_bytes(seq)), starts, stops)


def longest_orfs(orfs: Iterable[Orf]) -> List[Orf]:
    """For each stop codon, keep only the longest ORF (earliest on ties)."""
    longest: List[Orf] = []
    seen_stops = set()
    for orf in sorted(orfs, key=lambda o: o.length, reverse=True):
        if orf.stop not in seen_stops:
            seen_stops.add(orf.stop)
            longest.append(orf)
    return longest


@dataclass(frozen=True)
class OrfFilter:
    """Length, wrap and ratio cutoffs applied before selecting longest ORFs."""
    min_length: int = 0
    min_wraps: int = 0
    max_wraps: int = MAX_WRAPS
    min_ratio: float = 0.0
    require_stop: bool = True

    def __post_init__(self):
        if self.min_length < 0:
            raise ValueError(f"min_length must not be negative, got {self.min_length}.")
        if not 0 <= self.min_wraps <= self.max_wraps:
            raise ValueError(
                f"Wrap limits must satisfy 0 <= min_wraps <= max_wraps, "
                f"got {self.min_wraps} and {self.max_wraps}."
            )

    def accepts(self, orf: Orf, seq_len: int) -> bool:
        """Check an ORF against every cutoff (length excludes the stop codon)."""
        if orf.length - CODON_LENGTH < self.min_length:
            return False
        if self.require_stop and orf.stop is None:
            return False
        if not self.min_wraps <= orf.wraps <= self.max_wraps:
            return False
        return seq_len > 0 and orf.length / seq_len >= self.min_ratio
