"""
Exact seed search and Hamming distance for self-overlap detection.
"""

from typing import Dict, Iterator

import numpy as np

from circkit.utils import SequenceLike, as_array, as_bytes


class SeedMatcher:
    """Bit-parallel Shift-And automaton for a short exact pattern.

    Each pattern byte gets a bit mask of the positions where it occurs; the
    automaton state is a bit vector of the pattern prefixes that end at the
    current text position, so one shift and one AND advance all prefixes at
    once.
    """

    MAX_PATTERN_LENGTH = 64

    def __init__(self, pattern: SequenceLike):
        """
        Args:
            pattern: Seed to search for, 1 to 64 bytes long
        """
        self.pattern = as_bytes(pattern)
        m = len(self.pattern)
        if not 1 <= m <= self.MAX_PATTERN_LENGTH:
            raise ValueError(
                f"Seed pattern must be between 1 and {self.MAX_PATTERN_LENGTH} bytes "
                f"but was {m} bytes long."
            )

        self.masks: Dict[int, int] = {}
        for i, code in enumerate(self.pattern):
            self.masks[code] = self.masks.get(code, 0) | (1 << i)
        self.accept = 1 << (m - 1)

    def __len__(self) -> int:
        return len(self.pattern)

    def find_all(self, text: SequenceLike) -> Iterator[int]:
        """Yield start offsets of every (possibly overlapping) match, ascending.

        The search is lazy; call again to restart it from the beginning.
        """
        masks = self.masks
        accept = self.accept
        last = len(self.pattern) - 1
        state = 0
        for i, code in enumerate(as_bytes(text)):
            state = ((state << 1) | 1) & masks.get(code, 0)
            if state & accept:
                yield i - last


def hamming_distance(s1: SequenceLike, s2: SequenceLike) -> int:
    """Calculate Hamming distance between two sequences of equal length."""
    arr1 = as_array(s1)
    arr2 = as_array(s2)
    if arr1.size != arr2.size:
        raise ValueError(
            f"Hamming distance needs equal lengths but got {arr1.size} and {arr2.size}."
        )
    return int(np.count_nonzero(arr1 != arr2))
