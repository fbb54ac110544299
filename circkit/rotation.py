"""
Lexicographically minimal rotation of circular sequences.

The index is found with a Lyndon-factorization pass (Duval) over the
sequence read twice around the circle, so the search is linear in the
sequence length. Positions are taken modulo the length instead of building
a doubled copy of the input.
"""

from circkit.utils import SequenceLike, as_bytes


def minimal_rotation_index(seq: SequenceLike) -> int:
    """Index of the lexicographically smallest rotation of `seq`.

    Rotating `seq` left by the returned amount gives a rotation that is
    less than or equal to every other rotation. Periodic sequences report
    the first such index, so ``"AAA"`` gives 0.

    Args:
        seq: Non-empty byte string (any alphabet)

    Returns:
        Rotation index in ``[0, len(seq))``

    Raises:
        ValueError: If `seq` is empty
    """
    s = as_bytes(seq)
    n = len(s)
    if n == 0:
        raise ValueError("Cannot compute the minimal rotation of an empty sequence.")

    best = 0
    l = 0
    while l < n:
        best = l
        # r walks the lookahead, p trails it by one period of the current run
        r = l + 1
        p = l
        while r < 2 * n and s[p % n] <= s[r % n]:
            if s[p % n] < s[r % n]:
                p = l
            else:
                p += 1
            r += 1
        # skip every complete copy of the Lyndon word found at l
        while l <= p:
            l += r - p
    return best


def rotate(seq: SequenceLike, k: int) -> bytes:
    """Rotate `seq` left by `k` positions (negative `k` rotates right)."""
    s = as_bytes(seq)
    if not s:
        return s
    k %= len(s)
    return s[k:] + s[:k]


def minimal_rotation(seq: SequenceLike) -> bytes:
    """Return the lexicographically smallest rotation of `seq`."""
    return rotate(seq, minimal_rotation_index(seq))
