"""
Rotation- and strand-invariant forms of circular nucleotide sequences.
"""

from circkit.rotation import minimal_rotation
from circkit.utils import SequenceLike, as_bytes

# IUPAC complements, case preserved
_DNA_COMPLEMENT = bytes.maketrans(
    b"ACGTURYSWKMBDHVNacgturyswkmbdhvn",
    b"TGCAAYRSWMKVHDBNtgcaayrswmkvhdbn",
)
_RNA_COMPLEMENT = bytes.maketrans(
    b"ACGURYSWKMBDHVNacguryswkmbdhvn",
    b"UGCAYRSWMKVHDBNugcayrswmkvhdbn",
)

_UNAMBIGUOUS = frozenset(b"ACGTUN")
_IUPAC = frozenset(b"ACGTURYSWKMBDHVN")
_NORMALIZE_UPPER = bytes.maketrans(
    b"abcdefghijklmnopqrstuvwxyz",
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZ",
)


def is_rna(seq: SequenceLike) -> bool:
    """True when the sequence carries uracil and no thymine."""
    s = as_bytes(seq)
    has_u = b"U" in s or b"u" in s
    has_t = b"T" in s or b"t" in s
    return has_u and not has_t


def reverse_complement(seq: SequenceLike) -> bytes:
    """Get reverse complement of a DNA or RNA sequence.

    RNA input (see `is_rna`) is complemented with A->U so the result stays
    RNA. Bytes that have no complement are copied unchanged.
    """
    s = as_bytes(seq)
    table = _RNA_COMPLEMENT if is_rna(s) else _DNA_COMPLEMENT
    return s.translate(table)[::-1]


def normalize(seq: SequenceLike, iupac: bool = False) -> bytes:
    """Uppercase a sequence and mask unexpected symbols as N.

    Args:
        seq: Raw sequence bytes as read from a FASTA record
        iupac: Keep IUPAC ambiguity codes instead of masking them

    Returns:
        Normalized sequence of the same length
    """
    s = as_bytes(seq).translate(_NORMALIZE_UPPER)
    allowed = _IUPAC if iupac else _UNAMBIGUOUS
    if all(b in allowed for b in s):
        return s
    return bytes(b if b in allowed else ord('N') for b in s)


def canonicalize(seq: SequenceLike) -> bytes:
    """Smallest minimal rotation across both strands.

    The reverse complement of a minimal rotation is not itself minimal, so
    it gets a second rotation pass before the two strands are compared.
    """
    forward = minimal_rotation(seq)
    reverse = minimal_rotation(reverse_complement(forward))
    if forward < reverse:
        return forward
    return reverse
