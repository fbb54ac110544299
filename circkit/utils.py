"""Conversions between the sequence types accepted by the public API."""

from typing import Union

import numpy as np

SequenceLike = Union[bytes, bytearray, memoryview, str]


def as_bytes(seq: SequenceLike) -> bytes:
    """Return `seq` as immutable bytes (str is encoded as ASCII)."""
    if isinstance(seq, bytes):
        return seq
    if isinstance(seq, str):
        return seq.encode('ascii')
    return bytes(seq)


def as_array(seq: SequenceLike) -> np.ndarray:
    """View a sequence as a uint8 array of byte codes (no copy for bytes)."""
    return np.frombuffer(as_bytes(seq), dtype=np.uint8)
