"""
Seed-and-extend detection of tandem copies in multimeric sequences.

A multimer ends with a copy of the start of its first monomer. The last
`seed_len` bases are used as a seed: every earlier exact occurrence marks a
candidate overlap between the start and the end of the sequence, which is
then verified with a Hamming distance check that tolerates assembly noise.
"""

import math
from dataclasses import dataclass
from typing import Optional

from circkit.canonical import reverse_complement
from circkit.seed import SeedMatcher, hamming_distance
from circkit.utils import SequenceLike, as_bytes


class ConfigurationError(ValueError):
    """Invalid monomerizer settings; raised before any sequence is processed."""


@dataclass(frozen=True)
class MonomerizerConfig:
    """Settings for `Monomerizer`.

    Attributes:
        seed_len: Length of the exact-match seed taken from the sequence end
        overlap_dist: Maximum mismatches allowed in an overlap
        overlap_min_identity: Minimum identity (0-1) of an overlap
    """
    seed_len: int
    overlap_dist: Optional[int] = None
    overlap_min_identity: Optional[float] = None

    MIN_SEED_LEN = 1
    MAX_SEED_LEN = 63

    def __post_init__(self):
        if self.overlap_dist is not None and self.overlap_min_identity is not None:
            raise ConfigurationError(
                "Both overlap_dist and overlap_min_identity are set. They are mutually "
                "exclusive since they may produce conflicting filtering results."
            )
        if (isinstance(self.seed_len, bool) or not isinstance(self.seed_len, int)
                or not self.MIN_SEED_LEN <= self.seed_len <= self.MAX_SEED_LEN):
            raise ConfigurationError(
                f"Seed length must be at least {self.MIN_SEED_LEN} and at most "
                f"{self.MAX_SEED_LEN} but was set to {self.seed_len}."
            )
        if self.overlap_dist is not None and self.overlap_dist < 0:
            raise ConfigurationError(
                f"overlap_dist must not be negative but was set to {self.overlap_dist}."
            )
        if self.overlap_min_identity is not None and not 0.0 <= self.overlap_min_identity <= 1.0:
            raise ConfigurationError(
                "overlap_min_identity must be between 0.0 and 1.0 but was set to "
                f"{self.overlap_min_identity}."
            )

    def max_distance(self, overlap_len: int) -> int:
        """Maximum Hamming distance accepted for an overlap of `overlap_len` bases."""
        if self.overlap_min_identity is not None:
            return overlap_len - math.floor(overlap_len * self.overlap_min_identity)
        if self.overlap_dist is not None:
            return self.overlap_dist
        return 0


class Monomerizer:
    """Find and trim duplicate tandem copies of a circular sequence.

    Instances hold only an immutable `MonomerizerConfig`, so one monomerizer
    can be shared by any number of workers.
    """

    def __init__(self, seed_len: int, overlap_dist: Optional[int] = None,
                 overlap_min_identity: Optional[float] = None):
        """
        Args:
            seed_len: Seed length, 1-63 bases
            overlap_dist: Maximum mismatches per overlap (conflicts with
                overlap_min_identity)
            overlap_min_identity: Minimum overlap identity between 0 and 1
                (conflicts with overlap_dist)

        Raises:
            ConfigurationError: If the settings are out of range or conflict
        """
        self.config = MonomerizerConfig(
            seed_len=seed_len,
            overlap_dist=overlap_dist,
            overlap_min_identity=overlap_min_identity,
        )

    @classmethod
    def build(cls, config: MonomerizerConfig) -> 'Monomerizer':
        """Create a monomerizer from an existing config."""
        return cls(config.seed_len, config.overlap_dist, config.overlap_min_identity)

    @property
    def seed_len(self) -> int:
        return self.config.seed_len

    def __repr__(self) -> str:
        return f"Monomerizer({self.config!r})"

    def first_monomer_end_index(self, seq: SequenceLike) -> Optional[int]:
        """Compute the end (exclusive) of the first monomer, if an overlap is found.

        Candidate overlaps are tried from shortest to longest and the first
        one within the distance threshold wins.
        """
        s = as_bytes(seq)
        n = len(s)
        seed_len = self.config.seed_len
        if n <= seed_len:
            return None

        matcher = SeedMatcher(s[n - seed_len:])
        for occ in matcher.find_all(s[:n - seed_len]):
            candidate_len = occ + seed_len
            successor = s[:candidate_len]
            starter = s[n - candidate_len:]
            if hamming_distance(starter, successor) <= self.config.max_distance(candidate_len):
                return n - candidate_len
        return None

    def last_monomer_end_index(self, seq: SequenceLike) -> Optional[int]:
        """Shrink the boundary until a single monomer is left.

        In a trimer or larger multimer the first overlap found can span more
        than one copy, so the search is repeated on the trimmed prefix.
        """
        s = as_bytes(seq)
        end = self.first_monomer_end_index(s)
        while end is not None:
            shorter = self.first_monomer_end_index(s[:end])
            # boundaries strictly decrease, so this runs at most len(s) times
            if shorter is None or shorter >= end:
                break
            end = shorter
        return end

    def last_monomer_end_index_sensitive(self, seq: SequenceLike) -> Optional[int]:
        """Like `last_monomer_end_index`, but also checks the reverse strand.

        A mismatch inside the seed hides the overlap from the exact seed
        search. Seeding from the other end of the monomer, via its reverse
        complement, recovers those overlaps at about twice the cost.
        """
        s = as_bytes(seq)
        end = self.last_monomer_end_index(s)
        monomer = s if end is None else s[:end]

        # an L-base overlap on the reverse strand means the first L bases recur
        # at the end of the forward monomer, so rc_end bases are kept
        rc_end = self.first_monomer_end_index(reverse_complement(monomer))
        if rc_end is None:
            return end
        return rc_end

    def monomerize(self, seq: SequenceLike) -> bytes:
        """Return the first monomer, or the input unchanged if there is no overlap."""
        s = as_bytes(seq)
        end = self.last_monomer_end_index(s)
        return s if end is None else s[:end]

    def monomerize_sensitive(self, seq: SequenceLike) -> bytes:
        """Sensitive variant of `monomerize` (see `last_monomer_end_index_sensitive`)."""
        s = as_bytes(seq)
        end = self.last_monomer_end_index_sensitive(s)
        return s if end is None else s[:end]
