"""
circkit: canonicalization, monomerization and ORF finding for circular
DNA and RNA sequences.
"""

__version__ = "0.1.0"

from circkit.canonical import canonicalize, is_rna, normalize, reverse_complement
from circkit.monomerize import ConfigurationError, Monomerizer, MonomerizerConfig
from circkit.orfs import (
    CodonScanner, Orf, OrfFilter, find_orfs, find_orfs_with_indices, longest_orfs,
)
from circkit.rotation import minimal_rotation, minimal_rotation_index, rotate
from circkit.seed import SeedMatcher, hamming_distance

__all__ = [
    "canonicalize", "is_rna", "normalize", "reverse_complement",
    "ConfigurationError", "Monomerizer", "MonomerizerConfig",
    "CodonScanner", "Orf", "OrfFilter", "find_orfs", "find_orfs_with_indices",
    "longest_orfs",
    "minimal_rotation", "minimal_rotation_index", "rotate",
    "SeedMatcher", "hamming_distance",
]
