import random
import unittest

from circkit.orfs import (
    CodonScanner, Orf, OrfFilter, find_orfs, find_orfs_with_indices, longest_orfs,
)

THREE_WRAP_SEQ = b"GGTCGGAGAATTGGGTCAGTTTCGGGCTTAAAAACTCTGACTTGTCATGCTCGTGGCGTCCCTACCG"
THREE_WRAP_ORF = (
    b"ATGCTCGTGGCGTCCCTACCGGGTCGGAGAATTGGGTCAGTTTCGGGCTTAAAAACTCTGACTT"
    b"GTCATGCTCGTGGCGTCCCTACCGGGTCGGAGAATTGGGTCAGTTTCGGGCTTAAAAACTCTGA"
    b"CTTGTCATGCTCGTGGCGTCCCTACCGGGTCGGAGAATTGGGTCAGTTTCGGGCTTAA"
)


def random_dna(rng: random.Random, low: int, high: int) -> bytes:
    return bytes(rng.choice(b"ACGT") for _ in range(rng.randint(low, high)))


class FindOrfsTests(unittest.TestCase):
    def test_wraps_once_when_length_divisible_by_three(self):
        self.assertEqual(find_orfs(b"GCATAAGCAATG"),
                         [Orf(start=9, stop=3, wraps=0, length=9)])

    def test_wraps_once_with_remainder_one(self):
        self.assertEqual(find_orfs(b"GCATAAGATG"),
                         [Orf(start=7, stop=3, wraps=1, length=9)])

    def test_wraps_once_with_remainder_two(self):
        self.assertEqual(find_orfs(b"GCATAAGCATG"),
                         [Orf(start=8, stop=3, wraps=1, length=9)])

    def test_wraps_twice_with_remainder_one(self):
        self.assertEqual(find_orfs(b"ATGAAAAAAAAAA"),
                         [Orf(start=0, stop=1, wraps=2, length=30)])

    def test_wraps_twice_with_remainder_two(self):
        self.assertEqual(find_orfs(b"AATGCATAAAA"),
                         [Orf(start=1, stop=6, wraps=2, length=30)])

    def test_wraps_three_times(self):
        orfs = find_orfs(THREE_WRAP_SEQ)
        self.assertEqual(len(orfs), 1)
        orf = orfs[0]
        self.assertEqual(orf.start, 46)
        self.assertEqual(orf.stop, 28)
        self.assertEqual(orf.wraps, 3)
        self.assertEqual(orf.sequence(THREE_WRAP_SEQ), THREE_WRAP_ORF)
        self.assertEqual(orf.length, len(THREE_WRAP_ORF))

    def test_no_stop_when_length_divisible_by_three(self):
        self.assertEqual(find_orfs(b"ATGCCCCCC"),
                         [Orf(start=0, stop=None, wraps=0, length=9)])

    def test_no_stop_after_three_laps(self):
        self.assertEqual(find_orfs(b"ATGCCCCCCC"),
                         [Orf(start=0, stop=None, wraps=3, length=30)])

    def test_one_orf_per_start_grouped_by_frame(self):
        orfs = find_orfs(b"ATGATGTAG")
        self.assertEqual(orfs, [
            Orf(start=0, stop=6, wraps=0, length=9),
            Orf(start=3, stop=6, wraps=0, length=6),
        ])

    def test_custom_codons(self):
        orfs = find_orfs(b"GTGAAATAA", start_codons=["GTG"], stop_codons=["TAA"])
        self.assertEqual(orfs, [Orf(start=0, stop=6, wraps=0, length=9)])

    def test_codons_must_be_triplets(self):
        with self.assertRaises(ValueError):
            find_orfs(b"ATGC", start_codons=["AT"], stop_codons=["TA"])

    def test_empty_sequence(self):
        self.assertEqual(find_orfs(b""), [])

    def test_randomized_invariants(self):
        rng = random.Random(99)
        for _ in range(200):
            seq = random_dna(rng, 3, 300)
            orfs = find_orfs(seq)
            with self.subTest(seq=seq):
                for orf in orfs:
                    self.assertEqual(orf.length % 3, 0)
                    self.assertNotEqual(orf.start, orf.stop)
                    self.assertTrue(0 <= orf.wraps <= 3)
                    self.assertEqual(len(orf.sequence(seq)), orf.length)
                    self.assertEqual(orf.sequence(seq)[:3], b"ATG")
                longest = longest_orfs(orfs)
                self.assertLessEqual(len(longest), len(orfs))
                for orf in longest:
                    self.assertIn(orf, orfs)


class CodonScannerTests(unittest.TestCase):
    def test_finds_codons_across_origin(self):
        scanner = CodonScanner(["ATG"], ["TAA"])
        starts, stops = scanner.scan(b"TGCCCTAAA")
        # ATG starts at position 8 and wraps to positions 0-1
        self.assertEqual(starts, [[], [], [8]])
        self.assertEqual(stops, [[], [], [5]])

    def test_start_takes_precedence_over_stop(self):
        scanner = CodonScanner(["ATG"], ["ATG", "TAA"])
        starts, stops = scanner.scan(b"ATGTAA")
        self.assertEqual(starts, [[0], [], []])
        self.assertEqual(stops, [[3], [], []])

    def test_sequence_shorter_than_codon(self):
        scanner = CodonScanner(["ATG"], ["TAA"])
        starts, stops = scanner.scan(b"GA")
        self.assertEqual(starts, [[], [], []])
        self.assertEqual(stops, [[], [], []])
        starts, _ = scanner.scan(b"A")
        self.assertEqual(starts, [[], [], []])

    def test_mixed_codon_lengths_raise(self):
        with self.assertRaises(ValueError):
            CodonScanner(["ATG"], ["TA"])

    def test_codon_length(self):
        self.assertEqual(CodonScanner(["ATGA"], ["TAAA"]).codon_length, 4)


class FindOrfsWithIndicesTests(unittest.TestCase):
    def test_regular_case_from_indices(self):
        orfs = find_orfs_with_indices(12, [[9], [], []], [[3], [], []])
        self.assertEqual(orfs, [Orf(start=9, stop=3, wraps=0, length=9)])

    def test_irregular_case_from_indices(self):
        orfs = find_orfs_with_indices(10, [[], [7], []], [[3], [], []])
        self.assertEqual(orfs, [Orf(start=7, stop=3, wraps=1, length=9)])


class LongestOrfsTests(unittest.TestCase):
    def test_longest_per_stop(self):
        orfs = find_orfs(b"ATGATGTAG")
        self.assertEqual(longest_orfs(orfs), [Orf(start=0, stop=6, wraps=0, length=9)])

    def test_ties_keep_first_orf(self):
        first = Orf(start=0, stop=None, wraps=0, length=9)
        second = Orf(start=3, stop=None, wraps=0, length=9)
        self.assertEqual(longest_orfs([first, second]), [first])

    def test_sorted_by_length(self):
        orfs = [
            Orf(start=0, stop=6, wraps=0, length=9),
            Orf(start=12, stop=30, wraps=0, length=21),
        ]
        self.assertEqual(longest_orfs(orfs), [orfs[1], orfs[0]])


class OrfSequenceTests(unittest.TestCase):
    def test_sequence_wraps_around(self):
        orf = find_orfs(b"GCATAAGCAATG")[0]
        self.assertEqual(orf.sequence(b"GCATAAGCAATG"), b"ATGGCATAA")
        self.assertEqual(orf.sequence(b"GCATAAGCAATG", include_stop=False), b"ATGGCA")

    def test_unterminated_orf_keeps_full_length(self):
        orf = Orf(start=0, stop=None, wraps=0, length=9)
        self.assertEqual(orf.sequence(b"ATGAAAAAA", include_stop=False), b"ATGAAAAAA")


class OrfFilterTests(unittest.TestCase):
    def test_default_requires_stop(self):
        orf_filter = OrfFilter()
        self.assertTrue(orf_filter.accepts(Orf(0, 6, 0, 9), 9))
        self.assertFalse(orf_filter.accepts(Orf(0, None, 0, 9), 9))
        self.assertTrue(OrfFilter(require_stop=False).accepts(Orf(0, None, 0, 9), 9))

    def test_min_length_excludes_stop_codon(self):
        orf = Orf(start=0, stop=6, wraps=0, length=9)
        self.assertTrue(OrfFilter(min_length=6).accepts(orf, 9))
        self.assertFalse(OrfFilter(min_length=7).accepts(orf, 9))

    def test_wrap_limits(self):
        orf = Orf(start=0, stop=1, wraps=2, length=30)
        self.assertTrue(OrfFilter(min_wraps=1).accepts(orf, 13))
        self.assertFalse(OrfFilter(max_wraps=1).accepts(orf, 13))

    def test_min_ratio(self):
        orf = Orf(start=0, stop=6, wraps=0, length=9)
        self.assertTrue(OrfFilter(min_ratio=0.5).accepts(orf, 18))
        self.assertFalse(OrfFilter(min_ratio=0.6).accepts(orf, 18))

    def test_invalid_limits(self):
        with self.assertRaises(ValueError):
            OrfFilter(min_wraps=2, max_wraps=1)
        with self.assertRaises(ValueError):
            OrfFilter(min_length=-1)


if __name__ == "__main__":
    unittest.main()
