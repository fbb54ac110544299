"""
Command line interface: ``circkit <command> [input] [-o OUTPUT]``.
"""

import argparse
import sys
import time
from multiprocessing import cpu_count
from typing import List, Optional

from circkit import __version__
from circkit.fasta import TableWriter, open_output, read_fasta, write_fasta
from circkit.monomerize import Monomerizer
from circkit.orfs import DEFAULT_START_CODONS, DEFAULT_STOP_CODONS, OrfFilter
from circkit.pipeline import (
    DEFAULT_BATCH_SIZE, STRANDS, concatenate_records, deconcatenate_records,
    deduplicate_records, canonicalize_records, forward_position,
    monomerize_records, orf_records, rotate_records,
)

ORF_TABLE_FIELDS = ["orf_id", "seq_id", "start", "stop", "wraps", "length", "ratio"]
UNIQ_TABLE_FIELDS = ["id", "duplicate_id"]


def _log(args, message: str):
    """Progress message on stderr, shown only with --progress."""
    if args.progress:
        print(message, file=sys.stderr, flush=True)


def _threads(args) -> int:
    # 0 = use all CPUs
    if args.threads == 0:
        return cpu_count()
    return args.threads


def _write_pairs(args, pairs) -> int:
    count = 0
    with open_output(args.output) as out:
        for record, seq in pairs:
            write_fasta(out, record.head, seq)
            count += 1
    return count


def run_monomerize(args) -> int:
    monomerizer = Monomerizer(
        args.seed_length,
        overlap_dist=args.max_mismatch,
        overlap_min_identity=args.min_identity,
    )
    _log(args, f"Monomerizing with {monomerizer!r}")
    pairs = monomerize_records(
        read_fasta(args.input),
        monomerizer,
        sensitive=args.sensitive,
        keep_all=args.keep_all,
        min_overlap=args.min_overlap,
        min_overlap_percent=args.min_overlap_percent,
        threads=_threads(args),
    )
    return _write_pairs(args, pairs)


def run_canonicalize(args) -> int:
    return _write_pairs(args, canonicalize_records(read_fasta(args.input), _threads(args)))


def run_uniq(args) -> int:
    table = TableWriter(args.table, UNIQ_TABLE_FIELDS) if args.table else None
    count = 0
    duplicates = 0
    try:
        with open_output(args.output) as out:
            for record, canonical, first_id in deduplicate_records(read_fasta(args.input),
                                                                   _threads(args)):
                count += 1
                if first_id is not None:
                    duplicates += 1
                    if table is not None:
                        table.write_row(first_id, record.id)
                    continue
                write_fasta(out, record.head, canonical if args.canonicalize else record.seq)
    finally:
        if table is not None:
            table.close()
    _log(args, f"Removed {duplicates:,} duplicate(s) out of {count:,} record(s)")
    return count - duplicates


def run_rotate(args) -> int:
    return _write_pairs(args, rotate_records(read_fasta(args.input),
                                             bases=args.bases, percent=args.percent))


def run_cat(args) -> int:
    return _write_pairs(args, concatenate_records(read_fasta(args.input)))


def run_decat(args) -> int:
    def halves():
        for record, half in deconcatenate_records(read_fasta(args.input)):
            n = len(record.seq)
            if n % 2:
                print(f"WARNING: {record.id} has odd length {n}, it was not made by concatenation",
                      file=sys.stderr)
            yield record, half

    return _write_pairs(args, halves())


def run_orfs(args) -> int:
    orf_filter = OrfFilter(
        min_length=args.min_length,
        min_wraps=args.min_wraps,
        max_wraps=args.max_wraps,
        min_ratio=args.min_ratio,
        require_stop=not args.no_stop_required,
    )
    hits = orf_records(
        read_fasta(args.input),
        args.start_codons,
        args.stop_codons,
        strand=args.strand,
        orf_filter=orf_filter,
        threads=_threads(args),
    )

    table = TableWriter(args.table, ORF_TABLE_FIELDS) if args.table else None
    count = 0
    try:
        with open_output(args.output) as out:
            for record, orf, reverse, strand_seq in hits:
                orf_id = f"{record.head} ORF{orf.start}" + (" RC" if reverse else "")
                orf_seq = orf.sequence(strand_seq, include_stop=args.include_stop)
                write_fasta(out, orf_id, orf_seq)
                count += 1

                if table is not None:
                    n = len(strand_seq)
                    table.write_row(
                        orf_id,
                        record.head,
                        forward_position(orf.start, n, reverse),
                        forward_position(orf.stop, n, reverse),
                        orf.wraps,
                        len(orf_seq),
                        orf.length / n,
                    )
    finally:
        if table is not None:
            table.close()
    return count


def _codon_list(value: str) -> List[str]:
    codons = [c.strip().upper() for c in value.split(',') if c.strip()]
    if not codons:
        raise argparse.ArgumentTypeError("expected a comma-separated list of codons")
    return codons


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="circkit",
        description="Toolkit for circular DNA and RNA sequences",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Trim tandem copies, tolerating up to 2 mismatches per overlap
  circkit monomerize contigs.fa --max-mismatch 2 -o monomers.fa

  # Remove rotated and reverse-complemented duplicates
  circkit uniq viroids.fa.gz --canonicalize -o unique.fa --table dups.tsv

  # ORFs on both strands, with a table of coordinates
  circkit orfs monomers.fa --strand both --table orfs.csv
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_command(name, func, help_text, aliases=(), threaded=False):
        sub = subparsers.add_parser(name, help=help_text, aliases=list(aliases))
        sub.add_argument("input", nargs="?", default=None,
                         help="Input FASTA file, may be gzip, bzip2 or xz compressed (default: stdin)")
        sub.add_argument("-o", "--output", default=None,
                         help="Output FASTA file, compressed by .gz/.bz2/.xz extension (default: stdout)")
        sub.add_argument("--progress", action="store_true",
                         help="Show progress information on stderr")
        if threaded:
            sub.add_argument("-t", "--threads", type=int, default=1,
                             help="Number of worker processes (default: 1, 0=use all CPUs)")
        else:
            sub.set_defaults(threads=1)
        sub.set_defaults(func=func)
        return sub

    mono = add_command("monomerize", run_monomerize,
                       "Find monomers of circular or multimeric sequences", threaded=True)
    mono.add_argument("--seed-length", type=int, default=10,
                      help="Length of the exact seed taken from the sequence end (default: 10)")
    cutoffs = mono.add_mutually_exclusive_group()
    cutoffs.add_argument("--max-mismatch", type=int, default=None,
                         help="Maximum mismatches allowed in the overlap (default: 0)")
    cutoffs.add_argument("--min-identity", type=float, default=None,
                         help="Minimum identity (0-1) of the overlap")
    mono.add_argument("--sensitive", action="store_true",
                      help="Also search from the reverse strand (handles mutations in the seed, ~2x slower)")
    mono.add_argument("-k", "--keep-all", action="store_true",
                      help="Output sequences without a passing overlap unchanged instead of dropping them")
    mono.add_argument("--min-overlap", type=int, default=0,
                      help="Minimum overlap length in bases (default: 0)")
    mono.add_argument("--min-overlap-percent", type=float, default=0.0,
                      help="Minimum overlap length as a fraction of the monomer (default: 0.0)")

    add_command("canonicalize", run_canonicalize,
                "Rotate sequences to their canonical form", aliases=("canon",), threaded=True)

    uniq = add_command("uniq", run_uniq,
                       "Remove rotated and reverse-complemented duplicates", threaded=True)
    uniq.add_argument("-c", "--canonicalize", action="store_true",
                      help="Write canonical forms instead of the input sequences")
    uniq.add_argument("--table", default=None,
                      help="Write removed duplicates to this CSV/TSV file")

    rot = add_command("rotate", run_rotate, "Rotate sequences to the left or right")
    amount = rot.add_mutually_exclusive_group(required=True)
    amount.add_argument("-b", "--bases", type=int, default=None,
                        help="Bases to rotate, positive rotates right, negative left")
    amount.add_argument("-p", "--percent", type=float, default=None,
                        help="Fraction of the length to rotate right, e.g. 0.5")

    add_command("cat", run_cat, "Concatenate sequences to themselves",
                aliases=("concat", "concatenate"))
    add_command("decat", run_decat, "Undo cat by keeping the first half",
                aliases=("deconcat", "deconcatenate"))

    orfs = add_command("orfs", run_orfs, "Find ORFs that may wrap around the origin",
                       threaded=True)
    orfs.add_argument("--start-codons", type=_codon_list, default=list(DEFAULT_START_CODONS),
                      help="Comma-separated start codons (default: ATG)")
    orfs.add_argument("--stop-codons", type=_codon_list, default=list(DEFAULT_STOP_CODONS),
                      help="Comma-separated stop codons (default: TAA,TAG,TGA)")
    orfs.add_argument("--min-length", type=int, default=0,
                      help="Minimum ORF length in bases, excluding the stop codon (default: 0)")
    orfs.add_argument("--min-wraps", type=int, default=0,
                      help="Minimum times the ORF wraps around the origin (default: 0)")
    orfs.add_argument("--max-wraps", type=int, default=3,
                      help="Maximum times the ORF wraps around the origin (default: 3)")
    orfs.add_argument("--min-ratio", type=float, default=0.0,
                      help="Minimum ORF length relative to the sequence length (default: 0.0)")
    orfs.add_argument("--strand", choices=STRANDS, default="forward",
                      help="Strand(s) to search (default: forward)")
    orfs.add_argument("--include-stop", action="store_true",
                      help="Include the stop codon in the output sequences")
    orfs.add_argument("--no-stop-required", action="store_true",
                      help="Also report ORFs without an in-frame stop codon")
    orfs.add_argument("--table", default=None,
                      help="Write ORF coordinates to this CSV/TSV file")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    _log(args, f"circkit {args.command}")
    _log(args, f"{'=' * 60}")
    _log(args, f"Input:    {args.input or 'stdin'}")
    _log(args, f"Output:   {args.output or 'stdout'}")
    _log(args, f"Workers:  {_threads(args)} (batches of {DEFAULT_BATCH_SIZE})")

    start_time = time.time()
    try:
        count = args.func(args)
    except (ValueError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    elapsed = time.time() - start_time
    _log(args, f"Completed! Wrote {count:,} record(s) in {elapsed:.1f}s")
    return 0


if __name__ == "__main__":
    sys.exit(main())
