#!/usr/bin/env python3
"""
Belvu MSA - multiple sequence alignment viewer engine, batch mode

Reads an alignment (Stockholm, MSF or FASTA), optionally sorts, filters
and annotates it, and writes it out again or prints statistics.

Usage:
    belvu_msa.py family.sto -o family.msf
    belvu_msa.py family.sto -n 80 -P -f fasta
    belvu_msa.py family.sto -S i -s scores.txt -o sorted.sto
    belvu_msa.py family.sto -c
"""

import argparse
import logging
import sys
from pathlib import Path

# Add script directory to path for imports (handles running from any location)
SCRIPT_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(SCRIPT_DIR))

from belvu import (
    Alignment,
    BelvuError,
    SORT_CODES,
    SortType,
    apply_params,
    conservation_table,
    do_sort,
    format_conservation_table,
    format_from_extension,
    format_from_name,
    format_identity_list,
    list_identity,
    load_params,
    mk_non_redundant,
    read_alignment,
    read_color_codes,
    read_match,
    read_match_file,
    read_scores,
    residue_probabilities,
    rm_gappy_columns,
    rm_gappy_seqs,
    rm_outliers,
    rm_partial_seqs,
    rm_score,
    write_alignment,
)
from belvu.codes import PROB_ORDER


def main():
    parser = argparse.ArgumentParser(
        description='Belvu multiple sequence alignment engine (batch mode)',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s family.sto -o family.msf
  %(prog)s family.sto -n 80 -P -f fasta
  %(prog)s family.sto -S i -o sorted.sto
  %(prog)s family.sto -c

Output formats:
  stockholm      Stockholm/mul/selex (default)
  msf            GCG MSF with checksums
  fastaalign     Aligned FASTA
  fasta          Unaligned FASTA (gaps removed)

Sort orders (-S):
  a  alphabetically        o  by organism
  s  by score              S  by similarity to first sequence
  i  by identity to first sequence
        """
    )

    parser.add_argument('input', type=str,
                        help="Input alignment file ('-' for stdin)")
    parser.add_argument('-o', '--output', type=Path, default=None,
                        help='Output alignment file (default: stdout)')
    parser.add_argument('-f', '--format', type=str, default=None,
                        help='Output format (default: infer from extension)')
    parser.add_argument('--input-format', type=str, default=None,
                        help='Input format (default: detect); use fasta for unaligned FASTA')
    parser.add_argument('--params', type=Path, default=None,
                        help='Parameters file (default: belvu.params in script directory)')

    # Edits, applied in this order
    parser.add_argument('-n', '--non-redundant', type=float, default=None,
                        help='Make non-redundant to this percent identity')
    parser.add_argument('-P', '--rm-partial', action='store_true',
                        help='Remove partial sequences (starting or ending with a gap)')
    parser.add_argument('-Q', '--gappy-columns', type=float, default=None,
                        help='Remove columns with this percentage of gaps or more')
    parser.add_argument('-q', '--gappy-seqs', type=float, default=None,
                        help='Remove sequences with this percentage of gaps or more')
    parser.add_argument('--outliers', type=float, default=None,
                        help='Remove sequences less than this percent identical to any other')
    parser.add_argument('--min-score', type=float, default=None,
                        help='Remove sequences scoring below this')

    # Alignment handling (override params file)
    parser.add_argument('-G', '--penalize-gaps', action='store_true',
                        help='Penalize gaps in pairwise identity and score')
    parser.add_argument('-i', '--ignore-gaps', action='store_true',
                        help='Ignore gaps in conservation calculation')
    parser.add_argument('-C', '--no-coords', action='store_true',
                        help="Don't write coordinates to saved file")
    parser.add_argument('-z', '--separator', type=str, default=None,
                        help="Separator between name and coordinates in saved file (default: /)")
    parser.add_argument('-R', '--no-parse-coords', action='store_true',
                        help='Do not parse coordinates when reading alignment')
    parser.add_argument('-O', '--organism-label', type=str, default=None,
                        help='Read organism info after this label (default: OS)')

    # Ordering and annotation
    parser.add_argument('-S', '--sort', type=str, default=None,
                        choices=sorted(SORT_CODES),
                        help='Sort sequences in this order')
    parser.add_argument('-s', '--scores', type=Path, default=None,
                        help='Read in file of scores')
    parser.add_argument('-m', '--match', type=Path, default=None,
                        help='Read file with matching sequence segment')
    parser.add_argument('-l', '--color-codes', type=Path, default=None,
                        help='Load residue color code file')

    # Reports
    parser.add_argument('-c', '--conservation', action='store_true',
                        help='Print conservation table and exit')
    parser.add_argument('-p', '--probabilities', action='store_true',
                        help='Print residue probabilities and exit')
    parser.add_argument('--list-identity', action='store_true',
                        help='Print pairwise identities and scores')
    parser.add_argument('--stats', action='store_true',
                        help='Print alignment statistics')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(levelname)s: %(message)s',
    )

    # Validate input
    if args.input != '-' and not Path(args.input).exists():
        print(f"Error: Input file not found: {args.input}", file=sys.stderr)
        sys.exit(1)

    # Load parameters
    if args.params:
        params_file = args.params
    else:
        params_file = SCRIPT_DIR / 'belvu.params'

    try:
        params = load_params(params_file)
        run(args, params)
    except (BelvuError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def say(msg: str = ''):
    # Alignment output may go to stdout
    print(msg, file=sys.stderr)


def run(args, params):
    if args.penalize_gaps:
        params['penalize_gaps'] = True
    if args.ignore_gaps:
        params['ignore_gaps'] = True
    if args.no_coords:
        params['save_coords'] = False
    if args.separator:
        params['save_separator'] = args.separator
    if args.no_parse_coords:
        params['strip_coords'] = False
    if args.organism_label:
        params['organism_label'] = args.organism_label

    alignment = apply_params(Alignment(), params)

    if args.verbose:
        say("Belvu MSA")
        say("=" * 50)
        say(f"Input: {args.input}")
        say(f"Output: {args.output or 'stdout'}")
        say()
        say("Reading alignment...")

    input_format = format_from_name(args.input_format) if args.input_format else None
    read_alignment(args.input, alignment, input_format)

    if args.verbose:
        say(f"  Found {alignment.n_seqs} sequences, {alignment.length} columns")
        say(f"  Organisms: {len(alignment.organisms)}")
        say()

    if args.scores:
        with open(args.scores, 'r') as f:
            read_scores(alignment, f)

    # Sorting by similarity or identity needs a reference sequence
    sort_type = SORT_CODES[args.sort] if args.sort else SortType.UNSORTED
    if sort_type in (SortType.SIM, SortType.ID):
        alignment.select(next((r for r in alignment.rows if not r.is_markup), None))
    do_sort(alignment, sort_type)

    if alignment.match_lines:
        read_match(alignment, alignment.match_lines)
    elif args.match:
        read_match_file(alignment, args.match)

    alignment.check_alignment()
    alignment.recompute_conservation()

    if args.conservation:
        for line in format_conservation_table(conservation_table(alignment.conservation)):
            print(line)
        return

    if args.color_codes:
        with open(args.color_codes, 'r') as f:
            scheme = read_color_codes(f, alignment.conservation_settings.scheme, alignment)
        alignment.conservation_settings.scheme = scheme
        alignment.recompute_conservation()
        if args.verbose:
            say(f"Loaded colour codes from {args.color_codes}")

    # Edits
    n_seqs, length = alignment.n_seqs, alignment.length

    if args.non_redundant is not None:
        mk_non_redundant(alignment, args.non_redundant)
    if args.rm_partial:
        rm_partial_seqs(alignment)
    if args.gappy_columns is not None:
        rm_gappy_columns(alignment, args.gappy_columns)
    if args.gappy_seqs is not None:
        rm_gappy_seqs(alignment, args.gappy_seqs)
    if args.outliers is not None:
        rm_outliers(alignment, args.outliers)
    if args.min_score is not None:
        rm_score(alignment, args.min_score)

    if args.verbose and (n_seqs, length) != (alignment.n_seqs, alignment.length):
        say(f"Edited: {n_seqs} -> {alignment.n_seqs} sequences, "
            f"{length} -> {alignment.length} columns")
        say()

    if args.probabilities:
        probs = residue_probabilities(alignment.rows)
        print("Amino")
        print(' '.join(f"{probs[c]:f}" for c in PROB_ORDER) + ' ')
        return

    if args.list_identity:
        stats = list_identity(alignment.rows, alignment.penalize_gaps)
        for line in format_identity_list(stats, alignment.save_separator):
            print(line)
        return

    # Determine output format
    output_format = args.format
    if output_format is None:
        if args.output:
            output_format = format_from_extension(args.output)
        else:
            output_format = params['default_format']

    if args.output:
        if args.verbose:
            say(f"Writing alignment to {args.output}...")
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, 'w') as f:
            write_alignment(alignment, f, format=output_format,
                            wrap_width=params['wrap_width'])
    else:
        write_alignment(alignment, sys.stdout, format=output_format,
                        wrap_width=params['wrap_width'])

    # Print statistics
    if args.stats or args.verbose:
        stats = list_identity(alignment.rows, alignment.penalize_gaps)
        say()
        say("Alignment statistics:")
        say(f"  Sequences: {alignment.n_seqs}")
        say(f"  Alignment length: {alignment.length}")
        say(f"  Organisms: {len(alignment.organisms)}")
        say(f"  Mean percent identity: {stats.mean_id:.1f}%")
        say(f"  Mean pairwise score: {stats.mean_score:.1f}")

    if args.verbose:
        say()
        say("Done!")


if __name__ == '__main__':
    main()
