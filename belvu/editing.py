"""
Editing operations for Belvu

Column and row removals on an Alignment. Bulk operations decide what to
remove before touching the alignment, so a refused edit leaves it as it
was. Row removals finish by renumbering, optionally dropping columns that
became all-gap, re-checking coordinates and recomputing conservation.
"""

import logging
from typing import List

import numpy as np

from .alignment import aln_overhang, identity
from .codes import GAP_CHARS, is_gap
from .conservation import column_conservation
from .errors import AlignmentEditError
from .sorting import SortType, do_sort
from .store import Alignment, AlignmentRow, array_order

logger = logging.getLogger(__name__)

EPSILON = 1e-6

_GAP_LUT = np.zeros(256, dtype=bool)
for _c in GAP_CHARS | {' '}:
    _GAP_LUT[ord(_c)] = True


def _label(row: AlignmentRow) -> str:
    return f"{row.name}/{row.start}-{row.end}"


def _residue_count(seq: str) -> int:
    return sum(1 for c in seq if not is_gap(c))


def rm_column(alignment: Alignment, frm: int, to: int) -> None:
    """
    Delete columns frm..to (1-based, inclusive) from every row.

    Residues cut from the left end move start inwards, residues cut from
    the right end move end inwards, in the direction of the numbering.
    """
    if frm < 1 or to > alignment.max_len or to < frm:
        raise ValueError(f"Bad coordinates: {frm}-{to}. "
                         f"The range is: 1-{alignment.max_len}")

    for row in alignment.rows:
        if not row.is_markup:
            step = 1 if row.start <= row.end else -1
            if frm == 1:
                row.start += step * _residue_count(row.seq[:to])
            if to == alignment.max_len:
                row.end -= step * _residue_count(row.seq[frm - 1:to])
        row.seq = row.seq[:frm - 1] + row.seq[to:]

    alignment.max_len -= to - frm + 1
    alignment.invalidate_conservation()


def _rm_column_list(alignment: Alignment, doomed: List[int]) -> None:
    """Delete 0-based columns, right to left"""
    if doomed and len(doomed) >= alignment.max_len:
        raise AlignmentEditError("You have removed all columns")
    for col in sorted(doomed, reverse=True):
        rm_column(alignment, col + 1, col + 1)


def gap_fractions(alignment: Alignment) -> np.ndarray:
    """Fraction of gap characters per column over sequence rows"""
    seqs = alignment.sequences
    if not seqs or not alignment.max_len:
        return np.zeros(alignment.max_len)
    text = ''.join(r.seq.ljust(alignment.max_len, '.')[:alignment.max_len] for r in seqs)
    chars = np.frombuffer(text.encode('ascii', 'replace'), dtype=np.uint8)
    gaps = _GAP_LUT[chars.reshape(len(seqs), alignment.max_len)]
    return gaps.mean(axis=0)


def rm_empty_columns(alignment: Alignment, cutoff: float) -> int:
    """Remove columns whose gap fraction is at least cutoff (0..1)"""
    fractions = gap_fractions(alignment)
    doomed = [int(i) for i in np.nonzero(fractions >= cutoff - EPSILON)[0]]
    _rm_column_list(alignment, doomed)

    if doomed:
        logger.info("%d columns with >= %.0f%% gaps removed, %d left",
                    len(doomed), cutoff * 100, alignment.max_len)
    return len(doomed)


def _remove_rows(alignment: Alignment, doomed: List[AlignmentRow], why: str) -> int:
    if not doomed:
        return 0
    if len(doomed) >= alignment.n_seqs:
        raise AlignmentEditError(f"Removing {why} would remove all sequences")

    for row in doomed:
        logger.info("Removed %s (%s)", _label(row), why)
    removed = alignment.remove_rows(doomed)
    array_order(alignment.rows)

    logger.info("%d sequences removed, %d seqs left", removed, alignment.n_seqs)
    return removed


def rm_finalise_gap_removal(alignment: Alignment) -> None:
    if alignment.rm_empty_columns_on:
        rm_empty_columns(alignment, 1.0)
    alignment.check_alignment()
    alignment.recompute_conservation()


def rm_finalise_column_removal(alignment: Alignment) -> None:
    """After removing columns, drop rows that became all-gap"""
    _remove_rows(alignment, _gappy_rows(alignment, 100.0), "all gaps")
    rm_finalise_gap_removal(alignment)


def _gappy_rows(alignment: Alignment, cutoff: float) -> List[AlignmentRow]:
    if not alignment.max_len:
        return []
    doomed = []
    for row in alignment.sequences:
        gaps = sum(1 for c in row.seq if is_gap(c))
        if gaps / alignment.max_len >= cutoff / 100:
            doomed.append(row)
    return doomed


def rm_gappy_seqs(alignment: Alignment, cutoff: float) -> int:
    """Remove sequences with at least cutoff percent gaps"""
    removed = _remove_rows(alignment, _gappy_rows(alignment, cutoff),
                           f">= {cutoff:.0f}% gaps")
    rm_finalise_gap_removal(alignment)
    return removed


def rm_gappy_columns(alignment: Alignment, cutoff: float) -> int:
    """Remove columns with at least cutoff percent gaps"""
    removed = rm_empty_columns(alignment, cutoff / 100)
    rm_finalise_column_removal(alignment)
    return removed


def rm_partial_seqs(alignment: Alignment) -> int:
    """Remove sequences starting or ending with a gap"""
    doomed = [r for r in alignment.sequences
              if r.seq and (is_gap(r.seq[0]) or is_gap(r.seq[-1]))]
    removed = _remove_rows(alignment, doomed, "partial")
    rm_finalise_gap_removal(alignment)
    return removed


def mk_non_redundant(alignment: Alignment, cutoff: float) -> int:
    """
    Remove sequences at least cutoff percent identical to another one.

    The earlier sequence of a pair is kept. Sequences overhanging the
    other are never considered redundant, so fragments of a longer
    sequence are removed but not the longer sequence itself.
    """
    alive = alignment.sequences
    doomed = []

    i = 0
    while i < len(alive):
        j = 0
        while j < len(alive):
            if i != j:
                keep, drop = alive[i], alive[j]
                pid = identity(keep.seq, drop.seq, alignment.penalize_gaps)
                if aln_overhang(drop.seq, keep.seq) == 0 and pid >= cutoff:
                    logger.info("%s and %s are %.1f%% identical, removing the latter",
                                _label(keep), _label(drop), pid)
                    doomed.append(drop)
                    del alive[j]
                    if j < i:
                        i -= 1
                    continue
            j += 1
        i += 1

    removed = _remove_rows(alignment, doomed, f">= {cutoff:.0f}% identical")
    rm_finalise_gap_removal(alignment)
    return removed


def rm_outliers(alignment: Alignment, cutoff: float) -> int:
    """Remove sequences whose best identity to any other is below cutoff"""
    seqs = alignment.sequences
    if len(seqs) < 2:
        logger.info("Need at least two sequences to find outliers")
        return 0

    doomed = []
    for row in seqs:
        best = max(identity(row.seq, other.seq, alignment.penalize_gaps)
                   for other in seqs if other is not row)
        if best < cutoff:
            logger.info("%s has max %.1f%% identity", _label(row), best)
            doomed.append(row)

    removed = _remove_rows(alignment, doomed, f"< {cutoff:.0f}% identity")
    rm_finalise_gap_removal(alignment)
    return removed


def rm_score(alignment: Alignment, cutoff: float) -> int:
    """Remove sequences scoring below cutoff"""
    do_sort(alignment, SortType.SCORE)

    doomed = [r for r in alignment.sequences if r.score < cutoff]
    removed = _remove_rows(alignment, doomed, f"score < {cutoff:.1f}")
    rm_finalise_gap_removal(alignment)
    return removed


def rm_column_cutoff(alignment: Alignment, lower: float, upper: float) -> int:
    """Remove columns with lower < conservation <= upper"""
    cons = column_conservation(alignment.conservation, alignment.conservation_settings)
    doomed = [i for i in range(alignment.max_len) if lower < cons[i] <= upper]

    for i in doomed:
        logger.debug("removing %d, cons= %.2f", i + 1, cons[i])
    _rm_column_list(alignment, doomed)

    rm_finalise_column_removal(alignment)
    return len(doomed)


def rm_columns(alignment: Alignment, frm: int, to: int) -> None:
    if frm == 1 and to == alignment.max_len:
        raise AlignmentEditError("You have removed all columns")
    rm_column(alignment, frm, to)
    rm_finalise_column_removal(alignment)


def rm_columns_left(alignment: Alignment, col: int) -> bool:
    """Remove columns 1..col (inclusive)"""
    if not col:
        logger.error("Pick a column first")
        return False
    rm_columns(alignment, 1, col)
    return True


def rm_columns_right(alignment: Alignment, col: int) -> bool:
    """Remove columns col..max_len (inclusive)"""
    if not col:
        logger.error("Pick a column first")
        return False
    rm_columns(alignment, col, alignment.max_len)
    return True


def rm_selected(alignment: Alignment) -> bool:
    """Remove the selected row"""
    row = alignment.selected
    if row is None:
        logger.error("Pick a sequence first!")
        return False

    alignment.remove_rows([row])
    array_order(alignment.rows)
    logger.info("Removed %s. %d seqs left", _label(row), alignment.n_seqs)

    rm_finalise_gap_removal(alignment)
    return True
