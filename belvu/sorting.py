"""
Sort engine for Belvu

Every sort starts from the current nr order, so sorting twice gives the
same result regardless of what was done before. The selected row is
found again by name/start/end after sorting.
"""

import logging
from enum import Enum, auto
from typing import Callable, List, Optional

from .alignment import identity, score
from .store import (
    Alignment, AlignmentRow, alpha_order, array_order, nr_order,
    organism_suffix_order, score_order, score_order_rev, sort_rows,
)

logger = logging.getLogger(__name__)

TreeOrder = Callable[[List[AlignmentRow]], None]


class SortType(Enum):
    UNSORTED = auto()
    SCORE = auto()
    SCORE_REV = auto()
    ALPHA = auto()
    ORGANISM = auto()
    ORGANISM_SUFFIX = auto()
    TREE = auto()
    SIM = auto()
    ID = auto()


# Command line sort codes
SORT_CODES = {
    'a': SortType.ALPHA,
    'o': SortType.ORGANISM,
    's': SortType.SCORE,
    'S': SortType.SIM,
    'i': SortType.ID,
}


def highlight_score_sort(alignment: Alignment, mode: SortType) -> bool:
    """
    Sort rows by similarity (SIM) or identity (ID) to the selected row,
    best first. The scores are stored on the rows.
    """
    selected = alignment.selected
    if selected is None:
        logger.error("Please highlight a sequence first")
        return False
    if selected.is_markup:
        logger.error("Please do not highlight a markup line")
        return False

    key = alignment.selection_key()
    ref = selected.seq

    alignment.separate_markup_lines()
    alignment.display_scores = True

    for row in alignment.rows:
        if mode == SortType.SIM:
            row.score = score(ref, row.seq, alignment.penalize_gaps)
        else:
            row.score = identity(ref, row.seq, alignment.penalize_gaps)
        alignment.update_score_len(row.score)

    sort_rows(alignment.rows, score_order_rev)
    alignment.reinsert_markup_lines()

    alignment.restore_selection(key)
    if alignment.selected is None:
        logger.error("Cannot find back highlighted seq after sort")
    return True


def _tree_sort(alignment: Alignment, tree_order: Optional[TreeOrder]) -> bool:
    if tree_order is None:
        logger.error("No tree order available")
        return False

    alignment.separate_markup_lines()
    tree_order(alignment.rows)
    sort_rows(alignment.rows, nr_order)
    alignment.reinsert_markup_lines()
    return True


def do_sort(alignment: Alignment, kind: SortType,
            tree_order: Optional[TreeOrder] = None) -> bool:
    """
    Sort the alignment rows.

    Args:
        alignment: Alignment to sort in place
        kind: Sort order
        tree_order: For TREE sorts, a callback numbering the rows (nr)
                    in tree order

    Returns:
        False if the sort could not be done (see the log)
    """
    key = alignment.selection_key()
    sort_rows(alignment.rows, nr_order)

    if kind == SortType.SCORE:
        sort_rows(alignment.rows, score_order)
    elif kind == SortType.SCORE_REV:
        sort_rows(alignment.rows, score_order_rev)
    elif kind == SortType.ALPHA:
        sort_rows(alignment.rows, alpha_order)
    elif kind == SortType.ORGANISM:
        sort_rows(alignment.rows, alignment.organism_order)
    elif kind == SortType.ORGANISM_SUFFIX:
        sort_rows(alignment.rows, organism_suffix_order)
    elif kind == SortType.TREE:
        if not _tree_sort(alignment, tree_order):
            return False
    elif kind in (SortType.SIM, SortType.ID):
        if not highlight_score_sort(alignment, kind):
            return False
    elif kind != SortType.UNSORTED:
        raise ValueError(f"Unknown sort type: {kind}")

    alignment.restore_selection(key)
    array_order(alignment.rows)
    return True
