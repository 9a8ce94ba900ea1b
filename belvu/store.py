"""
Alignment store for Belvu

Holds the rows of the alignment, the organism table and the bookkeeping
the editing and sorting operations rely on.

Row order is persisted only through AlignmentRow.nr: every operation that
reorders rows finishes by renumbering them 1..N. The selected row is kept
as a logical reference and found again by name/start/end after each
reorder, never by index.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from fnmatch import fnmatchcase
from functools import cmp_to_key
from typing import Any, Callable, Iterable, List, Optional, Tuple

from .codes import Colour, is_gap, is_residue
from .conservation import ConservationMatrices, ConservationSettings, compute_conservation

logger = logging.getLogger(__name__)

MAX_NAME_SIZE = 256


class MarkupType(Enum):
    """Markup rows carry per-column annotation instead of sequence"""
    NONE = auto()
    GC = auto()
    GR = auto()


@dataclass
class OrganismEntry:
    name: str
    color: int = Colour.BLACK


@dataclass(eq=False)
class AlignmentRow:
    """One sequence (or markup) line of the alignment"""
    name: str
    start: int = 0
    end: int = 0
    seq: str = ''
    nr: int = 0
    score: float = 0.0
    color: int = Colour.WHITE
    markup: MarkupType = MarkupType.NONE
    hide: bool = False
    nocolor: bool = False
    organism: Optional[int] = None

    @property
    def is_markup(self) -> bool:
        return self.markup != MarkupType.NONE

    @property
    def key(self) -> Tuple[str, int, int]:
        return self.name, self.start, self.end

    def label(self, separator: str = '/', coords: bool = True) -> str:
        if coords:
            return f"{self.name}{separator}{self.start}-{self.end}"
        return self.name

    def __len__(self) -> int:
        return len(self.seq)


Order = Callable[[Any, Any], int]


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def alpha_order(a: AlignmentRow, b: AlignmentRow) -> int:
    """Name, then start, then end"""
    return _cmp(a.name, b.name) or _cmp(a.start, b.start) or _cmp(a.end, b.end)


def organism_suffix_order(a: AlignmentRow, b: AlignmentRow) -> int:
    """Text after the last '_' of the name; rows without one sort last"""
    sa = a.name.rfind('_')
    sb = b.name.rfind('_')
    if sa >= 0 and sb >= 0:
        result = _cmp(a.name[sa:], b.name[sb:])
        if result:
            return result
    elif sa >= 0:
        return -1
    elif sb >= 0:
        return 1
    return alpha_order(a, b)


def score_order(a: AlignmentRow, b: AlignmentRow) -> int:
    return _cmp(a.score, b.score)


def score_order_rev(a: AlignmentRow, b: AlignmentRow) -> int:
    return _cmp(b.score, a.score)


def nr_order(a: AlignmentRow, b: AlignmentRow) -> int:
    return _cmp(a.nr, b.nr)


def array_find(items: List, probe, order: Order) -> Tuple[bool, int]:
    """
    Binary search in a list sorted by order(probe, element).

    Returns (True, index) when an equal element exists. Otherwise
    (False, i) where i is the last element ordered before the probe, or
    -1 if the probe precedes every element; the probe belongs at i + 1.
    """
    j = len(items)
    if not j:
        return False, -1

    ord_ = order(probe, items[0])
    if ord_ < 0:
        return False, -1
    if ord_ == 0:
        return True, 0

    j -= 1
    ord_ = order(probe, items[j])
    if ord_ > 0:
        return False, j
    if ord_ == 0:
        return True, j

    i = 0
    while True:
        k = i + ((j - i) >> 1)
        ord_ = order(probe, items[k])
        if ord_ == 0:
            return True, k
        if ord_ > 0:
            i = k
        else:
            j = k
        if i == j - 1:
            break

    return False, i


def array_insert(items: List, obj, order: Order) -> bool:
    """Insert obj keeping items sorted; False if an equal element exists"""
    found, i = array_find(items, obj, order)
    if found:
        return False
    items.insert(i + 1, obj)
    return True


def align_find(rows: List[AlignmentRow], probe) -> Tuple[bool, int]:
    """Linear search by name/start/end"""
    for i, row in enumerate(rows):
        if alpha_order(row, probe) == 0:
            return True, i
    return False, len(rows)


def array_order(rows: List[AlignmentRow]) -> None:
    for i, row in enumerate(rows):
        row.nr = i + 1


def array_order10(rows: List[AlignmentRow]) -> None:
    """Renumber in steps of 10, leaving room for insertions"""
    for i, row in enumerate(rows):
        row.nr = (i + 1) * 10


def sort_rows(rows: List[AlignmentRow], order: Order) -> None:
    rows.sort(key=cmp_to_key(order))


def row_key(name: str, start: int = 0, end: int = 0) -> AlignmentRow:
    """Probe row for the searches above"""
    return AlignmentRow(name=name, start=start, end=end)


@dataclass
class Alignment:
    """The in-memory alignment and its settings"""
    rows: List[AlignmentRow] = field(default_factory=list)
    organisms: List[OrganismEntry] = field(default_factory=list)
    max_len: int = 0
    selected: Optional[AlignmentRow] = None
    annotations: List[str] = field(default_factory=list)
    markup_rows: List[AlignmentRow] = field(default_factory=list)
    max_name_len: int = 0
    max_start_len: int = 0
    max_end_len: int = 0
    max_score_len: int = 0
    display_scores: bool = False
    save_separator: str = '/'
    save_coords: bool = True
    strip_coords: bool = True
    organism_label: str = 'OS'
    penalize_gaps: bool = False
    rm_empty_columns_on: bool = True
    file_format: Optional[Enum] = None
    title: str = ''
    match_lines: List[str] = field(default_factory=list)
    conservation_settings: ConservationSettings = field(default_factory=ConservationSettings)
    _conservation: Optional[ConservationMatrices] = field(default=None, repr=False)
    _organism_index: List[int] = field(default_factory=list, repr=False)

    @property
    def n_seqs(self) -> int:
        return sum(1 for r in self.rows if not r.is_markup)

    @property
    def length(self) -> int:
        return self.max_len

    @property
    def sequences(self) -> List[AlignmentRow]:
        return [r for r in self.rows if not r.is_markup]

    def is_valid(self) -> bool:
        """Check that all sequence rows have the alignment's length"""
        return bool(self.rows) and all(
            len(r.seq) == self.max_len for r in self.rows if not r.is_markup)

    def clear(self) -> None:
        self.rows.clear()
        self.organisms.clear()
        self._organism_index.clear()
        self.annotations.clear()
        self.markup_rows.clear()
        self.match_lines.clear()
        self.selected = None
        self.max_len = 0
        self._conservation = None

    # Organisms

    def _organism_order(self, name: str, handle: int) -> int:
        return _cmp(name, self.organisms[handle].name)

    def find_organism(self, name: str) -> Optional[int]:
        found, i = array_find(self._organism_index, name, self._organism_order)
        return self._organism_index[i] if found else None

    def add_organism(self, name: str) -> int:
        """Find or create the organism entry; returns its handle"""
        found, i = array_find(self._organism_index, name, self._organism_order)
        if found:
            return self._organism_index[i]
        self.organisms.append(OrganismEntry(name))
        handle = len(self.organisms) - 1
        self._organism_index.insert(i + 1, handle)
        return handle

    def organism_of(self, row: AlignmentRow) -> Optional[OrganismEntry]:
        if row.organism is None:
            return None
        return self.organisms[row.organism]

    def sorted_organisms(self) -> List[OrganismEntry]:
        return [self.organisms[h] for h in self._organism_index]

    def organism_order(self, a: AlignmentRow, b: AlignmentRow) -> int:
        """Organism name (rows without one first), then alpha_order"""
        oa = self.organism_of(a)
        ob = self.organism_of(b)
        if oa is None and ob is not None:
            return -1
        if oa is not None and ob is None:
            return 1
        if oa is not None and ob is not None:
            result = _cmp(oa.name, ob.name)
            if result:
                return result
        return alpha_order(a, b)

    def suffix_to_organism(self) -> None:
        """Derive organisms from name suffixes (NAME_SUFFIX) of sequence rows"""
        for row in self.rows:
            if row.is_markup or '_' not in row.name:
                continue
            suffix = row.name.split('_', 1)[1]
            row.organism = self.add_organism(suffix)

    # Selection

    def select(self, row: Optional[AlignmentRow]) -> None:
        self.selected = row

    def selection_key(self) -> Optional[AlignmentRow]:
        if self.selected is None:
            return None
        return row_key(*self.selected.key)

    def restore_selection(self, key: Optional[AlignmentRow]) -> None:
        """Find the previously selected row again after a reorder"""
        if key is None:
            self.selected = None
            return
        found, i = align_find(self.rows, key)
        self.selected = self.rows[i] if found else None

    def find_row(self, name: str, start: int = 0, end: int = 0) -> Optional[AlignmentRow]:
        found, i = align_find(self.rows, row_key(name, start, end))
        return self.rows[i] if found else None

    def find_rows(self, pattern: str) -> List[AlignmentRow]:
        """Rows whose name matches a wildcard pattern (* and ?)"""
        if not pattern:
            logger.error("Please enter a search string")
            return []
        return [r for r in self.rows if fnmatchcase(r.name, pattern)]

    def hide_selected(self) -> bool:
        if self.selected is None:
            logger.error("Please select a sequence first")
            return False
        self.selected.hide = True
        return True

    def unhide_all(self) -> None:
        for row in self.rows:
            row.hide = False

    def toggle_exclude_selected(self) -> bool:
        """Exclude the selected row from conservation, or include it again"""
        if self.selected is None:
            logger.error("Please select a sequence first")
            return False
        self.selected.nocolor = not self.selected.nocolor
        self.recompute_conservation()
        return True

    # Bookkeeping

    def check_alignment(self) -> None:
        """Fill in missing coordinates, check declared ones, update widths"""
        self.max_name_len = self.max_start_len = self.max_end_len = 0

        for row in self.rows:
            if not row.is_markup:
                cres = sum(1 for c in row.seq[:self.max_len]
                           if is_residue(c) and not is_gap(c))
                if not row.start:
                    row.start = 1
                    row.end = cres
                else:
                    nres = abs(row.end - row.start) + 1
                    if nres != cres:
                        logger.warning("Found wrong number of residues in %s/%d-%d: "
                                       "%d instead of %d",
                                       row.name, row.start, row.end, cres, nres)

            self.max_name_len = max(self.max_name_len, len(row.name))
            self.max_start_len = max(self.max_start_len, len(str(row.start)))
            self.max_end_len = max(self.max_end_len, len(str(row.end)))

    def update_score_len(self, score: float) -> None:
        self.max_score_len = max(self.max_score_len, len(f"{score:.1f}"))

    def remove_rows(self, doomed: Iterable[AlignmentRow]) -> int:
        """Remove rows by identity, clearing the selection if it goes too"""
        doomed_ids = {id(r) for r in doomed}
        if not doomed_ids:
            return 0
        if self.selected is not None and id(self.selected) in doomed_ids:
            self.selected = None
        before = len(self.rows)
        self.rows = [r for r in self.rows if id(r) not in doomed_ids]
        self.invalidate_conservation()
        return before - len(self.rows)

    # Markup separation

    def separate_markup_lines(self) -> None:
        key = self.selection_key()
        array_order(self.rows)

        self.markup_rows = [r for r in self.rows if r.is_markup]
        sort_rows(self.markup_rows, alpha_order)
        self.rows = [r for r in self.rows if not r.is_markup]

        array_order(self.rows)
        if key is not None:
            self.restore_selection(key)

    def reinsert_markup_lines(self) -> None:
        """Put markup rows back after their sequence, orphans at the end"""
        for markup in reversed(self.markup_rows):
            parent = markup.name.split(' ', 1)[0]
            array_order10(self.rows)

            j = next((i for i, r in enumerate(self.rows) if r.name == parent),
                     len(self.rows))
            markup.nr = (j + 1) * 10 + 5
            self.rows.append(markup)
            sort_rows(self.rows, nr_order)

        self.markup_rows = []
        array_order(self.rows)

    # Conservation

    @property
    def conservation(self) -> ConservationMatrices:
        if self._conservation is None or self._conservation.length != self.max_len:
            self.recompute_conservation()
        return self._conservation

    def recompute_conservation(self) -> ConservationMatrices:
        self._conservation = compute_conservation(
            self.rows, self.max_len, self.conservation_settings)
        return self._conservation

    def invalidate_conservation(self) -> None:
        self._conservation = None
