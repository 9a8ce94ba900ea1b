"""
Match files: add an externally aligned sequence to the alignment

A match file has three lines:

    name/start-end score
    QUERYRESIDUESWITHOUTPADS
    qstart qend start end [qstart qend start end ...]

Each segment maps query residues qstart..qend onto alignment columns
start..end. Query residues between two segments are placed in the
columns between them, and gap columns are inserted into the alignment
where there is not enough room.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, List

from .codes import Colour
from .errors import AlignmentParseError, SegmentError
from .sequence_io import parse_mul_line
from .store import Alignment, AlignmentRow, array_order, nr_order, sort_rows

logger = logging.getLogger(__name__)


@dataclass
class Segment:
    qstart: int
    qend: int
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1


def make_seg_list(line: str, max_len: int) -> List[Segment]:
    """Parse and validate the segment line of a match file"""
    try:
        values = [int(t) for t in line.split()]
    except ValueError:
        raise SegmentError(f"Segment coordinates must be integers: {line}")

    if not values or len(values) % 4:
        raise SegmentError(f"Segment coordinates must come in groups of four: {line}")

    segs = [Segment(*values[i:i + 4]) for i in range(0, len(values), 4)]

    if segs[0].qstart != 1:
        raise SegmentError(f"First segment must start at query position 1, "
                           f"not {segs[0].qstart}")

    for seg in segs:
        for v in (seg.qstart, seg.qend, seg.start, seg.end):
            if not 1 <= v <= max_len:
                raise SegmentError(f"Segment coordinate {v} outside 1-{max_len}")
        if seg.qstart > seg.qend or seg.start > seg.end:
            raise SegmentError(f"Segment ends before it starts: {seg}")

    for prev, seg in zip(segs, segs[1:]):
        if seg.qstart <= prev.qend or seg.start <= prev.end:
            raise SegmentError(f"Segments out of order or overlapping: {prev} {seg}")

    return segs


def count_inserts(segs: List[Segment]) -> int:
    """Columns needed where a query gap is longer than the alignment gap"""
    inserts = 0
    for prev, seg in zip(segs, segs[1:]):
        gap = (seg.qstart - prev.qend - 1) - (seg.start - prev.end - 1)
        if gap > 0:
            inserts += gap
    return inserts


def insert_columns(alignment: Alignment, after_col: int, n: int) -> None:
    """Insert n gap columns after column after_col (0 inserts first)"""
    if not 0 <= after_col <= alignment.max_len or n < 0:
        raise ValueError(f"Cannot insert {n} columns after column {after_col}")

    pad = '.' * n
    for row in alignment.rows:
        row.seq = row.seq[:after_col] + pad + row.seq[after_col:]

    alignment.max_len += n
    alignment.invalidate_conservation()


def _copy(buf: List[str], pos: int, text: str) -> None:
    for i, c in enumerate(text):
        if pos + i < len(buf):
            buf[pos + i] = c


def read_match(alignment: Alignment, lines: Iterable[str]) -> bool:
    """
    Add the sequence of a match file to the top of the alignment.

    Returns False if the sequence is already in the alignment.
    """
    content = [l.rstrip('\n\r') for l in lines
               if l.strip() and not l.startswith('#')]
    if len(content) < 3:
        raise AlignmentParseError("Match file needs a name, sequence and segment line")

    header = content[0].split()
    probe = parse_mul_line(header[0], alignment.save_separator, True)
    try:
        match_score = float(header[1]) if len(header) > 1 else 0.0
    except ValueError:
        raise AlignmentParseError(f"Bad score in match header: {content[0]}")

    if alignment.find_row(probe.name, probe.start, probe.end) is not None:
        logger.error("Sequence %s/%d-%d already in alignment",
                     probe.name, probe.start, probe.end)
        return False

    raw = ''.join(content[1].split())
    segs = make_seg_list(content[2], alignment.max_len)

    buf = ['.'] * (alignment.max_len + count_inserts(segs))

    first = segs[0]
    p = first.start - 1
    _copy(buf, p, raw[first.qstart - 1:first.qstart - 1 + first.length])
    p += first.length

    inserts = 0
    for prev, seg in zip(segs, segs[1:]):
        align_gap = seg.start - prev.end - 1
        query_gap = seg.qstart - prev.qend - 1

        if query_gap > 0:
            _copy(buf, p, raw[prev.qend:prev.qend + query_gap])
            p += query_gap

        gap = query_gap - align_gap
        if gap > 0:
            insert_columns(alignment, prev.end + inserts, gap)
            inserts += gap
        elif gap < 0:
            p += -gap

        _copy(buf, p, raw[seg.qstart - 1:seg.qstart - 1 + seg.length])
        p += seg.length

    row = AlignmentRow(name=probe.name, start=probe.start, end=probe.end,
                       seq=''.join(buf), score=match_score,
                       color=Colour.RED, nr=0)
    alignment.rows.append(row)
    sort_rows(alignment.rows, nr_order)
    array_order(alignment.rows)
    alignment.invalidate_conservation()

    alignment.display_scores = True
    alignment.update_score_len(match_score)
    alignment.check_alignment()

    logger.info("Added %s/%d-%d from match (%d columns inserted)",
                row.name, row.start, row.end, inserts)
    return True


def read_match_file(alignment: Alignment, filepath) -> bool:
    with open(filepath, 'r') as f:
        return read_match(alignment, f)
