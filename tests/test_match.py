import logging

import pytest

from belvu import (
    AlignmentParseError, Colour, SegmentError, insert_columns, make_seg_list,
    parse_alignment, read_match,
)
from belvu.match import Segment, count_inserts, read_match_file


def test_make_seg_list():
    segs = make_seg_list("1 3 1 3  6 8 4 6", 10)

    assert segs == [Segment(1, 3, 1, 3), Segment(6, 8, 4, 6)]
    assert segs[1].length == 3
    assert count_inserts(segs) == 2


@pytest.mark.parametrize("line", [
    "",
    "1 3 1",
    "1 x 1 3",
    "2 3 1 2",
    "1 3 1 11",
    "1 3 3 1",
    "1 3 1 3 2 5 4 7",
    "1 3 4 6 4 6 1 3",
])
def test_make_seg_list_rejects(line):
    with pytest.raises(SegmentError):
        make_seg_list(line, 10)


def test_insert_columns(make_alignment):
    a = make_alignment("ACDE", "AC.E")

    insert_columns(a, 2, 3)
    assert a.max_len == 7
    assert [r.seq for r in a.rows] == ["AC...DE", "AC....E"]

    insert_columns(a, 0, 1)
    assert [r.seq for r in a.rows] == [".AC...DE", ".AC....E"]

    with pytest.raises(ValueError):
        insert_columns(a, 9, 1)


def test_read_match_inserts_columns(make_alignment):
    a = make_alignment("ACDEFGHIKL")
    ok = read_match(a, ["q/1-8 25.0\n", "ACDWWEFG\n", "1 3 1 3 6 8 4 6\n"])

    assert ok
    assert a.max_len == 12
    assert [(r.name, r.seq, r.nr) for r in a.rows] == [
        ("q", "ACDWWEFG....", 1),
        ("s1", "ACD..EFGHIKL", 2),
    ]
    match = a.rows[0]
    assert match.key == ("q", 1, 8)
    assert match.color == Colour.RED
    assert match.score == 25.0
    assert a.display_scores


def test_read_match_longer_alignment_gap(make_alignment):
    a = make_alignment("ACDEFGHIKL")
    read_match(a, ["q/1-4 1.0\n", "ACDE\n", "1 2 1 2 3 4 6 7\n"])

    assert a.max_len == 10
    assert a.rows[0].seq == "AC...DE..."


def test_read_match_duplicate(make_alignment, caplog):
    a = make_alignment("ACDEFGHIKL")

    with caplog.at_level(logging.ERROR):
        assert not read_match(a, ["s1/1-10 5.0\n", "ACDEFGHIKL\n", "1 10 1 10\n"])
    assert "already in alignment" in caplog.text
    assert a.n_seqs == 1


def test_read_match_incomplete(make_alignment):
    with pytest.raises(AlignmentParseError):
        read_match(make_alignment("ACDE"), ["q/1-4 1.0\n", "ACDE\n"])


def test_read_match_footer():
    text = "s1 ACDEFGHIKL\ns2 ACDEFGHIKV\n# matchFooter\nq/1-5 9.5\nACDEF\n1 5 1 5\n"
    a = parse_alignment(text.splitlines(keepends=True))

    assert read_match(a, a.match_lines)
    assert a.rows[0].seq == "ACDEF....."
    assert a.n_seqs == 3


def test_read_match_file(tmp_path, make_alignment):
    path = tmp_path / "match.txt"
    path.write_text("q/1-3 2.0\nACD\n1 3 2 4\n")
    a = make_alignment("ACDEF")

    assert read_match_file(a, path)
    assert a.rows[0].seq == ".ACD."


def test_read_match_refreshes_conservation(make_alignment):
    a = make_alignment("ACDEFGHIKL", "ACDEFGHIKL")
    assert a.conservation.nseqeff == 2

    assert read_match(a, ["new/1-10 5.0\n", "WWWWWWWWWW\n", "1 10 1 10\n"])
    assert a.max_len == 10
    assert a.conservation.nseqeff == 3


def test_read_match_skips_comments(make_alignment):
    a = make_alignment("ACDEF")
    lines = ["# from a search\n", "q/1-3 2.0\n", "# query\n", "ACD\n", "1 3 2 4\n"]

    assert read_match(a, lines)
    assert a.rows[0].key == ("q", 1, 3)
    assert a.rows[0].seq == ".ACD."
