import itertools
import logging

import pytest

from belvu import (
    AlignmentEditError, ConservationMode, aln_overhang, identity, mk_non_redundant,
    rm_column, rm_column_cutoff, rm_columns, rm_empty_columns,
    rm_gappy_columns, rm_gappy_seqs, rm_outliers, rm_partial_seqs, rm_score,
    rm_selected,
)
from belvu.editing import gap_fractions, rm_columns_left, rm_columns_right


def names(alignment):
    return [r.name for r in alignment.rows]


def test_rm_column_length_invariant(stockholm_alignment):
    a = stockholm_alignment
    rm_column(a, 3, 5)

    assert a.max_len == 7
    assert all(len(r.seq) == 7 for r in a.rows if not r.is_markup)
    assert [r.seq for r in a.sequences] == ["ACGHIKL", "AC.HIKL", "ACGHIKL"]
    # Interior cut leaves the coordinates alone
    assert [r.key[1:] for r in a.sequences] == [(1, 10), (1, 9), (5, 14)]


def test_rm_column_adjusts_coordinates(make_alignment):
    a = make_alignment("AC.DEFG", "..ACDEF")

    rm_column(a, 1, 3)
    assert [r.key for r in a.rows] == [("s1", 3, 6), ("s2", 2, 5)]

    rm_column(a, 3, 4)
    assert [r.key for r in a.rows] == [("s1", 3, 4), ("s2", 2, 3)]
    assert [r.seq for r in a.rows] == ["DE", "CD"]


def test_rm_column_reverse_numbering(make_alignment):
    a = make_alignment("ACDE")
    a.rows[0].start, a.rows[0].end = 10, 7

    rm_column(a, 1, 1)
    rm_column(a, 3, 3)
    assert a.rows[0].key == ("s1", 9, 8)


def test_rm_column_cuts_whole_row(make_alignment):
    a = make_alignment("ACDEFG..")
    a.rows[0].start, a.rows[0].end = 5, 10

    rm_column(a, 1, 6)
    assert a.rows[0].key == ("s1", 11, 10)


def test_rm_column_bad_range(make_alignment):
    a = make_alignment("ACDE")
    with pytest.raises(ValueError):
        rm_column(a, 0, 2)
    with pytest.raises(ValueError):
        rm_column(a, 2, 5)
    assert a.max_len == 4


def test_gap_fractions(make_alignment):
    a = make_alignment("A-.C", "A.-.")
    assert list(gap_fractions(a)) == [0.0, 1.0, 1.0, 0.5]


def test_rm_empty_columns(make_alignment):
    a = make_alignment("A-.C", "A.-.")

    assert rm_empty_columns(a, 1.0) == 2
    assert [r.seq for r in a.rows] == ["AC", "A."]

    assert rm_empty_columns(a, 0.5) == 1
    assert [r.seq for r in a.rows] == ["A", "A"]


def test_rm_empty_columns_refuses_to_remove_everything(make_alignment):
    a = make_alignment("A-", "--")

    with pytest.raises(AlignmentEditError):
        rm_empty_columns(a, 0.5)
    assert [r.seq for r in a.rows] == ["A-", "--"]


def test_rm_gappy_columns_cascades(make_alignment):
    a = make_alignment("ACDE", "A..E", "A--E")

    assert rm_gappy_columns(a, 60) == 2
    assert [r.seq for r in a.rows] == ["AE", "AE", "AE"]
    assert a.conservation.length == 2


def test_rm_gappy_seqs(make_alignment):
    a = make_alignment("ACDEFGHIKL", "AC........", "ACDEFGHI..")

    assert rm_gappy_seqs(a, 50) == 1
    assert names(a) == ["s1", "s3"]
    assert [r.nr for r in a.rows] == [1, 2]


def test_rm_partial_seqs(make_alignment):
    a = make_alignment("ACDE", ".CDE", "ACD-", "A..E")

    assert rm_partial_seqs(a) == 2
    assert names(a) == ["s1", "s4"]


def test_row_removal_refuses_to_remove_everything(make_alignment):
    a = make_alignment(".CDE", "ACD.")

    with pytest.raises(AlignmentEditError):
        rm_partial_seqs(a)
    assert names(a) == ["s1", "s2"]


def test_row_removal_keeps_markup(stockholm_alignment):
    a = stockholm_alignment
    rm_gappy_seqs(a, 5)

    assert names(a) == ["seq1", "seq2 SS", "seq3", "SS_cons"]


def test_rm_outliers_scenario(make_alignment):
    a = make_alignment("ABCDEFGHIJ", "ABCDXFGHIJ", "ZZZZZZZZZZ")

    assert rm_outliers(a, 50.0) == 1
    assert names(a) == ["s1", "s2"]
    assert [r.nr for r in a.rows] == [1, 2]
    assert a.max_len == 10


def test_rm_outliers_uses_starting_alignment(make_alignment):
    # s3 is only close to s4; both go, evaluated against the same rows
    a = make_alignment("AAAA", "AAAA", "CCCC", "CCCA")

    assert rm_outliers(a, 80.0) == 2
    assert names(a) == ["s1", "s2"]


def test_mk_non_redundant(make_alignment):
    a = make_alignment("ACDEFGHIKL", "ACDEFGHIKV", "ACDEF.....", "WWWWWGHIKL")

    assert mk_non_redundant(a, 90.0) == 2
    assert names(a) == ["s1", "s4"]


def test_mk_non_redundant_keeps_longer_sequence(make_alignment):
    a = make_alignment("..DEFGH...", "ACDEFGHIKL")

    mk_non_redundant(a, 90.0)
    assert names(a) == ["s2"]


def test_mk_non_redundant_converges(make_alignment):
    a = make_alignment("ACDEFGHIKL", "ACDEFGHIKV", "ACDEYGHIKV", "MCDEYGHIKV",
                       "MCNEYGHIKV", "..DEFGHIK.", "WWWWWWWWWW")
    cutoff = 85.0
    mk_non_redundant(a, cutoff)

    for r1, r2 in itertools.permutations(a.sequences, 2):
        if aln_overhang(r2.seq, r1.seq) == 0:
            assert identity(r1.seq, r2.seq) < cutoff


def test_rm_score(make_alignment):
    a = make_alignment("ACDE", "ACDF", "ACDG")
    for row, value in zip(a.rows, [5.0, 1.0, 3.0]):
        row.score = value

    assert rm_score(a, 2.0) == 1
    # Score order, lowest first
    assert names(a) == ["s3", "s1"]


def test_rm_column_cutoff(make_alignment):
    a = make_alignment("AAC", "AAD", "ACE", "GCF")
    a.conservation_settings.mode = ConservationMode.ID
    a.invalidate_conservation()

    # Column conservation: 0.75, 0.5, 0.25
    assert rm_column_cutoff(a, 0.3, 0.6) == 1
    assert [r.seq for r in a.rows] == ["AC", "AD", "AE", "GF"]


def test_rm_columns_left_and_right(make_alignment, caplog):
    a = make_alignment("ACDEFG", "ACDEFG")

    assert rm_columns_left(a, 2)
    assert [r.seq for r in a.rows] == ["DEFG", "DEFG"]
    assert a.rows[0].key == ("s1", 3, 6)

    assert rm_columns_right(a, 3)
    assert [r.seq for r in a.rows] == ["DE", "DE"]
    assert a.rows[0].key == ("s1", 3, 4)

    with caplog.at_level(logging.ERROR):
        assert not rm_columns_left(a, 0)
    assert "Pick a column first" in caplog.text

    with pytest.raises(AlignmentEditError):
        rm_columns(a, 1, 2)


def test_rm_selected(make_alignment, caplog):
    a = make_alignment("ACDE", "A..E", "ACDF")

    with caplog.at_level(logging.ERROR):
        assert not rm_selected(a)

    a.select(a.rows[0])
    assert rm_selected(a)
    assert a.selected is None
    assert names(a) == ["s2", "s3"]
    # Column 2 and 3 are not all-gap, nothing else changes
    assert a.max_len == 4
