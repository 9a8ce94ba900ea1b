import itertools

import numpy as np
import pytest

from belvu import (
    BelvuError, Colour, ConservationMode, ConservationSettings,
    aln_overhang, compute_conservation, conservation_table,
    format_conservation_table, identity, list_identity,
    residue_probabilities, score,
)
from belvu.conservation import MIN_PROB, column_conservation


SEQS = ["ACDEFGHIKL", "ACDEF.HIKL", "AC-EWGHIKL", "..DEFGH...", "MCDEYGHIKV"]


def test_identity():
    assert identity("ACDE", "ACDF") == 75.0
    assert identity("acde", "ACDE") == 100.0
    assert identity("....", "....") == 0.0


def test_identity_gap_handling():
    assert identity("AC-E", "ACDE") == 100.0
    assert identity("AC-E", "ACDE", penalize_gaps=True) == 75.0
    assert identity("A-", "A-", penalize_gaps=True) == 100.0


def test_identity_symmetric():
    for a, b in itertools.combinations(SEQS, 2):
        for penalize in (False, True):
            assert identity(a, b, penalize) == identity(b, a, penalize)


def test_identity_with_itself():
    for s in SEQS:
        assert identity(s, s) == 100.0
        assert identity(s, s, penalize_gaps=True) == 100.0


def test_score():
    assert score("AC", "AC") == 13
    assert score("A.", "AC") == 4
    assert score("A.", "AC", penalize_gaps=True) == pytest.approx(3.4)
    assert score("A.", "A.", penalize_gaps=True) == 4
    # Unknown letters score as X
    assert score("J", "A") == score("X", "A")


def test_aln_overhang():
    assert aln_overhang("ACDEF", "..DE.") == 3
    assert aln_overhang("..DE.", "ACDEF") == 0
    assert aln_overhang("ACDEF", "ACDEF") == 0


def test_list_identity(make_alignment):
    a = make_alignment("ACDE", "ACDF", "ACGG")
    stats = list_identity(a.rows)

    assert len(stats.pairs) == 3
    assert stats.max_id == 75.0
    assert stats.min_id == 50.0
    assert stats.mean_id == pytest.approx((75.0 + 50.0 + 50.0) / 3)


def conservation(alignment, **settings):
    return compute_conservation(alignment.rows, alignment.max_len,
                                ConservationSettings(**settings))


def test_similarity_conservation(make_alignment):
    a = make_alignment("AG", "AG", "AC", "AW")
    m = conservation(a)

    # Four A's: 4 * (4 * 4) - 4 * 4 over 4 * 3 pairs
    assert m.conservation[0] == pytest.approx(4.0)
    assert m.tier_at('A', 0) == 3
    assert m.color_at('A', 0) == Colour.CYAN
    # S is similar to A and takes its tier, G is not
    assert m.tier_at('S', 0) == 3
    assert m.tier_at('G', 0) == 0
    assert m.nseqeff == 4


def test_identity_conservation_modes(make_alignment):
    a = make_alignment("A", "A", "A", "G")

    m = conservation(a, mode=ConservationMode.ID)
    assert m.tier_at('A', 0) == 2
    assert m.color_at('A', 0) == Colour.MIDBLUE
    assert m.tier_at('G', 0) == 0
    assert m.tier_at('S', 0) == 0

    m = conservation(a, mode=ConservationMode.ID_BLOSUM)
    assert m.tier_at('A', 0) == 2
    assert m.tier_at('S', 0) == 2


def test_ignore_gaps(make_alignment):
    a = make_alignment("A", "A", ".", ".")

    assert conservation(a, mode=ConservationMode.ID).values[1, 0] == 0.5
    assert conservation(a, mode=ConservationMode.ID, ignore_gaps=True).values[1, 0] == 1.0


def test_single_sequence_similarity_is_zero(make_alignment):
    m = conservation(make_alignment("ACDE"))
    assert not m.conservation.any()


def test_excluded_rows(make_alignment):
    a = make_alignment("A", "A", "G")
    a.rows[2].nocolor = True

    m = conservation(a, mode=ConservationMode.ID)
    assert m.nseqeff == 2
    assert m.values[1, 0] == 1.0


def test_tiers_monotonic_in_cutoffs(make_alignment):
    a = make_alignment("ACDEFGHIKL", "ACDEF.HIKL", "AC-EWGHIKL", "SCDEYGHLKV", "ACNEFGHIRL")

    for mode in ConservationMode:
        low = conservation(a, mode=mode).tier_map
        high = conservation(a, mode=mode,
                            low_id_cutoff=0.5, mid_id_cutoff=0.7, max_id_cutoff=0.9,
                            low_sim_cutoff=1.0, mid_sim_cutoff=2.0, max_sim_cutoff=4.0).tier_map
        assert (high <= low).all()


def test_color_by_res_id(make_alignment):
    a = make_alignment("A", "A", "A", "G")
    m = conservation(a, color_by_res_id=True)

    assert m.color_at('A', 0) == Colour.YELLOW
    assert m.color_at('G', 0) == Colour.CYAN
    assert m.color_at('C', 0) == Colour.WHITE


def test_column_conservation_identity(make_alignment):
    a = make_alignment("AC", "AD", "AE", "GF")
    settings = ConservationSettings(mode=ConservationMode.ID)
    m = compute_conservation(a.rows, a.max_len, settings)

    assert np.allclose(column_conservation(m, settings), [0.75, 0.25])


def test_conservation_table(make_alignment):
    # Ties go to the first residue in BLOSUM order (ARNDC...)
    a = make_alignment("AC", "AD", "AE", "G.")
    table = conservation_table(conservation(a))

    assert [(r.column, r.consensus, r.count, r.total) for r in table] == [
        (1, 'A', 3, 4), (2, 'D', 1, 4)]
    assert table[0].percent == 75.0

    lines = format_conservation_table(table)
    assert lines[0].startswith("Column Consensus")
    assert lines[-1].startswith("Average conservation")


def test_residue_probabilities(make_alignment):
    probs = residue_probabilities(make_alignment("AC", "AA").rows)

    assert probs['A'] == 0.75
    assert probs['C'] == 0.25
    assert probs['W'] == MIN_PROB

    pseudo = residue_probabilities(make_alignment("AC", "AA").rows, pseudocounts=True)
    assert sum(pseudo.values()) == pytest.approx(1.0, abs=1e-3)


def test_residue_probabilities_no_residues(make_alignment):
    with pytest.raises(BelvuError):
        residue_probabilities(make_alignment("..", "--").rows)
