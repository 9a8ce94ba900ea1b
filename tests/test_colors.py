import io
import logging

import pytest

from belvu import Colour, read_color_codes, save_color_codes, scheme_by_name
from belvu.codes import NOCOLOR
from belvu.colors import CGP, CGPH, ERIK, NONE, describe, set_organism_colors


def test_preset_schemes():
    assert ERIK.color_of('A') == Colour.YELLOW
    assert ERIK.color_of('a') == Colour.YELLOW
    assert ERIK.color_of('C') == Colour.MIDBLUE
    assert NONE.color_of('A') == Colour.WHITE
    assert NONE.color_of('B') == NOCOLOR
    assert CGPH.color_of('H') == Colour.YELLOW
    assert CGP.color_of('H') == Colour.WHITE
    assert scheme_by_name('Gibson').color_of('K') == Colour.RED


def test_unknown_scheme():
    with pytest.raises(ValueError):
        scheme_by_name('rainbow')


def test_read_color_codes(stockholm_alignment, caplog):
    lines = [
        "# residue colours\n",
        "A RED\n",
        "c blue\n",
        "W NOTACOLOUR\n",
        "#=OS GREEN Homo sapiens\n",
        "#=OS RED Nobody\n",
    ]
    with caplog.at_level(logging.WARNING):
        scheme = read_color_codes(lines, ERIK, stockholm_alignment)

    assert scheme.name == 'custom'
    assert scheme.color_of('A') == Colour.RED
    assert scheme.color_of('a') == Colour.RED
    assert scheme.color_of('C') == Colour.BLUE
    assert scheme.color_of('W') == Colour.BLACK
    # Untouched residues keep the base colour, the base is unchanged
    assert scheme.color_of('G') == ERIK.color_of('G')
    assert ERIK.color_of('A') == Colour.YELLOW

    homo = stockholm_alignment.find_organism("Homo sapiens")
    assert stockholm_alignment.organisms[homo].color == Colour.GREEN
    assert "Unrecognized color: NOTACOLOUR" in caplog.text
    assert 'Cannot find organism "Nobody"' in caplog.text


def test_save_color_codes_round_trip():
    out = io.StringIO()
    save_color_codes(ERIK, out)
    lines = out.getvalue().splitlines()

    assert len(lines) == 20
    assert lines[0] == "A YELLOW"
    assert read_color_codes(lines, NONE).colors == {
        **NONE.colors, **{c: ERIK.color_of(c) for c in "ARNDCQEGHILKMFPSTWYV"}}


def test_set_organism_colors(stockholm_alignment):
    set_organism_colors(stockholm_alignment)

    assert [o.color for o in stockholm_alignment.sorted_organisms()] == [
        Colour.RED, Colour.BLUE]


def test_describe():
    assert "CYAN: C" in describe(CGP)
    assert "YELLOW: AILMFWYV" in describe(ERIK)
