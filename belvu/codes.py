"""
Amino acid code tables for Belvu

Handles:
- BLOSUM62 substitution matrix (20 residues plus B, Z, X and stop)
- Character to residue index translation
- Colour names and RGB values
- Gap and alignment character classes
"""

from enum import IntEnum
from typing import Dict, Optional

import numpy as np


# Residue order used by BLOSUM62 and by the conservation matrices.
# Index 0 of the conservation matrices collects everything that is not
# one of the 20 standard residues (gaps, B, Z, X, ...).
RESIDUES = "ARNDCQEGHILKMFPSTWYV"
MATRIX_ORDER = RESIDUES + "BZX*"

# Residue index -> character (index 0 is a placeholder)
B2A = "." + RESIDUES

# Alphabetical residue order used for HMMER null model output
PROB_ORDER = "ACDEFGHIKLMNPQRSTVWY"

GAP_CHARS = frozenset(".-[]")

_BLOSUM62_TEXT = """
 4 -1 -2 -2  0 -1 -1  0 -2 -1 -1 -1 -1 -2 -1  1  0 -3 -2  0 -2 -1  0 -4
-1  5  0 -2 -3  1  0 -2  0 -3 -2  2 -1 -3 -2 -1 -1 -3 -2 -3 -1  0 -1 -4
-2  0  6  1 -3  0  0  0  1 -3 -3  0 -2 -3 -2  1  0 -4 -2 -3  3  0 -1 -4
-2 -2  1  6 -3  0  2 -1 -1 -3 -4 -1 -3 -3 -1  0 -1 -4 -3 -3  4  1 -1 -4
 0 -3 -3 -3  9 -3 -4 -3 -3 -1 -1 -3 -1 -2 -3 -1 -1 -2 -2 -1 -3 -3 -2 -4
-1  1  0  0 -3  5  2 -2  0 -3 -2  1  0 -3 -1  0 -1 -2 -1 -2  0  3 -1 -4
-1  0  0  2 -4  2  5 -2  0 -3 -3  1 -2 -3 -1  0 -1 -3 -2 -2  1  4 -1 -4
 0 -2  0 -1 -3 -2 -2  6 -2 -4 -4 -2 -3 -3 -2  0 -2 -2 -3 -3 -1 -2 -1 -4
-2  0  1 -1 -3  0  0 -2  8 -3 -3 -1 -2 -1 -2 -1 -2 -2  2 -3  0  0 -1 -4
-1 -3 -3 -3 -1 -3 -3 -4 -3  4  2 -3  1  0 -3 -2 -1 -3 -1  3 -3 -3 -1 -4
-1 -2 -3 -4 -1 -2 -3 -4 -3  2  4 -2  2  0 -3 -2 -1 -2 -1  1 -4 -3 -1 -4
-1  2  0 -1 -3  1  1 -2 -1 -3 -2  5 -1 -3 -1  0 -1 -3 -2 -2  0  1 -1 -4
-1 -1 -2 -3 -1  0 -2 -3 -2  1  2 -1  5  0 -2 -1 -1 -1 -1  1 -3 -1 -1 -4
-2 -3 -3 -3 -2 -3 -3 -3 -1  0  0 -3  0  6 -4 -2 -2  1  3 -1 -3 -3 -1 -4
-1 -2 -2 -1 -3 -1 -1 -2 -2 -3 -3 -1 -2 -4  7 -1 -1 -4 -3 -2 -2 -1 -2 -4
 1 -1  1  0 -1  0  0  0 -1 -2 -2  0 -1 -2 -1  4  1 -3 -2 -2  0  0  0 -4
 0 -1  0 -1 -1 -1 -1 -2 -2 -1 -1 -1 -1 -2 -1  1  5 -2 -2  0 -1 -1  0 -4
-3 -3 -4 -4 -2 -2 -3 -2 -2 -3 -2 -3 -1  1 -4 -3 -2 11  2 -3 -4 -3 -2 -4
-2 -2 -2 -3 -2 -1 -2 -3  2 -1 -1 -2 -1  3 -3 -2 -2  2  7 -1 -3 -2 -1 -4
 0 -3 -3 -3 -1 -2 -2 -3 -3  3  1 -2  1 -1 -2 -2  0 -3 -1  4 -3 -2 -1 -4
-2 -1  3  4 -3  0  1 -1  0 -3 -4  0 -3 -3 -2  0 -1 -4 -3 -3  4  1 -1 -4
-1  0  0  1 -3  3  4 -2  0 -3 -3  1 -1 -3 -1  0 -1 -3 -2 -2  1  4 -1 -4
 0 -1 -1 -1 -2 -1 -1 -1 -1 -1 -1 -1 -1 -1 -2  0  0 -2 -1 -1 -1 -1 -1 -4
-4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4 -4  1
"""

BLOSUM62 = np.array(
    [[int(v) for v in row.split()] for row in _BLOSUM62_TEXT.strip().splitlines()],
    dtype=int,
)

# The 20x20 block used by the conservation calculation
BLOSUM20 = BLOSUM62[:20, :20]

_MATRIX_INDEX = {c: i for i, c in enumerate(MATRIX_ORDER)}
_X_INDEX = _MATRIX_INDEX['X']


def residue_index(c: str) -> int:
    """
    Map a character to its residue index 1..20 (case-insensitive).

    Anything that is not one of the 20 standard residues maps to 0.
    """
    i = RESIDUES.find(c.upper())
    return i + 1 if i >= 0 else 0


def matrix_index(c: str) -> int:
    """Row/column of a character in BLOSUM62; unknown characters score as X"""
    return _MATRIX_INDEX.get(c.upper(), _X_INDEX)


def blosum(c1: str, c2: str) -> int:
    return int(BLOSUM62[matrix_index(c1), matrix_index(c2)])


def is_gap(c: str) -> bool:
    return c in GAP_CHARS


def is_align(c: str) -> bool:
    """Characters that may appear inside an aligned sequence"""
    return c.isalpha() or c in GAP_CHARS or c == '*'


def is_residue(c: str) -> bool:
    return c.isalpha() or c == '*'


class Colour(IntEnum):
    """Colour table, in the order used by colour code files"""
    WHITE = 0
    BLACK = 1
    LIGHTGRAY = 2
    DARKGRAY = 3
    RED = 4
    GREEN = 5
    BLUE = 6
    YELLOW = 7
    CYAN = 8
    MAGENTA = 9
    LIGHTRED = 10
    LIGHTGREEN = 11
    LIGHTBLUE = 12
    DARKRED = 13
    DARKGREEN = 14
    DARKBLUE = 15
    PALERED = 16
    PALEGREEN = 17
    PALEBLUE = 18
    PALEYELLOW = 19
    PALECYAN = 20
    PALEMAGENTA = 21
    BROWN = 22
    ORANGE = 23
    PALEORANGE = 24
    PURPLE = 25
    VIOLET = 26
    PALEVIOLET = 27
    GRAY = 28
    PALEGRAY = 29
    CERISE = 30
    MIDBLUE = 31


# Residues that are never painted (B, Z) carry NOCOLOR instead of a Colour
NOCOLOR = -1

COLOUR_RGB: Dict[Colour, str] = {
    Colour.WHITE: '#ffffff',
    Colour.BLACK: '#000000',
    Colour.LIGHTGRAY: '#c8c8c8',
    Colour.DARKGRAY: '#646464',
    Colour.RED: '#ff0000',
    Colour.GREEN: '#00ff00',
    Colour.BLUE: '#0000ff',
    Colour.YELLOW: '#ffff00',
    Colour.CYAN: '#00ffff',
    Colour.MAGENTA: '#ff00ff',
    Colour.LIGHTRED: '#ffa0a0',
    Colour.LIGHTGREEN: '#a0ffa0',
    Colour.LIGHTBLUE: '#a0c8ff',
    Colour.DARKRED: '#af0000',
    Colour.DARKGREEN: '#00af00',
    Colour.DARKBLUE: '#0000af',
    Colour.PALERED: '#ffe6d2',
    Colour.PALEGREEN: '#d2ffd2',
    Colour.PALEBLUE: '#d2ebff',
    Colour.PALEYELLOW: '#ffffc8',
    Colour.PALECYAN: '#c8ffff',
    Colour.PALEMAGENTA: '#ffc8ff',
    Colour.BROWN: '#a05000',
    Colour.ORANGE: '#ff8000',
    Colour.PALEORANGE: '#ffdc6e',
    Colour.PURPLE: '#c000ff',
    Colour.VIOLET: '#c8aaff',
    Colour.PALEVIOLET: '#ebd7ff',
    Colour.GRAY: '#969696',
    Colour.PALEGRAY: '#ebebeb',
    Colour.CERISE: '#ff0080',
    Colour.MIDBLUE: '#56b2de',
}


def colour_from_name(name: str) -> Optional[Colour]:
    """Case-insensitive colour lookup; None if the name is not a known colour"""
    try:
        return Colour[name.strip().upper()]
    except KeyError:
        return None


def colour_name(colour: int) -> str:
    if colour == NOCOLOR:
        return 'NOCOLOR'
    return Colour(colour).name
