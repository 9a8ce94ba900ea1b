"""
Residue colour schemes for Belvu

A ColorScheme maps residue characters to colours. The named presets
below are the built-in residue schemes; a scheme read from a colour code
file becomes the CUSTOM scheme.

Colour code file format:
    A GREEN                     residue colour (upper and lower case)
    #=OS BLUE Homo sapiens      organism colour
    # anything else             comment
"""

import logging
from dataclasses import dataclass, field
from string import ascii_uppercase
from typing import Dict, Iterable, List, TextIO

from .codes import Colour, NOCOLOR, RESIDUES, colour_from_name, colour_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorScheme:
    """Residue character -> colour mapping (keys are upper case)"""
    name: str
    colors: Dict[str, int] = field(default_factory=dict)

    def color_of(self, c: str) -> int:
        return self.colors.get(c.upper(), Colour.WHITE)

    def derive(self, name: str, updates: Dict[str, int]) -> 'ColorScheme':
        """Copy of this scheme with some characters recoloured"""
        colors = dict(self.colors)
        for c, colour in updates.items():
            colors[c.upper()] = colour
        return ColorScheme(name, colors)


def _assign(groups: Dict[str, int]) -> Dict[str, int]:
    colors = {}
    for letters, colour in groups.items():
        for c in letters:
            colors[c] = colour
    return colors


NONE = ColorScheme('none', {
    **{c: Colour.WHITE for c in ascii_uppercase},
    'B': NOCOLOR,
    'Z': NOCOLOR,
})

# C MIDBLUE, GP CYAN, HKR GREEN, AFILMVWY YELLOW, DENQST LIGHTRED
ERIK = NONE.derive('erik', _assign({
    'C': Colour.MIDBLUE,
    'GP': Colour.CYAN,
    'HKR': Colour.GREEN,
    'AFILMVWY': Colour.YELLOW,
    'DENQST': Colour.LIGHTRED,
}))

# Gibson et al. (1994) TIBS 19:349-353
GIBSON = NONE.derive('gibson', _assign({
    'ACFILMVW': Colour.MIDBLUE,
    'DE': Colour.PURPLE,
    'G': Colour.ORANGE,
    'H': Colour.LIGHTRED,
    'KR': Colour.RED,
    'NQST': Colour.GREEN,
    'P': Colour.YELLOW,
    'Y': Colour.LIGHTBLUE,
}))

CGP = NONE.derive('cgp', _assign({
    'C': Colour.CYAN,
    'G': Colour.RED,
    'P': Colour.GREEN,
}))

CGPH = CGP.derive('cgph', {'H': Colour.YELLOW})

SCHEMES: Dict[str, ColorScheme] = {
    s.name: s for s in (NONE, ERIK, GIBSON, CGP, CGPH)
}

# Default colours of markup symbols (secondary structure letters, digits)
MARKUP_SCHEME = NONE.derive('markup', {
    '0': Colour.DARKBLUE,
    '1': Colour.BLUE,
    '2': Colour.MIDBLUE,
    '3': Colour.LIGHTBLUE,
    '4': Colour.VIOLET,
    '5': Colour.PALEBLUE,
    '6': Colour.PALECYAN,
    '7': Colour.CYAN,
    '8': Colour.CYAN,
    '9': Colour.CYAN,
    'B': Colour.RED,
    'C': Colour.PALEYELLOW,
    'E': Colour.RED,
    'G': Colour.DARKGREEN,
    'H': Colour.DARKGREEN,
    'I': Colour.DARKGREEN,
    'S': Colour.YELLOW,
    'T': Colour.YELLOW,
    'Z': NOCOLOR,
})

# Default organism colours, cycled over the sorted organism table
ORGANISM_PALETTE = [
    Colour.RED, Colour.BLUE, Colour.DARKGREEN, Colour.ORANGE,
    Colour.MAGENTA, Colour.BROWN, Colour.PURPLE, Colour.CYAN,
    Colour.VIOLET, Colour.MIDBLUE, Colour.CERISE, Colour.LIGHTBLUE,
    Colour.DARKRED, Colour.GREEN, Colour.DARKBLUE, Colour.GRAY,
]


def scheme_by_name(name: str) -> ColorScheme:
    try:
        return SCHEMES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown colour scheme: {name}. "
                         f"Available: {', '.join(SCHEMES)}")


def _parse_colour(token: str) -> int:
    colour = colour_from_name(token)
    if colour is None:
        logger.warning("Unrecognized color: %s, using black instead", token)
        return Colour.BLACK
    return colour


def read_color_codes(lines: Iterable[str], base: ColorScheme,
                     alignment=None) -> ColorScheme:
    """
    Read a colour code file on top of an existing scheme.

    Organism lines (#=OS) are applied to the alignment's organism table
    when an alignment is given. Returns the resulting CUSTOM scheme.
    """
    updates = {}

    for line in lines:
        line = line.rstrip('\n\r')

        if line.startswith('#=OS '):
            parts = line[5:].split(None, 1)
            if len(parts) < 2:
                logger.warning("Bad organism colour line: %s", line)
                continue
            colour = _parse_colour(parts[0])
            organism = parts[1].strip()

            if alignment is None:
                continue
            handle = alignment.find_organism(organism)
            if handle is None:
                logger.warning('Cannot find organism "%s", specified in '
                               'color code file. Hope that\'s ok', organism)
            else:
                alignment.organisms[handle].color = colour
            continue

        if line.startswith('#'):
            continue

        # <char> <COLOUR>
        if len(line) < 2:
            continue
        tokens = line[1:].split()
        if not tokens:
            continue
        updates[line[0]] = _parse_colour(tokens[0])

    return base.derive('custom', updates)


def save_color_codes(scheme: ColorScheme, handle: TextIO) -> None:
    """Write the colours of the 20 residues in colour code file format"""
    for c in RESIDUES:
        handle.write(f"{c} {colour_name(scheme.color_of(c))}\n")


def set_organism_colors(alignment) -> None:
    for i, entry in enumerate(alignment.sorted_organisms()):
        entry.color = ORGANISM_PALETTE[i % len(ORGANISM_PALETTE)]


def describe(scheme: ColorScheme) -> List[str]:
    """Residues grouped by colour, e.g. ['YELLOW: AFILMVWY', ...]"""
    groups: Dict[int, str] = {}
    for c in RESIDUES:
        colour = scheme.color_of(c)
        groups[colour] = groups.get(colour, '') + c
    return [f"{colour_name(colour)}: {letters}"
            for colour, letters in groups.items()]
