"""
Per-column conservation and colour classification

For every column and every residue type a conservation value is computed,
either as a BLOSUM62-weighted average pairwise similarity or as a plain
identity fraction. The value picks one of three colour tiers
(low < mid < max) via the configured cutoffs. In similarity and
identity+BLOSUM modes the tier is also given to residues with a positive
BLOSUM62 score against the conserved one, never downgrading a cell that
already holds a higher tier.

The matrices are rebuilt from scratch after every edit.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .codes import BLOSUM20, B2A, Colour, PROB_ORDER, RESIDUES
from .colors import ERIK, ColorScheme
from .errors import BelvuError


class ConservationMode(Enum):
    """How the per-residue conservation value is computed"""
    BLOSUM = auto()      # average BLOSUM62 similarity
    ID = auto()          # identity fraction
    ID_BLOSUM = auto()   # identity fraction, tiers spread to similar residues


@dataclass
class ConservationSettings:
    mode: ConservationMode = ConservationMode.BLOSUM
    ignore_gaps: bool = False
    low_id_cutoff: float = 0.4
    mid_id_cutoff: float = 0.6
    max_id_cutoff: float = 0.8
    low_sim_cutoff: float = 0.5
    mid_sim_cutoff: float = 1.5
    max_sim_cutoff: float = 3.0
    low_color: int = Colour.LIGHTGRAY
    mid_color: int = Colour.MIDBLUE
    max_color: int = Colour.CYAN
    color_by_res_id: bool = False
    color_by_res_id_cutoff: float = 20.0
    scheme: ColorScheme = field(default_factory=lambda: ERIK)

    @property
    def by_similarity(self) -> bool:
        return self.mode == ConservationMode.BLOSUM and not self.color_by_res_id

    def cutoffs(self) -> Tuple[float, float, float]:
        if self.by_similarity:
            return self.low_sim_cutoff, self.mid_sim_cutoff, self.max_sim_cutoff
        return self.low_id_cutoff, self.mid_id_cutoff, self.max_id_cutoff

    def tier_colors(self) -> np.ndarray:
        """Colour of tiers 0 (none) .. 3 (max)"""
        return np.array([Colour.WHITE, self.low_color,
                         self.mid_color, self.max_color], dtype=int)


@dataclass
class ConservationMatrices:
    """
    Derived per-column data. Row 0 of the (21, L) matrices collects
    non-residue characters; rows 1..20 are the residues in BLOSUM order.
    """
    conserv_count: np.ndarray
    conserv_residues: np.ndarray
    values: np.ndarray
    tier_map: np.ndarray
    color_map: np.ndarray
    conservation: np.ndarray
    nseqeff: int

    @property
    def length(self) -> int:
        return self.conservation.shape[0]

    def color_at(self, c: str, col: int) -> int:
        k = RESIDUES.find(c.upper()) + 1
        return int(self.color_map[k, col])

    def tier_at(self, c: str, col: int) -> int:
        k = RESIDUES.find(c.upper()) + 1
        return int(self.tier_map[k, col])


# byte -> residue index (0 for anything else)
_RESIDUE_LUT = np.zeros(256, dtype=np.intp)
for _i, _c in enumerate(RESIDUES):
    _RESIDUE_LUT[ord(_c)] = _RESIDUE_LUT[ord(_c.lower())] = _i + 1

_ALPHA_LUT = np.zeros(256, dtype=bool)
for _b in range(256):
    _ALPHA_LUT[_b] = chr(_b).isascii() and (chr(_b).isalpha() or chr(_b) == '*')

_BLOSUM_POSITIVE = (BLOSUM20 > 0).astype(int)
_BLOSUM_DIAG = np.diag(BLOSUM20)


def _char_matrix(rows: Sequence, max_len: int) -> np.ndarray:
    """(nseq, max_len) byte matrix of the given rows"""
    if not rows or not max_len:
        return np.zeros((0, max_len), dtype=np.uint8)
    text = ''.join(r.seq.ljust(max_len, '.')[:max_len] for r in rows)
    data = np.frombuffer(text.encode('ascii', 'replace'), dtype=np.uint8)
    return data.reshape(len(rows), max_len)


def count_residue_freqs(rows: Sequence, max_len: int) -> Tuple[np.ndarray, np.ndarray, int]:
    """
    Count residue types per column over rows taking part in conservation.

    Returns (conserv_count[21, L], conserv_residues[L], nseqeff).
    """
    counted = [r for r in rows if not r.is_markup and not r.nocolor]
    chars = _char_matrix(counted, max_len)

    idx = _RESIDUE_LUT[chars]
    counts = np.zeros((21, max_len), dtype=int)
    for k in range(21):
        counts[k] = (idx == k).sum(axis=0)

    residues = _ALPHA_LUT[chars].sum(axis=0).astype(int)
    return counts, residues, len(counted)


def _similarity_values(counts: np.ndarray, residues: np.ndarray,
                       nseqeff: int, ignore_gaps: bool) -> np.ndarray:
    c = counts[1:21].astype(float)
    # Self pairs count (c_k - 1) * c_k
    sim = c * (BLOSUM20 @ c) - c * _BLOSUM_DIAG[:, None]

    n = residues.astype(float) if ignore_gaps else np.full(residues.shape, float(nseqeff))
    denom = n * (n - 1)
    values = np.zeros_like(sim)
    np.divide(sim, denom, out=values, where=(n >= 2) & (denom > 0))
    return values


def _identity_values(counts: np.ndarray, residues: np.ndarray,
                     nseqeff: int, ignore_gaps: bool) -> np.ndarray:
    c = counts[1:21].astype(float)
    if ignore_gaps:
        n = np.where(residues != 1, residues, nseqeff).astype(float)
    else:
        n = np.full(residues.shape, float(nseqeff))
    values = np.zeros_like(c)
    np.divide(c, n, out=values, where=n > 0)
    return values


def _tiers(values: np.ndarray, cutoffs: Tuple[float, float, float]) -> np.ndarray:
    low, mid, high = cutoffs
    tiers = np.zeros(values.shape, dtype=int)
    tiers[values > low] = 1
    tiers[values > mid] = 2
    tiers[values > high] = 3
    return tiers


def _spread_to_similar(tiers: np.ndarray) -> np.ndarray:
    """Each residue gets the highest tier of any BLOSUM-positive residue"""
    return (tiers[:, None, :] * _BLOSUM_POSITIVE[:, :, None]).max(axis=0)


def compute_conservation(rows: Sequence, max_len: int,
                         settings: ConservationSettings) -> ConservationMatrices:
    counts, residues, nseqeff = count_residue_freqs(rows, max_len)

    if settings.by_similarity:
        values = _similarity_values(counts, residues, nseqeff, settings.ignore_gaps)
    else:
        values = _identity_values(counts, residues, nseqeff, settings.ignore_gaps)

    tier_map = np.zeros((21, max_len), dtype=int)
    color_map = np.full((21, max_len), int(Colour.WHITE), dtype=int)

    if settings.color_by_res_id:
        scheme = np.array([settings.scheme.color_of(c) for c in RESIDUES], dtype=int)
        above = values * 100.0 > settings.color_by_res_id_cutoff
        color_map[1:21] = np.where(above, scheme[:, None], int(Colour.WHITE))
    else:
        tiers = _tiers(values, settings.cutoffs())
        if settings.mode != ConservationMode.ID:
            tiers = _spread_to_similar(tiers)
        tier_map[1:21] = tiers
        color_map[1:21] = settings.tier_colors()[tiers]

    full_values = np.zeros((21, max_len))
    full_values[1:21] = values
    conservation = values.max(axis=0) if max_len else np.zeros(0)

    return ConservationMatrices(
        conserv_count=counts,
        conserv_residues=residues,
        values=full_values,
        tier_map=tier_map,
        color_map=color_map,
        conservation=conservation,
        nseqeff=nseqeff,
    )


def column_conservation(matrices: ConservationMatrices,
                        settings: ConservationSettings) -> np.ndarray:
    """
    Conservation used when trimming columns: the similarity value in
    similarity mode, otherwise the fraction of the most common residue.
    """
    if settings.by_similarity:
        return matrices.conservation
    if not matrices.nseqeff:
        return np.zeros(matrices.length)
    return matrices.conserv_count[1:21].max(axis=0) / matrices.nseqeff


@dataclass
class ConservationRow:
    column: int
    consensus: str
    count: int
    total: int
    conservation: float

    @property
    def percent(self) -> float:
        return 100.0 * self.count / self.total if self.total else 0.0


def conservation_table(matrices: ConservationMatrices) -> List[ConservationRow]:
    table = []
    for i in range(matrices.length):
        column = matrices.conserv_count[1:21, i]
        k = int(column.argmax()) + 1 if column.max() > 0 else 0
        table.append(ConservationRow(
            column=i + 1,
            consensus=B2A[k],
            count=int(matrices.conserv_count[k, i]) if k else 0,
            total=matrices.nseqeff,
            conservation=float(matrices.conservation[i]),
        ))
    return table


def format_conservation_table(table: List[ConservationRow]) -> List[str]:
    lines = ["Column Consensus        Identity       Conservation",
             "------ ---------  -------------------  ------------"]
    for row in table:
        lines.append(f"{row.column:4d}       {row.consensus}      "
                     f"{row.count:4d}/{row.total:<4d} = {row.percent:5.1f} %  "
                     f"{row.conservation:4.1f}")
    if table:
        average = sum(r.conservation for r in table) / len(table)
        lines.append("")
        lines.append(f"Average conservation = {average:.1f}")
    return lines


# Swissprot 33 background frequencies, alphabetical residue order
SWISSPROT_FREQS = dict(zip(PROB_ORDER, [
    .08713, .03347, .04687, .04953, .03977, .08861, .03362, .03689, .08048, .08536,
    .01475, .04043, .05068, .03826, .04090, .06958, .05854, .06472, .01049, .02992,
]))

MIN_PROB = 0.000001


def residue_probabilities(rows: Sequence, pseudocounts: bool = False) -> Dict[str, float]:
    """
    Residue frequencies over all sequence rows, for a HMMER null model.

    With pseudocounts, 20 pseudo-residues distributed by the Swissprot
    background frequencies are added. No probability is below 1e-6.
    """
    counts = {c: 0 for c in PROB_ORDER}
    for row in rows:
        if row.is_markup:
            continue
        for c in row.seq.upper():
            if c in counts:
                counts[c] += 1

    n = sum(counts.values())
    if not n:
        raise BelvuError("No residues found")

    probs = {}
    for c in PROB_ORDER:
        if pseudocounts:
            p = (counts[c] + 20 * SWISSPROT_FREQS[c]) / (n + 20)
        else:
            p = counts[c] / n
        probs[c] = max(p, MIN_PROB)
    return probs
