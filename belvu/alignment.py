"""
Pairwise scoring for Belvu

Percent identity and BLOSUM62 score between two aligned rows, overhang
between rows, and all-pairs statistics.
"""

from dataclasses import dataclass, field
from typing import List, Tuple

from .codes import blosum, is_gap

GAP_PENALTY = 0.6


def identity(s1: str, s2: str, penalize_gaps: bool = False) -> float:
    """
    Percent identity of two aligned strings.

    Columns where both have a gap are skipped. Columns where only one has
    a gap are skipped unless penalize_gaps is set, in which case they
    count as mismatches. Comparison is case-insensitive.
    """
    n = ident = 0

    for c1, c2 in zip(s1, s2):
        g1 = is_gap(c1)
        g2 = is_gap(c2)
        if g1 and g2:
            continue
        if (g1 or g2) and not penalize_gaps:
            continue
        n += 1
        if c1.upper() == c2.upper():
            ident += 1

    if n:
        return ident / n * 100
    return 0.0


def score(s1: str, s2: str, penalize_gaps: bool = False) -> float:
    """BLOSUM62 score of two aligned strings"""
    sc = 0.0

    for c1, c2 in zip(s1, s2):
        g1 = is_gap(c1)
        g2 = is_gap(c2)
        if g1 and g2:
            continue
        elif g1 or g2:
            if penalize_gaps:
                sc -= GAP_PENALTY
        else:
            sc += blosum(c1, c2)

    return sc


def aln_overhang(s1: str, s2: str) -> int:
    """Number of residues at the ends of s1 that overhang s2"""
    overhang = 0
    n = min(len(s1), len(s2))

    for positions in (range(n), range(n - 1, -1, -1)):
        s1_started = s2_started = False
        for i in positions:
            if not is_gap(s1[i]):
                s1_started = True
            if not is_gap(s2[i]):
                s2_started = True
            if s1_started and not s2_started:
                overhang += 1

    return overhang


@dataclass
class PairwiseStats:
    """All-pairs identity and score between sequence rows"""
    pairs: List[Tuple[object, object, float, float]] = field(default_factory=list)

    @property
    def identities(self) -> List[float]:
        return [p[2] for p in self.pairs]

    @property
    def scores(self) -> List[float]:
        return [p[3] for p in self.pairs]

    @property
    def max_id(self) -> float:
        return max(self.identities, default=0.0)

    @property
    def min_id(self) -> float:
        return min(self.identities, default=0.0)

    @property
    def mean_id(self) -> float:
        ids = self.identities
        return sum(ids) / len(ids) if ids else 0.0

    @property
    def max_score(self) -> float:
        return max(self.scores, default=0.0)

    @property
    def min_score(self) -> float:
        return min(self.scores, default=0.0)

    @property
    def mean_score(self) -> float:
        scores = self.scores
        return sum(scores) / len(scores) if scores else 0.0


def list_identity(rows, penalize_gaps: bool = False) -> PairwiseStats:
    """Identity and score of every pair of sequence rows"""
    seqs = [r for r in rows if not r.is_markup]
    stats = PairwiseStats()

    for i in range(len(seqs)):
        for j in range(i + 1, len(seqs)):
            stats.pairs.append((
                seqs[i], seqs[j],
                identity(seqs[i].seq, seqs[j].seq, penalize_gaps),
                score(seqs[i].seq, seqs[j].seq, penalize_gaps),
            ))

    return stats


def format_identity_list(stats: PairwiseStats, separator: str = '/') -> List[str]:
    lines = []
    for a, b, pid, sc in stats.pairs:
        lines.append(f"{a.label(separator)} and {b.label(separator)} are "
                     f"{pid:.1f}% identical, score={sc:f}")
    lines.append(f"Maximum %id was: {stats.max_id:.1f}")
    lines.append(f"Minimum %id was: {stats.min_id:.1f}")
    lines.append(f"Mean    %id was: {stats.mean_id:.1f}")
    lines.append(f"Maximum score was: {stats.max_score:.1f}")
    lines.append(f"Minimum score was: {stats.min_score:.1f}")
    lines.append(f"Mean    score was: {stats.mean_score:.1f}")
    return lines
