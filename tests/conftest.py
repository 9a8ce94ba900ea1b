import logging

import pytest

from belvu import Alignment, parse_alignment


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


STOCKHOLM = """\
# STOCKHOLM 1.0
#=GF ID   Test_family
#=GS seq1/1-10 OS Homo sapiens
#=GS seq2/1-9 OS Homo sapiens
#=GS seq3/5-14 OS Mus musculus
seq1/1-10    ACDEFGHIKL
seq2/1-9     ACDEF.HIKL
#=GR seq2/1-9 SS  CCHHHHHHCC
seq3/5-14    ACDEWGHIKL
#=GC SS_cons CCHHHHHHCC
//
"""


@pytest.fixture
def stockholm_text():
    return STOCKHOLM


@pytest.fixture
def stockholm_alignment():
    return parse_alignment(STOCKHOLM.splitlines(keepends=True))


@pytest.fixture
def make_alignment():
    """Build an alignment of rows s1, s2, ... from plain sequences"""
    def make(*seqs, **settings):
        text = ''.join(f"s{i + 1} {seq}\n" for i, seq in enumerate(seqs))
        return parse_alignment(text.splitlines(keepends=True), Alignment(**settings))
    return make
