import sys

import pytest

import belvu_msa


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, 'argv', ['belvu_msa.py', *map(str, args)])
    belvu_msa.main()


@pytest.fixture
def family(tmp_path, stockholm_text):
    path = tmp_path / "family.sto"
    path.write_text(stockholm_text)
    return path


def test_convert_to_unaligned_fasta(monkeypatch, capsys, family):
    run_cli(monkeypatch, family, '-f', 'fasta')
    out = capsys.readouterr().out

    assert ">seq1/1-10\nACDEFGHIKL\n" in out
    assert ">seq2/1-9\nACDEFHIKL\n" in out
    assert "SS_cons" not in out


def test_write_msf_file(monkeypatch, tmp_path, family):
    output = tmp_path / "out" / "family.msf"
    run_cli(monkeypatch, family, '-o', output)

    text = output.read_text()
    assert text.startswith("PileUp")
    assert "Name: seq3/5-14" in text


def test_edits_and_sort(monkeypatch, capsys, family):
    run_cli(monkeypatch, family, '-P', '-q', 5, '-S', 'a', '-C', '-f', 'stockholm')
    out = capsys.readouterr().out

    lines = [l for l in out.splitlines() if l.startswith('seq')]
    assert [l.split()[0] for l in lines] == ["seq1", "seq3"]


def test_conservation_table(monkeypatch, capsys, family):
    run_cli(monkeypatch, family, '-c')
    out = capsys.readouterr().out

    assert out.startswith("Column Consensus")
    assert "Average conservation" in out


def test_probabilities(monkeypatch, capsys, family):
    run_cli(monkeypatch, family, '-p')
    lines = capsys.readouterr().out.splitlines()

    assert lines[0] == "Amino"
    assert len(lines[1].split()) == 20


def test_missing_input(monkeypatch, capsys, tmp_path):
    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, tmp_path / "nothing.sto")
    assert exc.value.code == 1
    assert "Error: Input file not found" in capsys.readouterr().err


def test_parse_error_exits(monkeypatch, capsys, tmp_path):
    path = tmp_path / "broken.sto"
    path.write_text("seq1ACDE\n")

    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, path)
    assert exc.value.code == 1
    assert "No spacer" in capsys.readouterr().err
