import dump


def test_wrong_argument_count(capsys):
    assert dump.main(["dump"]) == -1
    assert "Usage" in capsys.readouterr().out


def test_non_integer_qubits(capsys):
    assert dump.main(["dump", "two", "chains.bin"]) == -1


def test_missing_file(tmp_path, capsys):
    assert dump.main(["dump", "2", str(tmp_path / "missing.bin")]) == -1
    assert "ERROR" in capsys.readouterr().err


def test_dump_and_csv(dataset_file, tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)

    assert dump.main(["dump", "2", str(dataset_file), "-csv"]) == 0

    out = capsys.readouterr().out
    assert "INSTANCE 6" in out
    assert "Fields written to input.csv" in out
    assert (tmp_path / "input.csv").exists()
    assert (tmp_path / "output.csv").exists()
