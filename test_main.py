"""
Tests for the command line entry point.
"""

import json

import pytest

import main


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


@pytest.fixture
def inputs(tmp_path):
    pbl = _write(tmp_path / "plan.json", {"benefits": [
        {"benefit_name": "Specialist", "cost_sharing": "$40 copay"},
        {"benefit_name": "PCP", "cost_sharing": "$0 copay"},
    ]})
    matrix = _write(tmp_path / "matrix.json", {"columns": {
        "INN Specialist": "$40 copay",
        "INN PCP": "$0 copay",
    }})
    return pbl, matrix


def test_passing_run(inputs, capsys):
    pbl, matrix = inputs
    assert main.main(["--pbl", pbl, "--matrix", matrix]) == main.EXIT_OK
    assert "PASSED" in capsys.readouterr().out


def test_failing_run_writes_csv(tmp_path, inputs):
    pbl, _ = inputs
    matrix = _write(tmp_path / "bad_matrix.json", {"INN Specialist": "$50 copay", "INN PCP": "$0 copay"})
    csv_path = tmp_path / "errors.csv"

    assert main.main(["--pbl", pbl, "--matrix", matrix, "--csv", str(csv_path)]) == main.EXIT_FAILED
    assert csv_path.exists()


def test_malformed_input(tmp_path, inputs):
    _, matrix = inputs
    pbl = _write(tmp_path / "broken.json", {"benefits": [{"cost_sharing": "$0 copay"}]})
    assert main.main(["--pbl", pbl, "--matrix", matrix]) == main.EXIT_MALFORMED


def test_info(capsys):
    assert main.main(["--info"]) == main.EXIT_OK
    assert "plan_families" in capsys.readouterr().out


def test_missing_arguments():
    with pytest.raises(SystemExit):
        main.main([])
