"""
tests/test_main.py
CLI `calculate` command against the bundled data/rates.json.
"""
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from main import main, run_calculate

BUNDLED = Path(__file__).parent.parent / "data" / "rates.json"

REQUEST = {
    "pol": "BUSAN",
    "pod": "QINGDAO",
    "destination_id": "OSH",
    "weight": 5000,
    "reference_date": "2025-06-01",
}


@pytest.fixture
def request_file(tmp_path):
    def _write(payload: dict) -> str:
        path = tmp_path / "request.json"
        path.write_text(json.dumps(payload))
        return str(path)
    return _write


class TestCalculateCommand:

    def test_prints_ranked_result(self, request_file, capsys):
        rc = run_calculate(request_file(REQUEST), str(BUNDLED))
        out = json.loads(capsys.readouterr().out)
        assert rc == 0
        assert out["success"] is True
        assert out["is_historical"] is False

    def test_historical_uses_reconstructed_rates(self, request_file, capsys):
        rc = run_calculate(request_file({**REQUEST, "reference_date": "2025-05-10"}), str(BUNDLED),
                           historical=True)
        out = json.loads(capsys.readouterr().out)
        assert rc == 0
        assert out["is_historical"] is True

    def test_historical_without_date_is_rejected(self, request_file, capsys):
        payload = {k: v for k, v in REQUEST.items() if k != "reference_date"}
        rc = run_calculate(request_file(payload), str(BUNDLED), historical=True)
        out = json.loads(capsys.readouterr().out)
        assert rc == 2
        assert out == {"success": False, "errors": ["'reference_date' is required when historical is set"]}

    def test_invalid_request_exit_code(self, request_file, capsys):
        rc = main(["calculate", "--request", request_file({**REQUEST, "weight": 0}),
                   "--rates", str(BUNDLED)])
        out = json.loads(capsys.readouterr().out)
        assert rc == 2
        assert out["success"] is False
