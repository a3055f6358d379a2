"""
test_quote_report.py — Command-line report over saved quote documents
"""
import copy
import json

import pytest

from quotes.quote_report import main

ROSTER = "resources:\n  - {id: tech-a, name: Alex, kind: technician, costRate: 50}\n"

QUOTE_DOC = {
    "id": "q-5",
    "quoteNumber": "Q-1005",
    "status": "draft",
    "options": [{
        "id": "opt-1",
        "name": "Good",
        "areas": [{"id": "a-1", "name": "Living Room", "items": [
            {"id": "amp", "name": "Sonos Amp", "dealerCost": 100, "msrp": 150, "quantity": 2},
        ]}],
        "laborCategories": [{
            "id": "install", "name": "Installation", "clientRate": 100, "estimatedTechDays": 1,
            "assignedTechnicians": [{"resourceId": "tech-a"}],
        }],
    }],
}


@pytest.fixture
def files(tmp_path):
    roster = tmp_path / "roster.yaml"
    roster.write_text(ROSTER)

    def _write(doc):
        path = tmp_path / "quote.json"
        path.write_text(json.dumps(doc))
        return str(path), str(roster)
    return _write


class TestTotalsCommand:

    def test_json(self, files, capsys):
        quote, roster = files(QUOTE_DOC)
        assert main(["totals", quote, "--resources", roster, "--json"]) == 0
        totals = json.loads(capsys.readouterr().out)["opt-1"]
        # 2 x $150 equipment + 1 day x 8h x $100 labor
        assert totals["finalPrice"] == pytest.approx(1100)
        # $200 equipment cost + 8h x $50
        assert totals["totalCompanyCost"] == pytest.approx(600)

    def test_text(self, files, capsys):
        quote, roster = files(QUOTE_DOC)
        assert main(["totals", quote, "--resources", roster]) == 0
        out = capsys.readouterr().out
        assert "PRICING SUMMARY" in out
        assert "1,100.00" in out

    def test_unknown_option(self, files):
        quote, roster = files(QUOTE_DOC)
        assert main(["totals", quote, "--resources", roster, "--option", "nope"]) == 1

    def test_missing_file(self, tmp_path):
        assert main(["totals", str(tmp_path / "missing.json")]) == 1

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "quote.json"
        path.write_text("{not json")
        assert main(["totals", str(path)]) == 1

    def test_non_numeric_field(self, files, caplog):
        doc = copy.deepcopy(QUOTE_DOC)
        doc["options"][0]["areas"][0]["items"][0]["dealerCost"] = "n/a"
        quote, roster = files(doc)
        assert main(["totals", quote, "--resources", roster]) == 1
        assert "dealerCost" in caplog.text


class TestDiffCommand:

    def test_no_snapshot(self, files, capsys):
        quote, _ = files(QUOTE_DOC)
        assert main(["diff", quote]) == 0
        assert "No revision snapshot" in capsys.readouterr().out

    def test_summary(self, files, capsys):
        doc = copy.deepcopy(QUOTE_DOC)
        doc["revisionNumber"] = 2
        doc["originalOptionsForDiff"] = copy.deepcopy(doc["options"])
        doc["options"][0]["areas"][0]["items"][0]["quantity"] = 3
        quote, _ = files(doc)
        assert main(["diff", quote]) == 0
        out = capsys.readouterr().out
        assert "Summary for Revision 2:" in out
        assert 'In "Living Room": Changed quantity of Sonos Amp from 2 to 3' in out

    def test_no_changes(self, files, capsys):
        doc = copy.deepcopy(QUOTE_DOC)
        doc["originalOptionsForDiff"] = copy.deepcopy(doc["options"])
        quote, _ = files(doc)
        assert main(["diff", quote]) == 0
        assert "No changes detected." in capsys.readouterr().out
