"""
Tests for audit trail exports (JSON document, CSV, text report).
"""

import csv
import io
import json

import pytest

from nuclearflow.export import (
    CSV_HEADERS,
    audit_report,
    export_csv,
    export_json,
    export_json_text,
)


ALICE = {"id": "u1", "type": "user", "name": "Alice"}
LAB = {"name": "Hot Lab", "type": "facility"}


@pytest.fixture
def recorded(ledger):
    ledger.record_event("SHP-1", "shipment_created", ALICE, LAB,
                        metadata={"isotope": "Tc-99m"},
                        timestamp="2024-01-15T08:00:00Z")
    ledger.record_event("SHP-1", "dispatch", ALICE, LAB,
                        timestamp="2024-01-15T09:15:00Z")
    return ledger


class TestExportJson:

    def test_document(self, recorded, clock):
        doc = export_json("SHP-1", recorded.shipment_events("SHP-1"),
                          clock=clock)
        assert doc["shipmentId"] == "SHP-1"
        assert doc["exportDate"] == "2024-01-15T12:00:00+00:00"
        assert doc["eventCount"] == 2
        assert doc["chainValid"] is True
        assert doc["events"][0]["eventType"] == "shipment_created"
        assert doc["events"][1]["previousHash"] == \
            doc["events"][0]["chainHash"]

    def test_tampered_chain(self, recorded, clock):
        recorded.get_event("evt-1").metadata["isotope"] = "F-18"
        doc = export_json("SHP-1", recorded.shipment_events("SHP-1"),
                          clock=clock)
        assert doc["chainValid"] is False

    def test_text_is_valid_json(self, recorded, clock):
        text = export_json_text("SHP-1", recorded.shipment_events("SHP-1"),
                                clock=clock)
        assert json.loads(text)["eventCount"] == 2


class TestExportCsv:

    def test_rows(self, recorded):
        text = export_csv("SHP-1", recorded.shipment_events("SHP-1"))
        rows = list(csv.reader(io.StringIO(text)))
        assert tuple(rows[0]) == CSV_HEADERS
        assert len(rows) == 3
        assert rows[1][:4] == ["evt-1", "SHP-1", "shipment_created",
                               "2024-01-15T08:00:00+00:00"]
        assert rows[1][5] == "Alice"
        assert rows[1][6] == "Hot Lab"
        assert rows[1][9] == "Yes"

    def test_all_fields_quoted(self, recorded):
        text = export_csv("SHP-1", recorded.shipment_events("SHP-1"))
        assert text.splitlines()[0].startswith('"Event ID","Shipment ID"')

    def test_empty(self):
        assert export_csv("SHP-1", []).count("\n") == 1


class TestAuditReport:

    def test_contents(self, recorded, clock):
        report = audit_report("SHP-1", recorded.shipment_events("SHP-1"),
                              clock=clock)
        assert "Shipment ID: SHP-1" in report
        assert "Report Generated: Jan 15, 2024, 12:00:00 UTC" in report
        assert "Total Events: 2" in report
        assert "1. SHIPMENT CREATED" in report
        assert "2. DISPATCHED" in report
        assert "   Time: Jan 15, 2024, 09:15:00 UTC" in report
        assert "   Actor: Alice (user)" in report
        assert '"isotope": "Tc-99m"' in report
        assert report.rstrip().endswith("Chain Integrity: VALID")

    def test_without_hashes_or_metadata(self, recorded, clock):
        report = audit_report("SHP-1", recorded.shipment_events("SHP-1"),
                              include_hashes=False, include_metadata=False,
                              clock=clock)
        assert "Hash:" not in report
        assert "Transaction:" not in report
        assert "Metadata:" not in report

    def test_compromised(self, recorded, clock):
        recorded.get_event("evt-2").metadata["late"] = True
        report = audit_report("SHP-1", recorded.shipment_events("SHP-1"),
                              clock=clock)
        assert "Chain Integrity: COMPROMISED" in report
