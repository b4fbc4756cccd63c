from decimal import Decimal

from hms_analytics.services.records import parse_department_stats, parse_lab_tests, parse_medicines


def test_parse_medicines_skips_bad_records_and_keeps_going():
    raw = [
        {"_id": "m1", "name": "Amoxicillin", "price": 2.5, "stockQuantity": 5, "usage": {"prescriptionCount": 60}},
        {"_id": "m2", "name": "Broken", "price": 1, "stockQuantity": -4},
        {"_id": "m3", "price": 1, "stockQuantity": 4},
        "garbage",
        {"id": 42, "name": "Saline", "price": "0.99", "stockQuantity": 12, "usage": None},
    ]

    records, skipped = parse_medicines(raw)

    assert [r.id for r in records] == ["m1", "42"]
    assert records[0].price == Decimal("2.5")
    assert records[1].usage.prescription_count == 0
    assert records[1].usage.in_demand is False
    assert [(s.index, s.id) for s in skipped] == [(1, "m2"), (2, "m3"), (3, None)]
    assert "object" in skipped[2].reason


def test_parse_medicines_rejects_negative_price():
    records, skipped = parse_medicines([{"_id": "m1", "name": "X", "price": -1, "stockQuantity": 1}])
    assert records == []
    assert skipped[0].id == "m1"


def test_parse_medicines_tolerates_null_usage_counts():
    records, _ = parse_medicines(
        [{"_id": "m1", "name": "X", "price": 1, "stockQuantity": 1, "usage": {"prescriptionCount": None, "inDemand": None}}]
    )
    assert records[0].usage.prescription_count == 0
    assert records[0].usage.in_demand is False


def test_parse_non_list_payload_yields_nothing():
    assert parse_medicines(None) == ([], [])
    assert parse_medicines({"data": []}) == ([], [])


def test_parse_lab_tests_skips_unknown_priority():
    records, skipped = parse_lab_tests(
        [
            {"_id": "t1", "testName": "CBC", "priority": "High", "status": "Completed", "completedAt": "2025-01-01T10:00:00Z"},
            {"_id": "t2", "testName": "CBC", "priority": "Urgent"},
            {"_id": "t3", "completedAt": "not a date"},
        ]
    )
    assert [r.id for r in records] == ["t1"]
    assert [s.id for s in skipped] == ["t2", "t3"]


def test_parse_department_stats():
    stats = parse_department_stats([{"testName": "CBC", "count": 3, "avgCompletionTime": "1.5 hours"}, {"count": 2}])
    assert [s.test_name for s in stats] == ["CBC"]
