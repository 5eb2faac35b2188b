"""
Unit tests for tag derivation.
"""

from wellspend.services.tagging import derive_tags


def test_category_only_when_no_context():
    assert derive_tags({"amount": "5"}, "cloud") == ["cloud"]


def test_context_labels_follow_fixed_order():
    row = {
        "type": "compute",
        "vendor": "AWS",
        "department": "Engineering",
        "status": "active",
        "team": "platform",
    }
    assert derive_tags(row, "cloud") == [
        "cloud",
        "dept:Engineering",
        "team:platform",
        "status:active",
        "vendor:AWS",
        "type:compute",
    ]


def test_empty_and_missing_values_are_skipped():
    row = {"project": "  ", "service": None, "vendor": " GCP "}
    assert derive_tags(row, "cloud") == ["cloud", "vendor:GCP"]


def test_non_string_values_are_stringified():
    assert derive_tags({"project": 42}, "hr") == ["hr", "project:42"]
