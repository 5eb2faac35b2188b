"""
Tag derivation for data records

Tags are an ordered list of plain strings: the upload category first, then
one "key:value" label per contextual column present on the row.
"""
from typing import Any, List, Mapping

# (row column, label prefix), in output order
CONTEXT_FIELDS = (
    ("department", "dept"),
    ("team", "team"),
    ("project", "project"),
    ("status", "status"),
    ("service", "service"),
    ("vendor", "vendor"),
    ("type", "type"),
)


def derive_tags(row: Mapping[str, Any], category: str) -> List[str]:
    tags = [category]
    if not isinstance(row, Mapping):
        return tags

    for field, prefix in CONTEXT_FIELDS:
        value = row.get(field)
        if value is None:
            continue
        text = str(value).strip()
        if text:
            tags.append(f"{prefix}:{text}")
    return tags
