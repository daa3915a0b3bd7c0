"""
Field resolution for mapping rules.

A rule names the entry field it inspects. Plain names reach a fixed set
of entry attributes; names prefixed with ``metadata.`` reach into the
entry's JSON metadata bag. Lookups are case-insensitive and never raise:
anything unknown, absent or malformed resolves to None.
"""
from __future__ import annotations

import json
from typing import Any, Optional

METADATA_PREFIX = "metadata."

# Lower-cased rule field name → ImportedEntry attribute.
_ENTRY_FIELDS: dict[str, str] = {
    "useremail": "user_identifier",
    "user_email": "user_identifier",
    "useridentifier": "user_identifier",
    "user_identifier": "user_identifier",
    "projectkey": "project_key",
    "project_key": "project_key",
    "issuekey": "issue_key",
    "issue_key": "issue_key",
    "description": "description",
    "activity": "activity",
}

# Metadata values are text or null. Non-string JSON values keep their raw JSON text.
MetadataValue = Optional[str]


def _to_text(value: Any) -> MetadataValue:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def parse_metadata(metadata_json: Optional[str]) -> dict[str, MetadataValue]:
    """Decode a metadata bag into an ordered key → text mapping.

    Empty, unparsable, or non-object JSON yields an empty mapping.
    """
    if not metadata_json or not metadata_json.strip():
        return {}
    try:
        raw = json.loads(metadata_json)
    except ValueError:
        return {}
    if not isinstance(raw, dict):
        return {}
    return {str(key): _to_text(value) for key, value in raw.items()}


def dump_metadata(bag: dict[str, Any]) -> Optional[str]:
    """Serialize a metadata bag for storage; an empty bag is stored as NULL."""
    if not bag:
        return None
    return json.dumps(bag, ensure_ascii=False, default=str)


def resolve_metadata_field(key: str, metadata_json: Optional[str]) -> MetadataValue:
    bag = parse_metadata(metadata_json)
    if key in bag:
        return bag[key]
    folded = key.lower()
    for name, value in bag.items():
        if name.lower() == folded:
            return value
    return None


def resolve_field(field_name: str, entry: Any) -> Optional[str]:
    """Return the value of `field_name` on `entry`, or None when it has no value."""
    if not field_name:
        return None
    name = field_name.strip()
    if name.lower().startswith(METADATA_PREFIX):
        return resolve_metadata_field(name[len(METADATA_PREFIX):], entry.metadata_json)

    attribute = _ENTRY_FIELDS.get(name.lower())
    if attribute is None:
        return None
    return getattr(entry, attribute, None)
