"""
Payload classification and record normalization for history sources.

The upstream mirrors disagree on both shape and vocabulary, so every payload
is first classified as valid, empty or malformed before any field access,
and every raw entry is then reduced to a VersionRecord through one shared
alias table.
"""

from collections.abc import Iterable
from typing import Any

import requests

from .data_models import ClassifiedPayload, PayloadKind, VersionRecord

# Ordered by preference: the first alias holding a usable value wins
VERSION_FIELDS = ("bundle_version", "version", "Version")
VERSION_ID_FIELDS = ("external_identifier", "versionid", "versionId")


def decode_json(response: requests.Response) -> ClassifiedPayload:
    """
    Decode a response body, classifying undecodable bodies as malformed.

    Returns:
        VALID payload carrying the decoded value, or MALFORMED
    """
    try:
        data = response.json()
    except ValueError as e:
        return ClassifiedPayload(PayloadKind.MALFORMED, reason=f"invalid JSON: {e}")
    return ClassifiedPayload(PayloadKind.VALID, data=data)


def classify_payload(
    data: Any, key: str | None = None, expect: type = list
) -> ClassifiedPayload:
    """
    Classify a decoded payload before reading fields from it.

    Args:
        data: Decoded JSON value
        key: When set, the payload must be an object and the value under
            this key is classified instead
        expect: Container type the (possibly nested) value must have

    Returns:
        VALID with the extracted value, EMPTY when the value is missing or
        an empty container, MALFORMED when the shape is wrong
    """
    if key is not None:
        if not isinstance(data, dict):
            return ClassifiedPayload(
                PayloadKind.MALFORMED,
                reason=f"expected an object holding '{key}', got {type(data).__name__}",
            )
        data = data.get(key)
        if data is None:
            return ClassifiedPayload(PayloadKind.EMPTY, reason=f"'{key}' missing")

    if not isinstance(data, expect):
        return ClassifiedPayload(
            PayloadKind.MALFORMED,
            reason=f"expected {expect.__name__}, got {type(data).__name__}",
        )

    if not data:
        return ClassifiedPayload(PayloadKind.EMPTY, data=data, reason="no entries")

    return ClassifiedPayload(PayloadKind.VALID, data=data)


def _first_present(item: dict[str, Any], fields: Iterable[str]) -> str | None:
    for field_name in fields:
        value = item.get(field_name)
        if value is None or isinstance(value, (dict, list, bool)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def normalize_record(item: Any) -> VersionRecord | None:
    """Build a VersionRecord from one raw entry, or None if it is unusable."""
    if not isinstance(item, dict):
        return None

    version = _first_present(item, VERSION_FIELDS)
    version_id = _first_present(item, VERSION_ID_FIELDS)
    if not version or not version_id:
        return None

    return VersionRecord(version=version, version_id=version_id)


def normalize_records(entries: Any) -> tuple[VersionRecord, ...]:
    """
    Normalize a raw list of history entries.

    Entries without both a version label and a version identifier are
    dropped silently. A non-list input yields no records.
    """
    if not isinstance(entries, list):
        return ()

    records = []
    for item in entries:
        record = normalize_record(item)
        if record is not None:
            records.append(record)
    return tuple(records)
