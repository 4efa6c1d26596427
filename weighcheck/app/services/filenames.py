"""
Evidence filename derivation.

Object names are derived from the receipt number so evidence can be
found in storage without the database:

    derive_name("JT/123:ABC", 1, "jpg") -> "JT_123_ABC_foto1.jpg"
"""

import re
from typing import Dict, List, Optional
from urllib.parse import unquote, urlparse

from weighcheck.app.core.exceptions import ValidationError

EVIDENCE_SLOTS = (1, 2)
MAX_STEM_LENGTH = 50

_INVALID_CHARS = re.compile(r'[/\\:*?"<>|]')
_SLOT_SUFFIX = re.compile(r"^(?P<stem>.+)_foto(?P<slot>[12])$")


def sanitize_receipt(receipt_number: str) -> str:
    """Replace filesystem-hostile characters and cap the length."""
    return _INVALID_CHARS.sub("_", receipt_number)[:MAX_STEM_LENGTH]


def derive_name(receipt_number: str, slot: int, extension: str) -> str:
    """
    Build the storage object name for one evidence photo.

    Raises:
        ValidationError: empty receipt number or slot outside {1, 2}
    """
    if not receipt_number or not receipt_number.strip():
        raise ValidationError(
            "Receipt number is required to name evidence",
            details={"field": "receipt_number"},
        )
    if slot not in EVIDENCE_SLOTS:
        raise ValidationError(
            f"Evidence slot must be 1 or 2, got {slot}",
            details={"field": "slot", "value": slot},
        )

    ext = extension.lstrip(".").lower()
    return f"{sanitize_receipt(receipt_number)}_foto{slot}.{ext}"


def _stem_from_url(url: str) -> Optional[str]:
    path = unquote(urlparse(url).path)
    filename = path.rsplit("/", 1)[-1]
    if not filename:
        return None
    return filename.rsplit(".", 1)[0]


def find_stale_slots(receipt_number: str, photo_urls: Dict[int, Optional[str]]) -> List[int]:
    """
    Slots whose evidence was named after a different receipt number.

    Happens when the worker edits the receipt after uploading a photo.
    URLs that do not follow the ``*_foto{slot}`` naming are not judged.
    """
    expected = sanitize_receipt(receipt_number.strip()) if receipt_number else ""
    stale = []
    for slot in sorted(photo_urls):
        url = photo_urls[slot]
        if not url:
            continue
        stem = _stem_from_url(url)
        match = _SLOT_SUFFIX.match(stem or "")
        if match is None:
            continue
        if match.group("stem") != expected or int(match.group("slot")) != slot:
            stale.append(slot)
    return stale
