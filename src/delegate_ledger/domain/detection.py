"""Decide whether ledger content is a delegate pointer and extract its metadata.

Rules are tried in order and the first match wins:

1. the whole body is a JSON object tagged ``p == "ord-20"`` and ``op == "delegate"``;
2. the body is markup carrying that JSON inside ``<script id="delegate-metadata">``;
3. the raw text contains a known catalog reference id, either quoted or as a
   ``/content/<id>`` path. This only yields the reference id; when several known
   ids appear, the one mentioned first wins.

Rule 3 can produce false positives. That is tolerable because a detection only
leads to a lookup; acceptance is always decided against the catalog.
"""

from __future__ import annotations

import json
import re
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final, cast

from delegate_ledger.domain.model import DelegateMetadata, DetectionSource

if TYPE_CHECKING:
    from collections.abc import Iterable

    from delegate_ledger.domain.model import CatalogEntry

log = getLogger(__name__)

PROTOCOL_TAG: Final[str] = "ord-20"
DELEGATE_OP: Final[str] = "delegate"
EMBEDDED_BLOCK_ID: Final[str] = "delegate-metadata"

_EMBEDDED_BLOCK = re.compile(
    r"<script[^>]*\bid\s*=\s*[\"']" + EMBEDDED_BLOCK_ID + r"[\"'][^>]*>([\s\S]*?)</script>",
    re.IGNORECASE,
)
# prefix and suffix around a reference id in rule 3
_REFERENCE_FRAMES: Final = (("content/", ""), ('"', '"'), ("'", "'"))


def _as_text(content: bytes | str) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return content


def _optional_str(payload: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def parse_structured(text: str, *, source: DetectionSource) -> DelegateMetadata | None:
    try:
        loaded = json.loads(text)
    except ValueError:
        return None
    if not isinstance(loaded, dict):
        return None
    payload = cast(dict[str, Any], loaded)
    if payload.get("p") != PROTOCOL_TAG or payload.get("op") != DELEGATE_OP:
        return None

    reference_id = _optional_str(payload, "originalInscriptionId", "referenceId")
    if reference_id is None:
        log.debug("Delegate payload without original reference ignored")
        return None
    return DelegateMetadata(
        reference_id=reference_id,
        source=source,
        catalog_id=_optional_str(payload, "cardId", "catalogId"),
        display_name=_optional_str(payload, "name"),
        rarity_tier=_optional_str(payload, "rarity"),
        asset_class=_optional_str(payload, "cardType"),
        project_id=_optional_str(payload, "projectId"),
    )


def _first_position(text: str, reference_id: str) -> int | None:
    positions = [
        index + len(prefix)
        for prefix, suffix in _REFERENCE_FRAMES
        if (index := text.find(f"{prefix}{reference_id}{suffix}")) >= 0
    ]
    return min(positions) if positions else None


def _scan_for_reference(text: str, known_references: Iterable[str]) -> str | None:
    """Known reference mentioned earliest in ``text``; the longer id wins a tie."""

    best: tuple[int, int, str] | None = None
    for reference_id in known_references:
        if not reference_id:
            continue
        position = _first_position(text, reference_id)
        if position is None:
            continue
        candidate = (position, -len(reference_id), reference_id)
        if best is None or candidate < best:
            best = candidate
    return best[2] if best is not None else None


def detect_delegate(
    content: bytes | str,
    known_references: Iterable[str] = (),
) -> DelegateMetadata | None:
    """Return delegate metadata for ``content`` or ``None`` if it is not a delegate."""

    text = _as_text(content).strip()
    if not text:
        return None

    structured = parse_structured(text, source=DetectionSource.STRUCTURED)
    if structured is not None:
        return structured

    block = _EMBEDDED_BLOCK.search(text)
    if block is not None:
        embedded = parse_structured(block.group(1).strip(), source=DetectionSource.EMBEDDED)
        if embedded is not None:
            return embedded

    reference_id = _scan_for_reference(text, known_references)
    if reference_id is not None:
        return DelegateMetadata(reference_id=reference_id, source=DetectionSource.REFERENCE_SCAN)
    return None


def build_delegate_content(entry: CatalogEntry) -> str:
    """Render the structured payload inscribed for a new delegate of ``entry``."""

    payload = {
        "p": PROTOCOL_TAG,
        "op": DELEGATE_OP,
        "cardId": entry.id,
        "name": entry.display_name,
        "rarity": entry.rarity_tier,
        "originalInscriptionId": entry.reference_id,
        "cardType": entry.asset_class,
        "projectId": entry.project_id,
    }
    return json.dumps(payload, separators=(",", ":"))
