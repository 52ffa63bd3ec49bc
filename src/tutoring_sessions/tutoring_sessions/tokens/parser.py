from __future__ import annotations

import json
import math
from datetime import datetime, timedelta
from typing import Any

from ..common.datetime_utils import format_iso_datetime, parse_iso_datetime
from ..common.geo import Coordinate
from ..common.validators import require_number, require_text
from ..core.exceptions import ExpiredToken, InvalidToken
from .model import ChildRef, QRToken


def parse_token(raw: str | bytes) -> QRToken:
    """Parse a scanned QR payload (JSON) into a token.

    Raises InvalidToken for anything that does not describe a usable token.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise InvalidToken("QR code is not a valid token") from e
    if not isinstance(data, dict):
        raise InvalidToken("QR code is not a valid token")

    try:
        return _token_from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidToken(f"QR code is not a valid token: {e}") from e


def _token_from_dict(data: dict[str, Any]) -> QRToken:
    raw_children = data.get("children")
    if not isinstance(raw_children, list) or not raw_children:
        raise ValueError("children must be a non-empty list")
    children = []
    for c in raw_children:
        if not isinstance(c, dict):
            raise ValueError("children entries must be objects")
        children.append(
            ChildRef(
                id=require_text(c, "id"),
                full_name=require_text(c, "fullName"),
                class_name=str(c.get("className") or "").strip(),
            )
        )

    home = data.get("homeLocation")
    if not isinstance(home, dict):
        raise ValueError("homeLocation must be an object")
    latitude = require_number(home, "latitude")
    longitude = require_number(home, "longitude")
    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise ValueError("homeLocation must be finite")

    issued_raw = data.get("issuedAt") or data.get("generatedAt")
    if not isinstance(issued_raw, str):
        raise ValueError("issuedAt must be an ISO timestamp")
    issued_at = parse_iso_datetime(issued_raw)
    expires_at = parse_iso_datetime(require_text(data, "expiresAt"))
    if expires_at <= issued_at:
        raise ValueError("expiresAt must be after issuedAt")

    return QRToken(
        parent_id=require_text(data, "parentId"),
        parent_name=require_text(data, "parentName"),
        family_code=str(data.get("familyCode") or "").strip(),
        children=tuple(children),
        home_location=Coordinate(latitude=latitude, longitude=longitude),
        issued_at=issued_at,
        expires_at=expires_at,
    )


def ensure_fresh(token: QRToken, *, now: datetime, validity: timedelta) -> None:
    if now > token.expires_at:
        raise ExpiredToken("QR code expired")
    if now - token.issued_at > validity:
        raise ExpiredToken("QR code is older than its validity window")


def token_to_dict(token: QRToken) -> dict:
    """Wire shape of a token (also used for the snapshot stored with a session)."""
    return {
        "parentId": token.parent_id,
        "parentName": token.parent_name,
        "familyCode": token.family_code,
        "children": [
            {"id": c.id, "fullName": c.full_name, "className": c.class_name} for c in token.children
        ],
        "homeLocation": {
            "latitude": token.home_location.latitude,
            "longitude": token.home_location.longitude,
        },
        "issuedAt": format_iso_datetime(token.issued_at),
        "expiresAt": format_iso_datetime(token.expires_at),
    }


def encode_token(token: QRToken) -> str:
    return json.dumps(token_to_dict(token), ensure_ascii=False, separators=(",", ":"))
