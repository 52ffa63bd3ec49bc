from __future__ import annotations

import io
import logging
from datetime import datetime, timedelta
from typing import Protocol

import qrcode

from ..common.datetime_utils import now_utc
from ..core.constants import DEFAULT_TOKEN_VALIDITY_HOURS
from ..core.exceptions import ValidationError
from .model import ParentProfile, QRToken
from .parser import encode_token

logger = logging.getLogger(__name__)


class TokenIssuer(Protocol):
    def issue(self, parent: ParentProfile, *, now: datetime | None = None) -> QRToken:
        raise NotImplementedError


class ParentTokenIssuer:
    """Issues check-in tokens for a parent's registered home and children."""

    def __init__(self, *, validity_hours: int = DEFAULT_TOKEN_VALIDITY_HOURS):
        if int(validity_hours) <= 0:
            raise ValueError("validity_hours must be positive")
        self._validity = timedelta(hours=int(validity_hours))

    @property
    def validity(self) -> timedelta:
        return self._validity

    def issue(self, parent: ParentProfile, *, now: datetime | None = None) -> QRToken:
        if not parent.children:
            raise ValidationError("At least one child is required", {"children": "required"})
        now = now or now_utc()
        token = QRToken(
            parent_id=parent.parent_id,
            parent_name=parent.parent_name,
            family_code=parent.family_code,
            children=tuple(parent.children),
            home_location=parent.home_location,
            issued_at=now,
            expires_at=now + self._validity,
        )
        logger.info("Issued check-in token for parent %s (expires %s)", parent.parent_id, token.expires_at.isoformat())
        return token


def render_qr_png(token: QRToken) -> bytes:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(encode_token(token))
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
