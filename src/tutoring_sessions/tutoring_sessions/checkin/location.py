from __future__ import annotations

import math
from datetime import datetime
from typing import Callable, Optional, Protocol

from ..common.datetime_utils import now_utc, parse_iso_datetime
from ..core.exceptions import LocationUnavailable
from ..sessions.model import LocationFix


class LocationProvider(Protocol):
    def current_fix(self) -> LocationFix:
        """Return the device position or raise LocationUnavailable."""

        raise NotImplementedError


class ReportedLocationProvider:
    """Location reported by the device alongside the check-in request."""

    def __init__(self, reported: Optional[dict], *, clock: Callable[[], datetime] = now_utc):
        self._reported = reported
        self._clock = clock

    def current_fix(self) -> LocationFix:
        data = self._reported
        if not isinstance(data, dict):
            raise LocationUnavailable("Device did not report a position")
        try:
            latitude = float(data["latitude"])
            longitude = float(data["longitude"])
            accuracy = float(data.get("accuracy") or 0.0)
            ts = data.get("timestamp")
            timestamp = parse_iso_datetime(ts) if ts else self._clock()
        except (KeyError, TypeError, ValueError) as e:
            raise LocationUnavailable(f"Unreadable device position: {e}") from e
        return LocationFix(latitude=latitude, longitude=longitude, accuracy=accuracy, timestamp=timestamp)


def ensure_usable(fix: Optional[LocationFix]) -> LocationFix:
    if fix is None:
        raise LocationUnavailable("No position available")
    if not (math.isfinite(fix.latitude) and math.isfinite(fix.longitude)):
        raise LocationUnavailable("Position is not a valid coordinate")
    if not (-90.0 <= fix.latitude <= 90.0 and -180.0 <= fix.longitude <= 180.0):
        raise LocationUnavailable("Position is out of range")
    return fix
