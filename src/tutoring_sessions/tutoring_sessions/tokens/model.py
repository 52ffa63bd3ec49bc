from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..common.geo import Coordinate


@dataclass(frozen=True)
class ChildRef:
    """A child the parent allows check-ins for."""

    id: str
    full_name: str
    class_name: str


@dataclass(frozen=True)
class QRToken:
    """Short-lived credential issued by a parent and scanned by the teacher."""

    parent_id: str
    parent_name: str
    family_code: str
    children: tuple[ChildRef, ...]
    home_location: Coordinate
    issued_at: datetime
    expires_at: datetime

    def find_child(self, child_id: str) -> Optional[ChildRef]:
        for child in self.children:
            if child.id == child_id:
                return child
        return None


@dataclass(frozen=True)
class ParentProfile:
    """Read-model of the issuing family, as known by the parent-facing flow."""

    parent_id: str
    parent_name: str
    family_code: str
    children: tuple[ChildRef, ...]
    home_location: Coordinate
