from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import ProximityDecision
from ...sessions.anomalies import ProximityPolicy


@dataclass(frozen=True)
class ProximityResult:
    decision: ProximityDecision
    distance_m: float
    note: Optional[str] = None


class ProximityStrategy(ABC):
    """Strategy Pattern: encapsulate what a given distance from home means."""

    @abstractmethod
    def decide(self, *, distance_m: float, policy: ProximityPolicy) -> ProximityResult:
        raise NotImplementedError
