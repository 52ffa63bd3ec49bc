from __future__ import annotations

from ...core.enums import ProximityDecision
from ...sessions.anomalies import ProximityPolicy
from .base import ProximityResult, ProximityStrategy


class AtHomeStrategy(ProximityStrategy):
    """Within the warning band: nothing to report."""

    def decide(self, *, distance_m: float, policy: ProximityPolicy) -> ProximityResult:
        return ProximityResult(decision=ProximityDecision.OK, distance_m=distance_m)
