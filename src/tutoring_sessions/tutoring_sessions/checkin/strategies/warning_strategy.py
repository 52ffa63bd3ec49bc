from __future__ import annotations

from ...core.enums import ProximityDecision
from ...sessions.anomalies import ProximityPolicy
from .base import ProximityResult, ProximityStrategy


class DistanceWarningStrategy(ProximityStrategy):
    """Between the warning band and the fraud radius; session gets flagged."""

    def decide(self, *, distance_m: float, policy: ProximityPolicy) -> ProximityResult:
        return ProximityResult(
            decision=ProximityDecision.WARNING,
            distance_m=distance_m,
            note=f"{round(distance_m)}m from home (warning above {round(policy.max_distance_m)}m)",
        )
