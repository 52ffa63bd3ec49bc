from __future__ import annotations

from ...core.enums import ProximityDecision
from ...sessions.anomalies import ProximityPolicy
from .base import ProximityResult, ProximityStrategy


class FraudStrategy(ProximityStrategy):
    """Outside the fraud radius. Also used when the distance is not a number."""

    def decide(self, *, distance_m: float, policy: ProximityPolicy) -> ProximityResult:
        return ProximityResult(
            decision=ProximityDecision.FRAUD_BLOCKED,
            distance_m=distance_m,
            note=f"Not at the registered home ({distance_m:.0f}m > {policy.fraud_radius_m:.0f}m)",
        )
