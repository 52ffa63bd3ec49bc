from __future__ import annotations

import math
from dataclasses import dataclass

from ..sessions.anomalies import ProximityPolicy
from .strategies.at_home_strategy import AtHomeStrategy
from .strategies.base import ProximityStrategy
from .strategies.fraud_strategy import FraudStrategy
from .strategies.warning_strategy import DistanceWarningStrategy


@dataclass
class ProximityStrategyFactory:
    """Factory Pattern: choose the proximity strategy from the distance band."""

    def for_distance(self, *, distance_m: float, policy: ProximityPolicy) -> ProximityStrategy:
        # A NaN distance cannot prove presence at home.
        if math.isnan(distance_m) or distance_m > policy.fraud_radius_m:
            return FraudStrategy()
        if distance_m > policy.max_distance_m:
            return DistanceWarningStrategy()
        return AtHomeStrategy()
