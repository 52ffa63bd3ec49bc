from __future__ import annotations

from typing import Optional

from ..common.geo import Coordinate, distance_meters
from ..sessions.anomalies import ProximityPolicy
from ..tokens.model import QRToken
from .factory import ProximityStrategyFactory
from .strategies.base import ProximityResult


def evaluate_proximity(
    token: QRToken,
    location: Coordinate,
    policy: ProximityPolicy,
    *,
    factory: Optional[ProximityStrategyFactory] = None,
) -> ProximityResult:
    distance = distance_meters(location, token.home_location)
    strategy = (factory or ProximityStrategyFactory()).for_distance(distance_m=distance, policy=policy)
    return strategy.decide(distance_m=distance, policy=policy)
