from __future__ import annotations

import math
from typing import Iterator, Optional, Tuple

from data.formats.data_format import EGO_ID, PredictionSet, VehicleSnapshot


def iter_traffic(predictions: PredictionSet) -> Iterator[Tuple[int, VehicleSnapshot]]:
    """Yield (id, nearest-term snapshot) for every tracked non-ego vehicle."""
    for vehicle_id, forecast in predictions.items():
        if vehicle_id == EGO_ID or not forecast:
            continue
        yield vehicle_id, forecast[0]


def get_vehicle_ahead(
    predictions: PredictionSet,
    lane: int,
    ego: VehicleSnapshot,
    goal_s: float,
) -> Optional[VehicleSnapshot]:
    """Nearest vehicle in ``lane`` strictly ahead of the ego and before ``goal_s``."""
    min_s = goal_s
    found = None
    for _, other in iter_traffic(predictions):
        if other.lane == lane and ego.s < other.s < min_s:
            min_s = other.s
            found = other
    return found


def get_vehicle_behind(
    predictions: PredictionSet,
    lane: int,
    ego: VehicleSnapshot,
) -> Optional[VehicleSnapshot]:
    """Nearest vehicle in ``lane`` strictly behind the ego."""
    max_s = -math.inf
    found = None
    for _, other in iter_traffic(predictions):
        if other.lane == lane and max_s < other.s < ego.s:
            max_s = other.s
            found = other
    return found


def is_lane_occupied(predictions: PredictionSet, lane: int, s: float) -> bool:
    """True if a tracked vehicle sits exactly at ``s`` in ``lane``."""
    return any(other.lane == lane and other.s == s for _, other in iter_traffic(predictions))


def proximity_metric(terminal: VehicleSnapshot, other: VehicleSnapshot, lane_width: float) -> float:
    """
    Same-lane dominated proximity between two snapshots.

    Returns sqrt(ds^2 - dd^2) where ds is the longitudinal gap and dd the lateral
    lane offset. When dd exceeds ds the vehicles are laterally separated enough
    that there is no conflict, and the result is +inf rather than NaN.
    """
    ds = abs(terminal.s - other.s)
    dd = abs(terminal.lane - other.lane) * lane_width
    if dd > ds:
        return math.inf
    return math.sqrt(ds * ds - dd * dd)


def nearest_distance(
    terminal: VehicleSnapshot,
    predictions: PredictionSet,
    lane_width: float,
) -> float:
    """Minimum proximity metric over all tracked vehicles, +inf if none conflict."""
    nearest = math.inf
    for _, other in iter_traffic(predictions):
        nearest = min(nearest, proximity_metric(terminal, other, lane_width))
    return nearest


def lane_speed(predictions: PredictionSet, lane: int) -> Optional[float]:
    """
    Observed traffic speed in ``lane``.

    All traffic in a lane is assumed to move at the same speed, so any one
    vehicle in the lane is representative; the lowest id is used so the
    result does not depend on map ordering. Returns None for an empty lane.
    """
    in_lane = [(vehicle_id, other.v) for vehicle_id, other in iter_traffic(predictions)
               if other.lane == lane]
    if not in_lane:
        return None
    return min(in_lane)[1]
