"""
Weighted cost evaluation for candidate maneuver trajectories.

Weights are separated by orders of magnitude to approximate a lexicographic
ordering: collision first, then reaching the goal lane, then lane efficiency.
The comfort terms (buffer, acceleration, jerk) default to zero weight.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from typing import Any, Callable, Dict, Tuple

from data.formats.data_format import (
    LANE_DIRECTION,
    PREPARE_STATES,
    PlannerConfig,
    PredictionSet,
    Trajectory,
    VehicleSnapshot,
)
from trajectory.utils import lane_speed, nearest_distance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CostWeights:
    """Weights applied to each cost term."""
    collision: float = 1e7
    reach_goal: float = 1e6
    efficiency: float = 1e5
    buffer: float = 0.0
    acceleration: float = 0.0
    jerk: float = 0.0

    @classmethod
    def from_dict(cls, section: Dict[str, Any]) -> "CostWeights":
        return cls(**{
            f.name: float(section[f.name])
            for f in fields(cls)
            if section.get(f.name) is not None
        })


@dataclass(frozen=True)
class TrajectoryData:
    """Values derived once per trajectory and shared by every cost term."""
    intended_lane: int
    final_lane: int
    distance_to_goal: float


CostFunction = Callable[
    [VehicleSnapshot, Trajectory, PredictionSet, TrajectoryData, PlannerConfig], float
]


def logistic(x: float) -> float:
    """
    Map x into (-1, 1): 0 at x=0, approaching 1 as x grows.

    Saturates to +/-1 for infinite input instead of overflowing.
    """
    if math.isinf(x):
        return 1.0 if x > 0 else -1.0
    return 2.0 / (1.0 + math.exp(-x)) - 1.0


def get_helper_data(trajectory: Trajectory, config: PlannerConfig) -> TrajectoryData:
    """
    intended_lane: the lane a prepare state is heading for, else the final lane.
    final_lane: the lane at the end of the trajectory.
    distance_to_goal: remaining s to the goal.

    Both lanes are kept so cost terms can tell planning a lane change apart
    from executing one.
    """
    last = trajectory[1]
    intended_lane = last.lane
    if last.state in PREPARE_STATES:
        intended_lane = last.lane + LANE_DIRECTION[last.state]
    return TrajectoryData(
        intended_lane=intended_lane,
        final_lane=last.lane,
        distance_to_goal=config.goal_s - last.s,
    )


def collision_cost(ego, trajectory, predictions, data, config) -> float:
    """Binary penalty when any tracked vehicle is inside the safety distance."""
    nearest = nearest_distance(trajectory[1], predictions, config.lane_width)
    if nearest < config.collision_distance:
        logger.debug(f"[COST] Collision risk: nearest={nearest:.2f}m")
        return 1.0
    return 0.0


def buffer_cost(ego, trajectory, predictions, data, config) -> float:
    """Penalty that grows as the gap to the nearest vehicle shrinks."""
    nearest = nearest_distance(trajectory[1], predictions, config.lane_width)
    if nearest <= 0.0:
        return 1.0
    return logistic(2.0 * config.vehicle_radius / nearest)


def goal_distance_cost(ego, trajectory, predictions, data, config) -> float:
    """
    Penalize intended/final lanes away from the goal lane.

    The penalty is magnified as the goal approaches and saturates at 1 once
    the goal is reached or passed.
    """
    distance = data.distance_to_goal
    if distance <= 0.0:
        return 1.0
    lane_mismatch = abs(2.0 * config.goal_lane - data.intended_lane - data.final_lane)
    return 1.0 - 2.0 * math.exp(-lane_mismatch / distance)


def inefficiency_cost(ego, trajectory, predictions, data, config) -> float:
    """Penalize intended/final lanes whose traffic moves below target speed."""
    speed_intended = lane_speed(predictions, data.intended_lane)
    if speed_intended is None:
        speed_intended = config.target_speed
    speed_final = lane_speed(predictions, data.final_lane)
    if speed_final is None:
        speed_final = config.target_speed
    return (2.0 * config.target_speed - speed_intended - speed_final) / config.target_speed


def max_accel_cost(ego, trajectory, predictions, data, config) -> float:
    return 1.0 if abs(trajectory[1].a) > config.max_acceleration else 0.0


def max_jerk_cost(ego, trajectory, predictions, data, config) -> float:
    jerk = (trajectory[1].a - trajectory[0].a) / config.timestep
    return 1.0 if jerk > config.max_jerk else 0.0


COST_TERMS: Tuple[Tuple[str, CostFunction], ...] = (
    ("efficiency", inefficiency_cost),
    ("reach_goal", goal_distance_cost),
    ("collision", collision_cost),
    ("buffer", buffer_cost),
    ("acceleration", max_accel_cost),
    ("jerk", max_jerk_cost),
)


def cost_breakdown(
    ego: VehicleSnapshot,
    predictions: PredictionSet,
    trajectory: Trajectory,
    config: PlannerConfig,
    weights: CostWeights,
) -> Dict[str, float]:
    """Weighted value of every cost term, keyed by weight name."""
    data = get_helper_data(trajectory, config)
    breakdown = {}
    for name, term in COST_TERMS:
        weight = getattr(weights, name)
        breakdown[name] = weight * term(ego, trajectory, predictions, data, config)
    return breakdown


def calculate_cost(
    ego: VehicleSnapshot,
    predictions: PredictionSet,
    trajectory: Trajectory,
    config: PlannerConfig,
    weights: CostWeights,
) -> float:
    """Sum of weighted cost terms for ``trajectory``, lower is better."""
    return sum(cost_breakdown(ego, predictions, trajectory, config, weights).values())
