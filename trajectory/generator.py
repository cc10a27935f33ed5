"""
Two-point trajectory generation for each maneuver state.
"""

from __future__ import annotations

import logging

from data.formats.data_format import (
    LANE_CHANGE_STATES,
    LANE_DIRECTION,
    PREPARE_STATES,
    ManeuverState,
    PlannerConfig,
    PredictionSet,
    Trajectory,
    VehicleSnapshot,
)
from trajectory.kinematics import solve_kinematics
from trajectory.utils import get_vehicle_behind, is_lane_occupied

logger = logging.getLogger(__name__)


def generate_trajectory(
    state: ManeuverState,
    predictions: PredictionSet,
    ego: VehicleSnapshot,
    config: PlannerConfig,
) -> Trajectory:
    """
    Build the trajectory that realizes ``state`` on the next tick.

    Returns an empty list when the maneuver is not possible this tick.
    """
    if state is ManeuverState.CONSTANT_SPEED:
        return constant_speed_trajectory(ego, config)
    if state is ManeuverState.KEEP_LANE:
        return keep_lane_trajectory(predictions, ego, config)
    if state in PREPARE_STATES:
        return prep_lane_change_trajectory(state, predictions, ego, config)
    if state in LANE_CHANGE_STATES:
        return lane_change_trajectory(state, predictions, ego, config)
    raise ValueError(f"Unknown maneuver state: {state!r}")


def constant_speed_trajectory(ego: VehicleSnapshot, config: PlannerConfig) -> Trajectory:
    """Dead-reckon one tick ahead without changing lane or speed."""
    next_s = ego.position_at(1, config.timestep)
    return [ego.copy(), ego.copy(s=next_s, a=0.0)]


def keep_lane_trajectory(
    predictions: PredictionSet,
    ego: VehicleSnapshot,
    config: PlannerConfig,
) -> Trajectory:
    new_s, new_v, new_a = solve_kinematics(predictions, ego.lane, ego, config)
    return [
        ego.copy(),
        VehicleSnapshot(ego.lane, new_s, new_v, new_a, ManeuverState.KEEP_LANE),
    ]


def prep_lane_change_trajectory(
    state: ManeuverState,
    predictions: PredictionSet,
    ego: VehicleSnapshot,
    config: PlannerConfig,
) -> Trajectory:
    """
    Match speed for an upcoming lane change while staying in the current lane.

    With a follower in the current lane the current-lane kinematics are kept so
    the follower is not provoked. Otherwise the slower of the current-lane and
    target-lane solutions is taken, anticipating the merge.
    """
    target_lane = ego.lane + LANE_DIRECTION[state]
    best = solve_kinematics(predictions, ego.lane, ego, config)

    if get_vehicle_behind(predictions, ego.lane, ego) is None and _lane_exists(target_lane, config):
        target_lane_kinematics = solve_kinematics(predictions, target_lane, ego, config)
        if target_lane_kinematics[1] < best[1]:
            best = target_lane_kinematics

    new_s, new_v, new_a = best
    return [ego.copy(), VehicleSnapshot(ego.lane, new_s, new_v, new_a, state)]


def lane_change_trajectory(
    state: ManeuverState,
    predictions: PredictionSet,
    ego: VehicleSnapshot,
    config: PlannerConfig,
) -> Trajectory:
    """Move into the adjacent lane, or return [] if the gap beside us is taken."""
    target_lane = ego.lane + LANE_DIRECTION[state]
    if not _lane_exists(target_lane, config):
        return []
    if is_lane_occupied(predictions, target_lane, ego.s):
        logger.debug(f"[TRAJECTORY] {state.value} blocked: lane {target_lane} occupied at s={ego.s:.2f}")
        return []

    new_s, new_v, new_a = solve_kinematics(predictions, target_lane, ego, config)
    return [ego.copy(), VehicleSnapshot(target_lane, new_s, new_v, new_a, state)]


def _lane_exists(lane: int, config: PlannerConfig) -> bool:
    return 0 <= lane < config.lanes_available
