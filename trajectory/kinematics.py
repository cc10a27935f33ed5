"""
Next-tick longitudinal kinematics for the ego vehicle in a given lane.
"""

from __future__ import annotations

import logging
from typing import Tuple

import numpy as np

from data.formats.data_format import PlannerConfig, PredictionSet, VehicleSnapshot
from trajectory.utils import get_vehicle_ahead, get_vehicle_behind

logger = logging.getLogger(__name__)


def solve_kinematics(
    predictions: PredictionSet,
    lane: int,
    ego: VehicleSnapshot,
    config: PlannerConfig,
) -> Tuple[float, float, float]:
    """
    Choose the highest feasible velocity for the next tick in ``lane``.

    Args:
        predictions: Tracked traffic forecasts.
        lane: Lane to solve for (current lane or a lane-change target).
        ego: Current ego snapshot.
        config: Planner tunables.

    Returns:
        (position, velocity, acceleration) after one timestep.
    """
    dt = config.timestep
    max_delta_v = config.max_acceleration * dt
    max_velocity_accel_limit = ego.v + max_delta_v

    vehicle_ahead = get_vehicle_ahead(predictions, lane, ego, config.goal_s)
    if vehicle_ahead is not None:
        vehicle_behind = get_vehicle_behind(predictions, lane, ego)
        if vehicle_behind is not None:
            # Boxed in: match the leader, speeding up would close the gap
            new_velocity = vehicle_ahead.v
        else:
            gap_velocity = (
                vehicle_ahead.v
                + (vehicle_ahead.s - ego.s - config.preferred_buffer) / dt
                - ego.a * dt
            )
            new_velocity = min(gap_velocity, max_velocity_accel_limit, config.target_speed)
    else:
        new_velocity = min(max_velocity_accel_limit, config.target_speed)

    new_velocity = float(np.clip(new_velocity, ego.v - max_delta_v, max_velocity_accel_limit))
    new_velocity = float(np.clip(new_velocity, 0.0, config.target_speed))

    new_accel = (new_velocity - ego.v) / dt
    new_accel = float(np.clip(new_accel, -config.max_acceleration, config.max_acceleration))
    new_position = ego.s + ego.v * dt + 0.5 * new_accel * dt * dt

    logger.debug(
        f"[KINEMATICS] lane={lane} ahead={vehicle_ahead is not None} "
        f"v={ego.v:.3f}->{new_velocity:.3f} a={new_accel:.3f} s={new_position:.3f}"
    )
    return new_position, new_velocity, new_accel
