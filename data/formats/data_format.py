"""
Data format definitions for the behavior planner.
"""

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Dict, List


class ManeuverState(Enum):
    """Maneuver tags of the behavior finite-state machine."""
    CONSTANT_SPEED = "CS"
    KEEP_LANE = "KL"
    PREPARE_LANE_CHANGE_LEFT = "PLCL"
    PREPARE_LANE_CHANGE_RIGHT = "PLCR"
    LANE_CHANGE_LEFT = "LCL"
    LANE_CHANGE_RIGHT = "LCR"


# Right increases the lane index, left decreases it.
LANE_DIRECTION: Dict[ManeuverState, int] = {
    ManeuverState.PREPARE_LANE_CHANGE_LEFT: -1,
    ManeuverState.LANE_CHANGE_LEFT: -1,
    ManeuverState.PREPARE_LANE_CHANGE_RIGHT: 1,
    ManeuverState.LANE_CHANGE_RIGHT: 1,
}

PREPARE_STATES = (
    ManeuverState.PREPARE_LANE_CHANGE_LEFT,
    ManeuverState.PREPARE_LANE_CHANGE_RIGHT,
)
LANE_CHANGE_STATES = (
    ManeuverState.LANE_CHANGE_LEFT,
    ManeuverState.LANE_CHANGE_RIGHT,
)

# Prediction key reserved for the ego vehicle's own forecast
EGO_ID = -1

MPH_TO_MPS = 1.0 / 2.24


@dataclass
class VehicleSnapshot:
    """One vehicle (ego or traffic) at one instant."""
    lane: int
    s: float  # Longitudinal position along the road (m)
    v: float  # Longitudinal velocity (m/s)
    a: float = 0.0  # Longitudinal acceleration (m/s^2)
    state: ManeuverState = ManeuverState.CONSTANT_SPEED  # Only meaningful for the ego

    def position_at(self, t: float, dt: float) -> float:
        """Dead-reckoned position after ``t`` ticks of length ``dt``."""
        elapsed = t * dt
        return self.s + self.v * elapsed + 0.5 * self.a * elapsed * elapsed

    def copy(self, **changes: Any) -> "VehicleSnapshot":
        return replace(self, **changes)


# [current, projected] when feasible, [] when the maneuver is impossible this tick
Trajectory = List[VehicleSnapshot]

# Participant id -> predicted snapshots, index 0 is the nearest-term prediction
PredictionSet = Dict[int, List[VehicleSnapshot]]


@dataclass(frozen=True)
class PlannerConfig:
    """Planner tunables, fixed once configured."""
    target_speed: float = 49.5 * MPH_TO_MPS  # m/s
    lanes_available: int = 3
    goal_s: float = 6945.554  # m, one lap of the highway track
    goal_lane: int = 1
    max_acceleration: float = 9.0  # m/s^2
    max_jerk: float = 10.0  # m/s^3
    preferred_buffer: float = 10.0  # m, impacts "keep lane" behavior
    timestep: float = 0.02  # s
    lane_width: float = 4.0  # m
    collision_distance: float = 20.0  # m
    vehicle_radius: float = 1.5  # m

    def __post_init__(self) -> None:
        if self.lanes_available < 1:
            raise ValueError(f"lanes_available must be >= 1, got {self.lanes_available}")
        if not 0 <= self.goal_lane < self.lanes_available:
            raise ValueError(
                f"goal_lane {self.goal_lane} outside [0, {self.lanes_available})"
            )
        if self.timestep <= 0.0:
            raise ValueError(f"timestep must be positive, got {self.timestep}")

    @classmethod
    def from_dict(cls, section: Dict[str, Any]) -> "PlannerConfig":
        """Build from a config section, ignoring keys that are not tunables."""
        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            if f.name in section and section[f.name] is not None:
                caster = int if f.name in ("lanes_available", "goal_lane") else float
                kwargs[f.name] = caster(section[f.name])
        return cls(**kwargs)
