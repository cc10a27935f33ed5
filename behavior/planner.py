"""
Behavior planner: picks the lowest-cost maneuver once per planning tick.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from behavior.cost import CostWeights, calculate_cost, cost_breakdown
from behavior.state_machine import successor_states
from data.formats.data_format import (
    ManeuverState,
    PlannerConfig,
    PredictionSet,
    Trajectory,
    VehicleSnapshot,
)
from trajectory.generator import constant_speed_trajectory, generate_trajectory

logger = logging.getLogger(__name__)

# Tie-break order when two candidates have exactly the same cost
STATE_PRIORITY = {
    ManeuverState.KEEP_LANE: 0,
    ManeuverState.PREPARE_LANE_CHANGE_LEFT: 1,
    ManeuverState.PREPARE_LANE_CHANGE_RIGHT: 2,
    ManeuverState.LANE_CHANGE_LEFT: 3,
    ManeuverState.LANE_CHANGE_RIGHT: 4,
    ManeuverState.CONSTANT_SPEED: 5,
}


class BehaviorPlanner:
    """
    Finite-state maneuver selector for one vehicle.

    Owns the vehicle's persistent snapshot. Each tick the caller passes fresh
    predictions to ``choose_next_state`` and commits the result with
    ``realize_next_state``.
    """

    def __init__(
        self,
        ego: VehicleSnapshot,
        config: Optional[PlannerConfig] = None,
        weights: Optional[CostWeights] = None,
    ) -> None:
        """
        Args:
            ego: Initial snapshot of the vehicle.
            config: Planner tunables. If None, ``configure`` must be called
                before the first planning call.
            weights: Cost weights (defaults to ``CostWeights()``).
        """
        self.ego = ego
        self.config = config
        self.weights = weights if weights is not None else CostWeights()

    def configure(self, goal_s: float, max_acceleration: float, goal_lane: int) -> PlannerConfig:
        """Set goal and acceleration limit before the first tick."""
        base = self.config if self.config is not None else PlannerConfig()
        self.config = replace(
            base,
            goal_s=float(goal_s),
            max_acceleration=float(max_acceleration),
            goal_lane=int(goal_lane),
        )
        logger.info(
            f"[PLANNER] Configured goal_s={self.config.goal_s:.1f} goal_lane={self.config.goal_lane} "
            f"max_acceleration={self.config.max_acceleration:.2f}"
        )
        return self.config

    def _require_config(self) -> PlannerConfig:
        if self.config is None:
            raise RuntimeError("BehaviorPlanner.configure() must be called before planning")
        return self.config

    def choose_next_state(self, predictions: PredictionSet) -> Trajectory:
        """
        Return the minimum-cost trajectory among the legal successor states.

        Infeasible (empty) candidates are dropped before scoring. If every
        candidate is infeasible the constant-speed trajectory is returned, so
        the result is never empty.
        """
        config = self._require_config()
        states = successor_states(self.ego.state, self.ego.lane, config.lanes_available)

        candidates: List[Tuple[float, int, ManeuverState, Trajectory]] = []
        for state in sorted(states, key=STATE_PRIORITY.__getitem__):
            trajectory = generate_trajectory(state, predictions, self.ego, config)
            if not trajectory:
                logger.debug(f"[PLANNER] {state.value} infeasible this tick")
                continue
            cost = calculate_cost(self.ego, predictions, trajectory, config, self.weights)
            if logger.isEnabledFor(logging.DEBUG):
                terms = cost_breakdown(self.ego, predictions, trajectory, config, self.weights)
                logger.debug(
                    f"[PLANNER] {state.value}: cost={cost:.4g} "
                    + " ".join(f"{name}={value:.4g}" for name, value in terms.items())
                )
            candidates.append((cost, STATE_PRIORITY[state], state, trajectory))

        if not candidates:
            logger.warning("[PLANNER] No feasible maneuver, falling back to constant speed")
            return constant_speed_trajectory(self.ego, config)

        cost, _, state, trajectory = min(candidates, key=lambda c: (c[0], c[1]))
        logger.debug(f"[PLANNER] Selected {state.value} (cost={cost:.4g}) from {len(candidates)} candidates")
        return trajectory

    def realize_next_state(self, trajectory: Trajectory) -> None:
        """Commit the trajectory's projected snapshot as the vehicle's new state."""
        if len(trajectory) != 2:
            raise ValueError(f"Expected a [current, projected] trajectory, got {len(trajectory)} points")
        next_state = trajectory[1]
        self.ego.state = next_state.state
        self.ego.lane = next_state.lane
        self.ego.s = next_state.s
        self.ego.v = next_state.v
        self.ego.a = next_state.a

    def step(self, predictions: PredictionSet) -> Trajectory:
        """Plan and commit one tick."""
        trajectory = self.choose_next_state(predictions)
        self.realize_next_state(trajectory)
        return trajectory

    def generate_predictions(self, horizon: int = 2) -> List[VehicleSnapshot]:
        """
        Forecast of this vehicle for other planners' prediction sets.

        Index 0 is the current tick; the vehicle holds its lane and speed,
        capped at target speed.
        """
        config = self._require_config()
        dt = config.timestep
        predictions = []
        for i in range(horizon):
            next_s = self.ego.position_at(i, dt)
            next_v = min((self.ego.position_at(i + 1, dt) - next_s) / dt, config.target_speed)
            predictions.append(VehicleSnapshot(self.ego.lane, next_s, next_v, 0.0, self.ego.state))
        return predictions

    def increment(self, t: int = 1) -> None:
        """Advance the vehicle ``t`` ticks at its current speed (used for traffic)."""
        config = self._require_config()
        self.ego.s = self.ego.position_at(t, config.timestep)


def build_behavior_planner(planner_cfg: Dict[str, Any]) -> BehaviorPlanner:
    """Build a BehaviorPlanner from the ``planner`` config section."""
    config = PlannerConfig.from_dict(planner_cfg)
    weights = CostWeights.from_dict(planner_cfg.get("cost_weights", {}) or {})

    ego_cfg = planner_cfg.get("ego", {}) or {}
    lane = int(ego_cfg.get("lane", config.goal_lane))
    if not 0 <= lane < config.lanes_available:
        raise ValueError(f"ego lane {lane} outside [0, {config.lanes_available})")
    ego = VehicleSnapshot(
        lane=lane,
        s=float(ego_cfg.get("s", 0.0)),
        v=float(ego_cfg.get("v", 0.0)),
        a=float(ego_cfg.get("a", 0.0)),
        state=ManeuverState(ego_cfg.get("state", ManeuverState.KEEP_LANE.value)),
    )
    return BehaviorPlanner(ego, config=config, weights=weights)
