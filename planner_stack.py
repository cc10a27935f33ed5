"""
Highway behavior planning integration script.
Runs an ego behavior planner against simulated traffic, one tick at a time.
"""

import math
import sys
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import yaml

# Add paths
sys.path.insert(0, str(Path(__file__).parent))

from behavior.planner import BehaviorPlanner, build_behavior_planner
from data.formats.data_format import (
    LANE_CHANGE_STATES,
    ManeuverState,
    PredictionSet,
    VehicleSnapshot,
)
from trajectory.utils import nearest_distance

# Configure logging
# Ensure tmp/logs directory exists
log_dir = Path(__file__).parent / 'tmp' / 'logs'
log_dir.mkdir(parents=True, exist_ok=True)
log_file = log_dir / 'planner_stack.log'

logging.basicConfig(
    level=logging.WARNING,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(str(log_file))
    ]
)
logger = logging.getLogger(__name__)


def load_config(config_path: Optional[str] = None) -> dict:
    """Load configuration from YAML file or use defaults."""
    if config_path is None:
        config_path = Path(__file__).parent / "config" / "planner_config.yaml"
    else:
        config_path = Path(config_path)

    if config_path.exists():
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f) or {}
        logger.info(f"Loaded configuration from {config_path}")
        return config
    else:
        logger.warning(f"Config file not found at {config_path}, using defaults")
        return {}


@dataclass
class SimulationSummary:
    """Result of a simulation run."""
    ticks: int
    final_ego: VehicleSnapshot
    lane_changes: int
    min_nearest_distance: float
    reached_goal: bool


def build_traffic(traffic_cfg: dict, ego_planner: BehaviorPlanner) -> Dict[int, BehaviorPlanner]:
    """
    Create one independent constant-speed planner per traffic vehicle.

    Vehicles come from the explicit ``vehicles`` list followed by ``random.count``
    randomly spaced vehicles drawn with a seeded generator.
    """
    config = ego_planner.config
    vehicles: List[VehicleSnapshot] = []
    for entry in traffic_cfg.get("vehicles", []) or []:
        vehicles.append(VehicleSnapshot(
            lane=int(entry["lane"]),
            s=float(entry["s"]),
            v=float(entry.get("v", 0.0)),
            a=0.0,
            state=ManeuverState.CONSTANT_SPEED,
        ))

    random_cfg = traffic_cfg.get("random", {}) or {}
    count = int(random_cfg.get("count", 0))
    if count > 0:
        rng = np.random.default_rng(random_cfg.get("seed"))
        speed_min = float(random_cfg.get("speed_min", 0.5 * config.target_speed))
        speed_max = float(random_cfg.get("speed_max", config.target_speed))
        spacing_min = float(random_cfg.get("spacing_min", 30.0))
        spacing_max = float(random_cfg.get("spacing_max", 80.0))
        next_s = np.full(config.lanes_available, ego_planner.ego.s)
        for _ in range(count):
            lane = int(rng.integers(0, config.lanes_available))
            next_s[lane] += rng.uniform(spacing_min, spacing_max)
            vehicles.append(VehicleSnapshot(
                lane=lane,
                s=float(next_s[lane]),
                v=float(rng.uniform(speed_min, speed_max)),
                a=0.0,
                state=ManeuverState.CONSTANT_SPEED,
            ))

    traffic = {}
    for vehicle_id, snapshot in enumerate(vehicles):
        if not 0 <= snapshot.lane < config.lanes_available:
            raise ValueError(f"traffic vehicle {vehicle_id} lane {snapshot.lane} is off the road")
        traffic[vehicle_id] = BehaviorPlanner(snapshot, config=config)
    return traffic


class HighwaySimulation:
    """Ego behavior planner driving among independently simulated traffic."""

    def __init__(self, config: Optional[dict] = None, config_path: Optional[str] = None):
        """
        Args:
            config: Already loaded configuration dictionary.
            config_path: YAML file to load when ``config`` is not given.
        """
        if config is None:
            config = load_config(config_path)
        self.config = config

        self.ego_planner = build_behavior_planner(config.get("planner", {}) or {})
        self.traffic = build_traffic(config.get("traffic", {}) or {}, self.ego_planner)

        sim_cfg = config.get("simulation", {}) or {}
        self.max_ticks = int(sim_cfg.get("max_ticks", 3000))
        self.prediction_horizon = int(sim_cfg.get("prediction_horizon", 2))
        self.tick = 0

    def predictions(self) -> PredictionSet:
        return {
            vehicle_id: planner.generate_predictions(self.prediction_horizon)
            for vehicle_id, planner in self.traffic.items()
        }

    def step(self) -> VehicleSnapshot:
        """Plan and commit one ego tick, then advance the traffic."""
        predictions = self.predictions()
        self.ego_planner.step(predictions)
        for planner in self.traffic.values():
            planner.increment()
        self.tick += 1
        ego = self.ego_planner.ego
        logger.info(
            f"[SIM] tick={self.tick} state={ego.state.value} lane={ego.lane} "
            f"s={ego.s:.2f} v={ego.v:.2f} a={ego.a:.2f}"
        )
        return ego

    def run(self, max_ticks: Optional[int] = None) -> SimulationSummary:
        """Run until the ego reaches the goal or the tick limit."""
        limit = self.max_ticks if max_ticks is None else int(max_ticks)
        goal_s = self.ego_planner.config.goal_s
        lane_width = self.ego_planner.config.lane_width
        lane_changes = 0
        min_nearest = math.inf

        while self.tick < limit and self.ego_planner.ego.s < goal_s:
            ego = self.step()
            if ego.state in LANE_CHANGE_STATES:
                lane_changes += 1
            min_nearest = min(min_nearest, nearest_distance(ego, self.predictions(), lane_width))

        ego = self.ego_planner.ego
        summary = SimulationSummary(
            ticks=self.tick,
            final_ego=ego.copy(),
            lane_changes=lane_changes,
            min_nearest_distance=min_nearest,
            reached_goal=ego.s >= goal_s,
        )
        logger.info(
            f"[SIM] Finished after {summary.ticks} ticks: lane={ego.lane} s={ego.s:.1f} "
            f"lane_changes={lane_changes} reached_goal={summary.reached_goal}"
        )
        return summary


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='Run highway behavior planner simulation')
    parser.add_argument('--config', type=str, default=None,
                       help='Path to configuration YAML file (default: config/planner_config.yaml)')
    parser.add_argument('--max_ticks', type=int, default=None,
                       help='Maximum number of planning ticks')
    parser.add_argument('--seed', type=int, default=None,
                       help='Seed for random traffic (overrides traffic.random.seed)')
    parser.add_argument('--log_level', type=str, default='INFO',
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       help='Logging level')

    args = parser.parse_args()
    logging.getLogger().setLevel(getattr(logging, args.log_level))

    config = load_config(args.config)
    if args.seed is not None:
        config.setdefault('traffic', {}).setdefault('random', {})['seed'] = args.seed

    simulation = HighwaySimulation(config=config)
    summary = simulation.run(max_ticks=args.max_ticks)
    ego = summary.final_ego
    print(f"ticks={summary.ticks} lane={ego.lane} s={ego.s:.1f} v={ego.v:.2f} "
          f"lane_changes={summary.lane_changes} "
          f"min_nearest={summary.min_nearest_distance:.1f} reached_goal={summary.reached_goal}")


if __name__ == "__main__":
    main()
