"""
Tests for per-state trajectory generation.

Covers:
- Constant speed dead-reckoning
- Keep lane kinematics
- Prepare lane change (conservative slower-lane choice, follower protection)
- Lane change occupancy blocking and road bounds
"""

import copy

import pytest

from data.formats.data_format import ManeuverState, PlannerConfig, VehicleSnapshot
from trajectory.generator import (
    constant_speed_trajectory,
    generate_trajectory,
    keep_lane_trajectory,
    lane_change_trajectory,
    prep_lane_change_trajectory,
)


@pytest.fixture
def config():
    return PlannerConfig(
        target_speed=20.0,
        lanes_available=3,
        goal_s=1000.0,
        goal_lane=1,
        max_acceleration=5.0,
        max_jerk=10.0,
        preferred_buffer=10.0,
        timestep=1.0,
    )


@pytest.fixture
def ego():
    return VehicleSnapshot(lane=1, s=0.0, v=10.0, a=0.0, state=ManeuverState.KEEP_LANE)


class TestConstantSpeed:
    def test_dead_reckons_with_current_accel(self, config):
        ego = VehicleSnapshot(lane=1, s=0.0, v=10.0, a=2.0, state=ManeuverState.KEEP_LANE)
        current, projected = constant_speed_trajectory(ego, config)
        assert current == ego
        assert current is not ego
        assert projected.s == pytest.approx(11.0)
        assert projected.v == 10.0
        assert projected.a == 0.0
        assert projected.lane == 1
        assert projected.state is ManeuverState.KEEP_LANE


class TestKeepLane:
    def test_projects_solved_kinematics(self, config, ego):
        current, projected = keep_lane_trajectory({}, ego, config)
        assert current == ego
        assert projected.lane == 1
        assert projected.state is ManeuverState.KEEP_LANE
        assert (projected.s, projected.v, projected.a) == pytest.approx((12.5, 15.0, 5.0))


class TestPrepareLaneChange:
    def test_stays_in_current_lane(self, config, ego):
        trajectory = prep_lane_change_trajectory(
            ManeuverState.PREPARE_LANE_CHANGE_LEFT, {}, ego, config)
        assert len(trajectory) == 2
        assert trajectory[1].lane == 1
        assert trajectory[1].state is ManeuverState.PREPARE_LANE_CHANGE_LEFT
        assert trajectory[1].v == pytest.approx(15.0)

    def test_takes_slower_target_lane_speed(self, config, ego):
        predictions = {0: [VehicleSnapshot(0, 12.0, 12.0)]}
        trajectory = prep_lane_change_trajectory(
            ManeuverState.PREPARE_LANE_CHANGE_LEFT, predictions, ego, config)
        projected = trajectory[1]
        assert projected.lane == 1
        assert (projected.s, projected.v, projected.a) == pytest.approx((12.0, 14.0, 4.0))

    def test_slow_traffic_on_other_side_is_ignored(self, config, ego):
        predictions = {0: [VehicleSnapshot(0, 12.0, 12.0)]}
        trajectory = prep_lane_change_trajectory(
            ManeuverState.PREPARE_LANE_CHANGE_RIGHT, predictions, ego, config)
        assert trajectory[1].v == pytest.approx(15.0)
        assert trajectory[1].state is ManeuverState.PREPARE_LANE_CHANGE_RIGHT

    def test_follower_keeps_current_lane_kinematics(self, config, ego):
        predictions = {
            0: [VehicleSnapshot(0, 12.0, 12.0)],
            1: [VehicleSnapshot(1, -20.0, 15.0)],
        }
        trajectory = prep_lane_change_trajectory(
            ManeuverState.PREPARE_LANE_CHANGE_LEFT, predictions, ego, config)
        assert trajectory[1].v == pytest.approx(15.0)


class TestLaneChange:
    def test_blocked_by_vehicle_alongside(self, config, ego):
        predictions = {7: [VehicleSnapshot(2, 0.0, 20.0)]}
        assert lane_change_trajectory(ManeuverState.LANE_CHANGE_RIGHT, predictions, ego, config) == []

    def test_alongside_in_other_lane_does_not_block(self, config, ego):
        predictions = {7: [VehicleSnapshot(0, 0.0, 20.0)]}
        trajectory = lane_change_trajectory(ManeuverState.LANE_CHANGE_RIGHT, predictions, ego, config)
        assert len(trajectory) == 2
        assert trajectory[1].lane == 2

    def test_moves_into_target_lane(self, config, ego):
        trajectory = lane_change_trajectory(ManeuverState.LANE_CHANGE_LEFT, {}, ego, config)
        assert trajectory[0] == ego
        assert trajectory[1].lane == 0
        assert trajectory[1].state is ManeuverState.LANE_CHANGE_LEFT
        assert trajectory[1].v == pytest.approx(15.0)

    def test_uses_target_lane_traffic(self, config, ego):
        predictions = {3: [VehicleSnapshot(2, 12.0, 12.0)]}
        trajectory = lane_change_trajectory(ManeuverState.LANE_CHANGE_RIGHT, predictions, ego, config)
        assert trajectory[1].v == pytest.approx(14.0)

    def test_off_road_is_infeasible(self, config):
        ego = VehicleSnapshot(lane=0, s=0.0, v=10.0, state=ManeuverState.PREPARE_LANE_CHANGE_LEFT)
        assert lane_change_trajectory(ManeuverState.LANE_CHANGE_LEFT, {}, ego, config) == []


class TestDispatch:
    @pytest.mark.parametrize("state", list(ManeuverState))
    def test_every_state_produces_pair_on_empty_road(self, config, ego, state):
        trajectory = generate_trajectory(state, {}, ego, config)
        assert len(trajectory) == 2

    def test_does_not_mutate_inputs(self, config, ego):
        predictions = {0: [VehicleSnapshot(1, 30.0, 12.0)], 1: [VehicleSnapshot(2, 0.0, 12.0)]}
        ego_before = copy.deepcopy(ego)
        predictions_before = copy.deepcopy(predictions)
        for state in ManeuverState:
            generate_trajectory(state, predictions, ego, config)
        assert ego == ego_before
        assert predictions == predictions_before

    def test_unknown_state_rejected(self, config, ego):
        with pytest.raises(ValueError):
            generate_trajectory("KL", {}, ego, config)
