"""
Maneuver finite-state machine.

Lane changes are modeled as instantaneous, so LCL/LCR fall straight back to
KL on the next tick. Right increases the lane index and left decreases it.
"""

from __future__ import annotations

from typing import Set

from data.formats.data_format import LANE_DIRECTION, ManeuverState


def can_move(lane: int, state: ManeuverState, lanes_available: int) -> bool:
    """True if the lane offset implied by ``state`` stays on the road."""
    target_lane = lane + LANE_DIRECTION.get(state, 0)
    return 0 <= target_lane < lanes_available


def successor_states(
    current_state: ManeuverState,
    lane: int,
    lanes_available: int,
) -> Set[ManeuverState]:
    """Legal next states for ``current_state`` given the lane bounds."""
    states = {ManeuverState.KEEP_LANE}

    if current_state is ManeuverState.KEEP_LANE:
        for prepare in (ManeuverState.PREPARE_LANE_CHANGE_RIGHT, ManeuverState.PREPARE_LANE_CHANGE_LEFT):
            if can_move(lane, prepare, lanes_available):
                states.add(prepare)
    elif current_state is ManeuverState.PREPARE_LANE_CHANGE_LEFT:
        if can_move(lane, current_state, lanes_available):
            states.update((ManeuverState.PREPARE_LANE_CHANGE_LEFT, ManeuverState.LANE_CHANGE_LEFT))
    elif current_state is ManeuverState.PREPARE_LANE_CHANGE_RIGHT:
        if can_move(lane, current_state, lanes_available):
            states.update((ManeuverState.PREPARE_LANE_CHANGE_RIGHT, ManeuverState.LANE_CHANGE_RIGHT))

    return states
