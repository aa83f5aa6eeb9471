"""
Tests for fractional card positions on move.
"""

import pytest

from kanban_shared.schemas.cards import compute_move_position


class TestComputeMovePosition:
    def test_empty_list(self):
        assert compute_move_position([], 1) == 1.0
        assert compute_move_position([], 7) == 1.0

    @pytest.mark.parametrize("slot", [0, 1])
    def test_top_of_list_halves_first(self, slot):
        assert compute_move_position([1.0, 2.0], slot) == 0.5

    def test_between_neighbours(self):
        assert compute_move_position([1.0, 2.0, 3.0], 2) == 1.5
        assert compute_move_position([1.0, 2.0, 3.0], 3) == 2.5

    def test_end_of_list(self):
        assert compute_move_position([1.0, 2.0], 3) == 3.0

    def test_slot_past_end_appends(self):
        assert compute_move_position([1.0, 2.0], 10) == 3.0

    def test_equal_neighbours_nudge_after_before(self):
        assert compute_move_position([1.0, 1.0], 2) == pytest.approx(1.1)

    def test_result_sorts_into_requested_slot(self):
        siblings = [0.25, 0.5, 4.0, 9.0]
        for slot in range(1, len(siblings) + 2):
            position = compute_move_position(siblings, slot)
            assert sorted(siblings + [position]).index(position) == slot - 1

    @pytest.mark.parametrize("slot", [1.5, 1.99])
    def test_fractional_slot_below_two_is_top(self, slot):
        assert compute_move_position([1.0, 2.0, 3.0], slot) == 0.5

    def test_fractional_slot_uses_whole_slot(self):
        assert compute_move_position([1.0, 2.0, 3.0], 2.7) == 1.5
        assert compute_move_position([1.0, 2.0, 3.0], 3.5) == 2.5
