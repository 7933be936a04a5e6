"""
Tests for Frames, temporal windows and Experience/Policy records.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from deeprl.ai.frame import Frame, fill_frames, make_window, shift_window
from deeprl.ai.experience import Experience, InvariantError, Policy


class TestFrame:
    """Test Frame construction and immutability."""

    def test_flat_is_image_then_stats(self):
        image = np.arange(8, dtype=np.float32).reshape(2, 2, 2)
        stats = np.array([100.0, 200.0])
        frame = Frame(image, stats)
        assert frame.size == 10
        np.testing.assert_array_equal(frame.flat[:8], np.arange(8))
        np.testing.assert_array_equal(frame.flat[8:], [100.0, 200.0])

    def test_arrays_are_read_only(self):
        frame = Frame(np.zeros((1, 2, 2)), np.zeros(2))
        with pytest.raises(ValueError):
            frame.flat[0] = 1.0
        with pytest.raises(ValueError):
            frame.image[0, 0, 0] = 1.0

    def test_attributes_cannot_be_reassigned(self):
        frame = Frame(np.zeros((1, 2, 2)), np.zeros(2))
        with pytest.raises(AttributeError):
            frame.stats = np.ones(2)

    def test_source_array_changes_do_not_leak(self):
        image = np.zeros((1, 2, 2), dtype=np.float32)
        frame = Frame(image, np.zeros(1))
        image[0, 0, 0] = 5.0
        assert frame.image[0, 0, 0] == 0.0

    def test_zeros_geometry(self):
        frame = Frame.zeros(channels=3, sight_diameter=4, num_stats=5)
        assert frame.image.shape == (3, 4, 4)
        assert frame.size == 3 * 16 + 5
        assert not frame.flat.any()


class TestWindows:
    """Test window helpers."""

    def test_make_window_left_pads(self):
        a = Frame.zeros(1, 1, 1)
        window = make_window([a], 3)
        assert window == (None, None, a)

    def test_make_window_rejects_overflow(self):
        a = Frame.zeros(1, 1, 1)
        with pytest.raises(ValueError):
            make_window([a, a, a], 2)

    def test_shift_window_drops_oldest(self):
        a, b, c = (Frame.zeros(1, 1, 1) for _ in range(3))
        assert shift_window((a, b), c) == (b, c)

    def test_fill_frames_writes_zeros_for_empty_marker(self):
        frame = Frame(np.ones((1, 1, 1)), np.ones(1))
        row = np.full(4, 9.0, dtype=np.float32)
        fill_frames(row, (None, frame), frame_size=2)
        np.testing.assert_array_equal(row, [0.0, 0.0, 1.0, 1.0])

    def test_fill_frames_rejects_wrong_frame_size(self):
        frame = Frame(np.ones((1, 1, 1)), np.ones(2))
        row = np.zeros(4, dtype=np.float32)
        with pytest.raises(ValueError):
            fill_frames(row, (frame,), frame_size=4)


class TestExperience:
    """Test Experience sanity checks."""

    def make(self, **kwargs):
        fields = dict(input_frames=(None, None), action=1, reward=0.5, next_frame=None)
        fields.update(kwargs)
        return Experience(**fields)

    def test_valid_experience_passes(self):
        self.make().check_sanity(num_actions=3, reward_min=-1.0, reward_max=1.0, window_length=2)

    def test_missing_next_frame_is_terminal(self):
        assert self.make().is_terminal
        assert not self.make(next_frame=Frame.zeros(1, 1, 1)).is_terminal

    @pytest.mark.parametrize("reward", [None, float('nan'), float('inf'), 1.5, -2.0])
    def test_invalid_reward_raises(self, reward):
        with pytest.raises(InvariantError):
            self.make(reward=reward).check_sanity(3, -1.0, 1.0)

    @pytest.mark.parametrize("action", [-1, 3])
    def test_out_of_range_action_raises(self, action):
        with pytest.raises(InvariantError):
            self.make(action=action).check_sanity(3, -1.0, 1.0)

    def test_wrong_window_length_raises(self):
        with pytest.raises(InvariantError):
            self.make().check_sanity(3, -1.0, 1.0, window_length=4)


class TestPolicy:
    """Test Policy records."""

    def test_random_marker(self):
        p = Policy.random()
        assert p.is_random
        assert p.action == -1

    def test_greedy_policy_is_not_random(self):
        assert not Policy(2, 0.0).is_random

    def test_string_forms(self):
        assert str(Policy(3, 0.4242)) == "3:0.42"
        assert str(Policy.random(5)) == "5:rand"
