"""Tests for the keyframe animator and keyframe files."""

import json
import math

import pytest

from view_engine.camera_pose import CameraPose, Keyframe
from view_engine.easing import linear
from view_engine.keyframes import (
    DEFAULT_POSE,
    DEMO_KEYFRAMES,
    INTRO_START_POSE,
    KeyframeAnimator,
    intro_animator,
    load_keyframes,
    save_keyframes,
)

ORIGIN = CameraPose((0, 0, 0), (0, 0, -1))


@pytest.fixture
def keyframes():
    return [
        Keyframe((10, 0, 0), (0, 0, 0), 1000, 'first'),
        Keyframe((10, 10, 0), (0, 0, 0), 2000, 'second'),
        Keyframe((0, 10, 0), (0, 0, 0), 1000, 'third'),
    ]


class TestKeyframeAnimator:
    """Interpolation cursor behavior."""

    def test_empty_sequence_raises(self):
        with pytest.raises(ValueError):
            KeyframeAnimator([])

    def test_advance_before_start_raises(self, keyframes):
        with pytest.raises(RuntimeError):
            KeyframeAnimator(keyframes).advance(0)

    def test_starts_at_snapshot(self, keyframes):
        animator = KeyframeAnimator(keyframes, easing=linear)
        animator.start(1000, ORIGIN)
        assert animator.advance(1000) is ORIGIN

    def test_interpolates_from_snapshot(self, keyframes):
        animator = KeyframeAnimator(keyframes, easing=linear)
        animator.start(0, ORIGIN)
        pose = animator.advance(500)
        assert pose.position == pytest.approx((5, 0, 0))
        assert pose.target == pytest.approx((0, 0, -0.5))

    def test_boundary_returns_exact_keyframe_pose(self, keyframes):
        animator = KeyframeAnimator(keyframes)
        animator.start(0, ORIGIN)
        pose = animator.advance(1000)
        assert pose == keyframes[0].pose
        assert animator.index == 1
        assert animator.start_ms == 1000
        assert animator.start_pose == keyframes[0].pose

    def test_one_keyframe_per_advance(self, keyframes):
        """A long stall commits a single keyframe rather than skipping ahead."""
        animator = KeyframeAnimator(keyframes)
        animator.start(0, ORIGIN)
        assert animator.advance(100000) == keyframes[0].pose
        assert animator.index == 1
        # The next segment restarts its clock at the commit time
        assert animator.advance(100000) == keyframes[0].pose
        assert animator.advance(102000) == keyframes[1].pose
        assert animator.index == 2

    def test_loops(self, keyframes):
        animator = KeyframeAnimator(keyframes)
        animator.start(0, ORIGIN)
        now = 0
        for keyframe in keyframes:
            now += keyframe.duration_ms
            animator.advance(now)
        assert animator.index == 0
        assert animator.cycles == 1
        assert not animator.finished

    def test_non_looping_holds_final_pose(self, keyframes):
        animator = KeyframeAnimator(keyframes[:1], loop=False)
        animator.start(0, ORIGIN)
        animator.advance(1000)
        assert animator.finished
        assert not animator.running
        assert animator.advance(5000) == keyframes[0].pose

    def test_stop_keeps_last_pose(self, keyframes):
        animator = KeyframeAnimator(keyframes, easing=linear)
        animator.start(0, ORIGIN)
        mid = animator.advance(500)
        assert animator.stop() == mid
        assert animator.advance(900) == mid

    def test_pause_shifts_start(self, keyframes):
        animator = KeyframeAnimator(keyframes, easing=linear)
        animator.start(0, ORIGIN)
        animator.advance(250)
        animator.pause(250)
        assert animator.paused
        assert animator.advance(5000).position == pytest.approx((2.5, 0, 0))
        animator.resume(5000)
        assert animator.advance(5250).position == pytest.approx((5, 0, 0))

    def test_non_finite_segment_keeps_last_pose(self):
        broken = [
            Keyframe((math.nan, 0, 0), (0, 0, 0), 1000, 'broken'),
            Keyframe((1, 1, 1), (0, 0, 0), 1000, 'fine'),
        ]
        animator = KeyframeAnimator(broken, easing=linear)
        animator.start(0, ORIGIN)
        assert animator.advance(500) == ORIGIN
        assert animator.advance(1000) == ORIGIN
        assert animator.advance(2000) == broken[1].pose


class TestIntroAndDemo:
    """Built-in sequences."""

    def test_intro_sweep(self):
        animator = intro_animator()
        assert not animator.loop
        animator.start(0, INTRO_START_POSE)
        assert animator.advance(2500) == DEFAULT_POSE
        assert animator.finished

    def test_intro_custom_end(self):
        end = CameraPose((1, 1, 1), (0, 0, 0))
        animator = intro_animator(1000, end_pose=end)
        animator.start(0, INTRO_START_POSE)
        assert animator.advance(1000) == end

    def test_demo_sequence(self):
        assert len(DEMO_KEYFRAMES) == 14
        assert len({keyframe.name for keyframe in DEMO_KEYFRAMES}) == 14
        assert all(keyframe.duration_ms > 0 for keyframe in DEMO_KEYFRAMES)


class TestKeyframeFiles:
    """JSON keyframe I/O."""

    def test_save_and_load(self, tmp_path, keyframes):
        path = tmp_path / 'shots.json'
        save_keyframes(keyframes, path)
        data = json.loads(path.read_text())
        assert data['version'] == '1.0'
        assert load_keyframes(path) == keyframes

    def test_empty_file_raises(self, tmp_path):
        path = tmp_path / 'empty.json'
        path.write_text(json.dumps({'version': '1.0', 'keyframes': []}))
        with pytest.raises(ValueError):
            load_keyframes(path)
