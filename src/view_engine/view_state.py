"""View state machine for the product viewer.

The machine owns the single camera pose handed to the renderer and decides,
every tick, which motion source may write it:

* MANUAL: drag rotation and zoom, applied through an orbit rig
* IDLE_AUTO_ROTATE: slow turntable after a period without input
* INTRO: one-shot establishing sweep started on mount
* TRANSITIONING: dark overlay before the cinematic demo is revealed
* CINEMATIC_DEMO: looping keyframe tour, stopped by input, skip or timeout

Transitions are synchronous; the new mode writes the pose on the next tick.
Leaving an animated mode keeps the last computed pose, so no transition
makes the camera jump.
"""

from concurrent.futures import Future
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from .asset_cache import AssetPreloadCache, LoadingProgress
from .camera_pose import CameraPose, Keyframe, OrbitParams, Vector3, rotate_about_vertical
from .config import ViewerSettings
from .easing import ease_out_cubic, get_easing
from .hotspots import DEFAULT_HOTSPOTS, Hotspot, HotspotRegistry
from .keyframes import DEFAULT_POSE, DEMO_KEYFRAMES, INTRO_START_POSE, KeyframeAnimator, intro_animator
from .rotation import PointerRotationMapper, ScrollTiltMapper
from .timers import ClickCounter, TimerHandle, TimerQueue
from .zoom import ZoomController, touch_distance

logger = logging.getLogger(__name__)


class Mode(Enum):
    MANUAL = 'manual'
    IDLE_AUTO_ROTATE = 'idle_auto_rotate'
    INTRO = 'intro'
    CINEMATIC_DEMO = 'cinematic_demo'
    TRANSITIONING = 'transitioning'


class TransitionPhase(Enum):
    """Overlay phase of the dark-to-light reveal in front of the demo."""
    NONE = 'none'
    DARK = 'dark'
    REVEALING = 'revealing'
    COMPLETE = 'complete'


KEY_BINDINGS: Dict[str, Tuple[str, ...]] = {
    'rotate_left': ('ArrowLeft', 'a', 'A'),
    'rotate_right': ('ArrowRight', 'd', 'D'),
    'zoom_in': ('+', '=', 'ArrowUp'),
    'zoom_out': ('-', '_', 'ArrowDown'),
    'reset_view': ('r', 'R'),
    'toggle_auto_rotate': (' ',),
    'toggle_hotspots': ('h', 'H'),
    'escape': ('Escape',),
}


@dataclass
class OrbitRig:
    """Maps the manual rotation angle and zoom factor to a camera pose.

    ``yaw_offset`` is the yaw at rotation angle 0 and ``distance_reference``
    the camera distance at zoom 1, both captured from the pose the rig was
    synced from.
    """
    target: Vector3
    pitch: float
    yaw_offset: float
    distance_reference: float

    @classmethod
    def from_pose(cls, pose: CameraPose, angle_deg: float, zoom: float) -> 'OrbitRig':
        orbit = OrbitParams.from_pose(pose)
        return cls(
            target=pose.target,
            pitch=orbit.pitch,
            yaw_offset=orbit.yaw - angle_deg,
            distance_reference=orbit.radius * zoom,
        )

    def pose(self, angle_deg: float, zoom: float) -> CameraPose:
        orbit = OrbitParams(
            yaw=(self.yaw_offset + angle_deg) % 360,
            pitch=self.pitch,
            radius=self.distance_reference / zoom,
        )
        return orbit.to_pose(self.target)


class ViewStateMachine:
    """Arbitrates camera motion sources and exposes the viewer state."""

    def __init__(self,
                 settings: Optional[ViewerSettings] = None,
                 cache: Optional[AssetPreloadCache] = None,
                 hotspots: Optional[Iterable[Hotspot]] = None,
                 demo_keyframes: Optional[Sequence[Keyframe]] = None,
                 default_pose: CameraPose = DEFAULT_POSE):
        """Initialize the state machine.

        Args:
            settings: Viewer settings (defaults if None)
            cache: Asset cache used by ``start_loading``; one is created on
                demand and shut down on ``dispose`` if not supplied
            hotspots: Hotspot catalog (the default catalog if None)
            demo_keyframes: Cinematic demo sequence (the default tour if None)
            default_pose: Pose restored by ``reset_view`` and reached by the intro
        """
        self.settings = settings if settings is not None else ViewerSettings()
        rotation = self.settings.rotation
        zoom = self.settings.zoom
        timing = self.settings.timing

        self.rotation = PointerRotationMapper(
            total_frames=rotation.total_frames,
            pixels_per_frame=rotation.pixels_per_frame,
            sensitivity=rotation.sensitivity,
            initial_frame=rotation.initial_frame,
        )
        self.zoom = ZoomController(
            initial_zoom=zoom.initial_zoom,
            min_zoom=zoom.min_zoom,
            max_zoom=zoom.max_zoom,
            zoom_step=zoom.zoom_step,
        )
        self.tilt = ScrollTiltMapper(gain=rotation.tilt_gain, max_angle=rotation.max_tilt)
        self.hotspots = HotspotRegistry(hotspots if hotspots is not None else DEFAULT_HOTSPOTS)
        self.timers = TimerQueue()
        self.click_counter = ClickCounter(timing.click_threshold, timing.click_window_ms)

        self._cache = cache
        self._owns_cache = cache is None
        self.default_pose = default_pose
        self._intro = intro_animator(timing.intro_duration_ms, end_pose=default_pose)
        self._demo = KeyframeAnimator(demo_keyframes if demo_keyframes is not None else DEMO_KEYFRAMES,
                                      easing=get_easing(self.settings.demo_easing))

        self._mode = Mode.MANUAL
        self._pose = default_pose
        self._rig = OrbitRig.from_pose(default_pose, self.rotation.angle_deg, self.zoom.zoom)
        self._rig_inputs = (self.rotation.angle_deg, self.zoom.zoom)
        self._pending_mode: Optional[Mode] = None

        self._phase = TransitionPhase.NONE
        self._phase_started_ms = 0.0
        self._sequence_timers: List[TimerHandle] = []
        self._demo_stop_timer: Optional[TimerHandle] = None
        self._auto_demo_triggered = False
        self._intro_complete = False
        self._auto_rotate_enabled = timing.auto_rotate_enabled

        self._loading_future: Optional[Future] = None
        self._loading_batch = 0
        self._loading_percentage = 100.0
        self._assets_loaded = True
        self.loaded_handles: List[Any] = []

        self.spotlight = False
        self._now_ms = 0.0
        self._last_interaction_ms = 0.0
        self._mounted = False
        self._disposed = False

    # ------------------------------------------------------------------
    # Read-only state for the UI and renderer

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def pose(self) -> CameraPose:
        return self._pose

    @property
    def transition_phase(self) -> TransitionPhase:
        return self._phase

    @property
    def zoom_percentage(self) -> int:
        return self.zoom.percentage

    @property
    def loading_percentage(self) -> float:
        return self._loading_percentage

    @property
    def is_loading(self) -> bool:
        return not self._assets_loaded

    @property
    def active_hotspot(self) -> Optional[Hotspot]:
        return self.hotspots.active

    @property
    def intro_complete(self) -> bool:
        return self._intro_complete

    @property
    def auto_rotate_enabled(self) -> bool:
        return self._auto_rotate_enabled

    @property
    def demo_active(self) -> bool:
        return self._mode in (Mode.CINEMATIC_DEMO, Mode.TRANSITIONING)

    @property
    def overlay_opacity(self) -> float:
        """Opacity of the reveal overlay: opaque while dark, fading while revealing."""
        timing = self.settings.timing
        if self._phase is TransitionPhase.DARK:
            return 1.0
        if self._phase is TransitionPhase.REVEALING:
            fade_ms = timing.reveal_complete_ms - timing.dark_phase_ms
            if fade_ms <= 0:
                return 0.0
            progress = (self._now_ms - self._phase_started_ms) / fade_ms
            return 1.0 - ease_out_cubic(progress)
        return 0.0

    def snapshot(self) -> Dict[str, Any]:
        """Everything a UI layer needs to draw the current state."""
        active = self.hotspots.active
        return {
            'mode': self._mode.value,
            'transition_phase': self._phase.value,
            'overlay_opacity': self.overlay_opacity,
            'pose': self._pose.to_dict(),
            'frame': self.rotation.frame,
            'zoom': self.zoom.zoom,
            'zoom_percentage': self.zoom_percentage,
            'loading_percentage': self._loading_percentage,
            'is_loading': self.is_loading,
            'active_hotspot': active.to_dict() if active is not None else None,
            'hotspots_visible': self.hotspots.visible,
            'auto_rotate_enabled': self._auto_rotate_enabled,
            'spotlight': self.spotlight,
        }

    # ------------------------------------------------------------------
    # Lifecycle

    def start_loading(self, keys: Iterable[str]) -> Future:
        """Preload the assets of the current view; gates the cinematic demo.

        Args:
            keys: Asset keys for the active view group

        Returns:
            Future resolving to the loaded handles
        """
        if self._cache is None:
            self._cache = AssetPreloadCache()

        self._assets_loaded = False
        self._loading_percentage = 0.0
        self._loading_batch += 1
        self._loading_future = self._cache.submit(keys, partial(self._on_progress, self._loading_batch))
        return self._loading_future

    def mount(self, now_ms: float) -> None:
        """Start the viewer: runs the intro sweep when enabled."""
        if self._mounted:
            logger.debug("mount() called twice, ignoring")
            return

        self._mounted = True
        self._now_ms = now_ms
        self._last_interaction_ms = now_ms
        timing = self.settings.timing

        if timing.intro_enabled:
            self._pose = INTRO_START_POSE
            self._intro.start(now_ms + timing.intro_hold_ms, INTRO_START_POSE)
            self._set_mode(Mode.INTRO)
        else:
            self._intro_complete = True
            self._enter_manual()
            self._maybe_auto_start(now_ms)
        logger.info(f"View engine mounted in {self._mode.value} mode")

    def dispose(self) -> None:
        """Cancel every pending timer and stop all animation."""
        if self._disposed:
            return
        self.timers.cancel_all()
        self._sequence_timers = []
        self._demo_stop_timer = None
        self._intro.stop()
        self._demo.stop()
        self._loading_future = None
        if self._owns_cache and self._cache is not None:
            self._cache.shutdown(wait=False)
        self._disposed = True
        logger.info("View engine disposed")

    def tick(self, now_ms: float) -> CameraPose:
        """Advance the engine to ``now_ms`` and return the pose to render.

        Order within a tick: due timers fire, loading completion is polled,
        then the active mode computes and writes the pose.

        Args:
            now_ms: Monotonically increasing timestamp in milliseconds

        Returns:
            The camera pose for this frame
        """
        if self._disposed or not self._mounted:
            return self._pose

        self._now_ms = now_ms
        self.timers.fire_due(now_ms)
        self._poll_loading(now_ms)

        pose = self._compute_pose(now_ms)
        if pose.is_finite():
            self._pose = pose
        else:
            logger.warning(f"Discarding non-finite pose in {self._mode.value} mode")
        return self._pose

    # ------------------------------------------------------------------
    # Pointer, touch, wheel and scroll input

    def pointer_down(self, x: float) -> None:
        self._register_interaction()
        self.rotation.begin(x)

    def pointer_move(self, x: float) -> None:
        # Hovering without a drag is not an interaction
        if not self.rotation.is_dragging:
            return
        self._register_interaction()
        self.rotation.move(x)

    def pointer_up(self) -> None:
        if self.rotation.is_dragging:
            self._register_interaction()
        self.rotation.end()

    def touch_start(self, touches: Sequence[Sequence[float]]) -> None:
        """Touch points as (x, y); one finger rotates, two fingers pinch."""
        self._register_interaction()
        if len(touches) == 1:
            self.rotation.touch_start(touches)
        elif len(touches) == 2:
            self.rotation.end()
            self.zoom.pinch_start(touch_distance(touches[0], touches[1]))

    def touch_move(self, touches: Sequence[Sequence[float]]) -> None:
        if len(touches) == 1 and self.rotation.is_dragging:
            self._register_interaction()
            self.rotation.touch_move(touches)
        elif len(touches) == 2 and self.zoom.is_pinching:
            self._register_interaction()
            self.zoom.pinch_move(touch_distance(touches[0], touches[1]))

    def touch_end(self) -> None:
        self.rotation.end()
        self.zoom.pinch_end()

    def wheel(self, delta_y: float) -> None:
        self._register_interaction()
        self.zoom.wheel(delta_y)

    def pinch(self, distance_ratio: float) -> None:
        """Scale the zoom by a finger distance ratio.

        Inside a two-finger touch gesture the ratio applies to the zoom captured
        at ``touch_start``; otherwise the call is a complete gesture of its own.
        """
        self._register_interaction()
        if self.zoom.is_pinching:
            self.zoom.pinch(distance_ratio)
            return
        self.zoom.begin_pinch()
        self.zoom.pinch(distance_ratio)
        self.zoom.pinch_end()

    def scroll_tilt(self, element_centers: Sequence[float], viewport_top: float,
                    viewport_height: float) -> List[float]:
        """Tilt angles for an image stack; does not affect the camera pose."""
        return self.tilt.update(element_centers, viewport_top, viewport_height)

    # ------------------------------------------------------------------
    # Imperative triggers

    def set_zoom(self, value: float) -> float:
        self._register_interaction()
        return self.zoom.set(value)

    def zoom_in(self) -> float:
        self._register_interaction()
        return self.zoom.zoom_in()

    def zoom_out(self) -> float:
        self._register_interaction()
        return self.zoom.zoom_out()

    def set_frame(self, frame: int) -> None:
        self._register_interaction()
        self.rotation.set_frame(frame)

    def user_interaction(self, pose: Optional[CameraPose] = None) -> None:
        """Report input handled outside the engine, e.g. a renderer's own orbit controls.

        Args:
            pose: Camera pose the external controls moved to; adopted as the
                manual pose when given and finite
        """
        self._register_interaction()
        if pose is not None and pose.is_finite():
            self._pose = pose
            self._enter_manual()

    def rotate_left(self) -> None:
        self._register_interaction()
        self.rotation.rotate_left()

    def rotate_right(self) -> None:
        self._register_interaction()
        self.rotation.rotate_right()

    def select_hotspot(self, hotspot_id: str) -> Optional[Hotspot]:
        return self.hotspots.select(hotspot_id)

    def toggle_cinematic(self) -> None:
        """Start the demo with its reveal sequence, or stop it if running."""
        if self.demo_active:
            self._stop_demo('toggled off')
            return

        if self._pending_mode is Mode.CINEMATIC_DEMO:
            self._pending_mode = None
            if not self._intro_complete or not self._assets_loaded:
                logger.info("Pending cinematic demo cancelled")
                return

        self._auto_demo_triggered = True
        if not self._intro_complete or not self._assets_loaded:
            self._pending_mode = Mode.CINEMATIC_DEMO
            logger.info("Cinematic demo pending until intro and loading finish")
            return

        self._start_sequence(self._now_ms)

    def skip(self) -> None:
        """Skip the running demo or intro, handing control to the user."""
        self._pending_mode = None
        if self.demo_active:
            self._stop_demo('skipped')
        elif self._mode is Mode.INTRO:
            self._complete_intro()
            self._enter_manual()
        else:
            logger.debug(f"skip() ignored in {self._mode.value} mode")

    def reset_view(self) -> None:
        """Return to the default pose with rotation and zoom reset."""
        self._register_interaction()
        self.rotation.reset()
        self.zoom.reset()
        self._rig = OrbitRig.from_pose(self.default_pose, self.rotation.angle_deg, self.zoom.zoom)
        self._rig_inputs = (self.rotation.angle_deg, self.zoom.zoom)
        self._pose = self.default_pose
        logger.info("View reset")

    def toggle_auto_rotate(self) -> bool:
        """Enable or disable idle auto-rotation.

        Returns:
            Whether auto-rotation is now enabled
        """
        self._auto_rotate_enabled = not self._auto_rotate_enabled
        if not self._auto_rotate_enabled and self._mode is Mode.IDLE_AUTO_ROTATE:
            self._last_interaction_ms = self._now_ms
            self._enter_manual()
        elif self._auto_rotate_enabled and self._mode is Mode.MANUAL:
            self._set_mode(Mode.IDLE_AUTO_ROTATE)
        return self._auto_rotate_enabled

    def register_model_click(self) -> bool:
        """Count a click on the model selector; a triple-click toggles spotlight.

        Returns:
            True if this click toggled spotlight mode
        """
        if self.click_counter.click(self._now_ms):
            self.spotlight = not self.spotlight
            logger.info(f"Spotlight {'on' if self.spotlight else 'off'}")
            return True
        return False

    def handle_key(self, key: str) -> bool:
        """Apply a keyboard shortcut.

        Returns:
            True if the key was bound to an action
        """
        action = next((name for name, keys in KEY_BINDINGS.items() if key in keys), None)
        if action is None:
            return False

        if action == 'escape':
            if self.demo_active:
                self.skip()
            else:
                self.hotspots.clear()
        elif action == 'toggle_hotspots':
            self.hotspots.toggle_visibility()
        else:
            getattr(self, action)()
        return True

    # ------------------------------------------------------------------
    # Internals

    def _on_progress(self, batch_id: int, progress: LoadingProgress) -> None:
        # Runs on loader threads; only records the value for the next tick
        if batch_id != self._loading_batch:
            return
        self._loading_percentage = progress.percentage

    def _poll_loading(self, now_ms: float) -> None:
        if self._assets_loaded or self._loading_future is None:
            return
        if not self._loading_future.done():
            return

        self.loaded_handles = self._loading_future.result()
        self._loading_future = None
        self._assets_loaded = True
        self._loading_percentage = 100.0
        logger.info(f"Assets ready ({len(self.loaded_handles)} handles)")

        if self._pending_mode is Mode.CINEMATIC_DEMO and self._intro_complete:
            self._pending_mode = None
            self._start_sequence(now_ms)
        else:
            self._maybe_auto_start(now_ms)

    def _compute_pose(self, now_ms: float) -> CameraPose:
        if self._mode is Mode.INTRO:
            pose = self._intro.advance(now_ms)
            if self._intro.finished:
                # Anchor the rig on the final sweep pose
                self._pose = pose
                self._finish_intro(now_ms)
            return pose

        if self._mode is Mode.CINEMATIC_DEMO:
            return self._demo.advance(now_ms)

        if self._mode is Mode.IDLE_AUTO_ROTATE:
            return rotate_about_vertical(self._pose, self.settings.timing.auto_rotate_step_deg)

        if self._mode is Mode.MANUAL:
            pose = self._manual_pose()
            if self._idle_expired(now_ms):
                self._set_mode(Mode.IDLE_AUTO_ROTATE)
            return pose

        # TRANSITIONING holds the camera still behind the dark overlay
        return self._pose

    def _manual_pose(self) -> CameraPose:
        inputs = (self.rotation.angle_deg, self.zoom.zoom)
        if inputs == self._rig_inputs:
            return self._pose
        self._rig_inputs = inputs
        return self._rig.pose(*inputs)

    def _idle_expired(self, now_ms: float) -> bool:
        if not self._auto_rotate_enabled or not self._assets_loaded:
            return False
        if self.rotation.is_dragging or self.zoom.is_pinching:
            return False
        return now_ms - self._last_interaction_ms >= self.settings.timing.auto_rotate_delay_ms

    def _register_interaction(self) -> None:
        self._last_interaction_ms = self._now_ms
        if self._mode is Mode.MANUAL:
            return

        if self._mode is Mode.INTRO:
            # Input that cuts the intro short also drops a demo requested during it
            self._pending_mode = None
            self._complete_intro()
            self._enter_manual()
        elif self.demo_active:
            self._stop_demo('user input')
        else:
            self._enter_manual()

    def _finish_intro(self, now_ms: float) -> None:
        self._complete_intro()
        self._enter_manual()

        if self._pending_mode is Mode.CINEMATIC_DEMO and self._assets_loaded:
            self._pending_mode = None
            self._start_sequence(now_ms)
        else:
            self._maybe_auto_start(now_ms)

    def _complete_intro(self) -> None:
        self._intro.stop()
        self._intro_complete = True
        logger.debug("Intro complete")

    def _maybe_auto_start(self, now_ms: float) -> None:
        if not self.settings.auto_start_demo or self._auto_demo_triggered:
            return
        if not self._intro_complete or not self._assets_loaded:
            return
        if self._mode not in (Mode.MANUAL, Mode.IDLE_AUTO_ROTATE):
            return

        self._auto_demo_triggered = True
        logger.info("Auto-starting cinematic demo")
        self._start_sequence(now_ms)

    def _start_sequence(self, now_ms: float) -> None:
        timing = self.settings.timing
        self._cancel_sequence_timers()

        self._set_phase(TransitionPhase.DARK, now_ms)
        self._set_mode(Mode.TRANSITIONING)

        self._sequence_timers = [
            self.timers.schedule(now_ms + timing.dark_phase_ms, self._on_reveal, 'reveal'),
            self.timers.schedule(now_ms + timing.reveal_complete_ms,
                                 lambda t: self._set_phase(TransitionPhase.COMPLETE, t), 'reveal-complete'),
            self.timers.schedule(now_ms + timing.transition_end_ms,
                                 lambda t: self._set_phase(TransitionPhase.NONE, t), 'transition-end'),
        ]

    def _on_reveal(self, now_ms: float) -> None:
        self._set_phase(TransitionPhase.REVEALING, now_ms)

        # Snapshot the current pose so the move into the first keyframe is interpolated
        self._demo.start(now_ms, self._pose)
        self._set_mode(Mode.CINEMATIC_DEMO)
        self._demo_stop_timer = self.timers.schedule(
            now_ms + self.settings.timing.demo_max_duration_ms, self._on_demo_timeout, 'demo-timeout')

    def _on_demo_timeout(self, now_ms: float) -> None:
        self._demo_stop_timer = None
        self._stop_demo('time limit reached')

    def _stop_demo(self, reason: str) -> None:
        self._cancel_sequence_timers()
        self._last_interaction_ms = self._now_ms
        self._set_phase(TransitionPhase.NONE, self._now_ms)
        self._demo.stop()
        logger.info(f"Cinematic demo stopped: {reason}")
        self._enter_manual()

    def _cancel_sequence_timers(self) -> None:
        for handle in self._sequence_timers:
            self.timers.cancel(handle)
        self._sequence_timers = []
        self.timers.cancel(self._demo_stop_timer)
        self._demo_stop_timer = None

    def _enter_manual(self) -> None:
        # Re-anchor the orbit rig on the current pose so entering MANUAL never moves the camera
        self._rig = OrbitRig.from_pose(self._pose, self.rotation.angle_deg, self.zoom.zoom)
        self._rig_inputs = (self.rotation.angle_deg, self.zoom.zoom)
        self._set_mode(Mode.MANUAL)

    def _set_mode(self, mode: Mode) -> None:
        if mode is self._mode:
            return
        logger.info(f"Mode: {self._mode.value} -> {mode.value}")
        self._mode = mode

    def _set_phase(self, phase: TransitionPhase, now_ms: float) -> None:
        if phase is self._phase:
            return
        logger.debug(f"Transition phase: {self._phase.value} -> {phase.value}")
        self._phase = phase
        self._phase_started_ms = now_ms
