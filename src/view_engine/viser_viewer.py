#!/usr/bin/env python3
"""Viser front end for the view engine.

This module drives connected viser clients from a ViewStateMachine: every
tick the engine's camera pose is pushed to each client, hotspots are drawn as
clickable markers, and the GUI panel exposes the engine's triggers and state.
"""

import threading
import time
import viser
import numpy as np
from typing import Any, Callable, Dict, Optional
import logging

from .camera_pose import CameraPose
from .view_state import Mode, ViewStateMachine

logger = logging.getLogger(__name__)

POSE_EPSILON = 1e-4


def _poses_close(a: CameraPose, b: CameraPose, eps: float = POSE_EPSILON) -> bool:
    return bool(np.allclose(a.position, b.position, atol=eps) and np.allclose(a.target, b.target, atol=eps))


class ViserViewer:
    """Renders a ViewStateMachine through a viser server."""

    def __init__(self, engine: ViewStateMachine, host: str = "0.0.0.0", port: int = 8080,
                 fps: float = 60.0, fov_deg: float = 50.0):
        """Initialize the viewer.

        Args:
            engine: The state machine to drive
            host: Host address for the viser server
            port: Port for the viser server
            fps: Target tick rate of the render loop
            fov_deg: Vertical field of view of client cameras
        """
        self.engine = engine
        self.fps = fps
        self.fov_deg = fov_deg

        self.server = viser.ViserServer(host=host, port=port)
        self.server.scene.set_up_direction('+y')

        self._hotspot_handles: Dict[str, Any] = {}
        self._last_pushed: Dict[int, CameraPose] = {}
        self._last_frame_shown: Optional[int] = None
        self._running = False
        # GUI callbacks arrive on viser threads; the engine is driven from the render loop
        self._engine_lock = threading.Lock()

        self._setup_ui()
        self._add_hotspot_markers()
        self.server.on_client_connect(self._on_client_connect)

        logger.info(f"Viser viewer started on port {port}")

    def _setup_ui(self):
        """Set up viser UI components."""

        with self.server.gui.add_folder("🎬 View", expand_by_default=True):
            self.mode_display = self.server.gui.add_text("Mode", initial_value="", disabled=True)
            self.loading_display = self.server.gui.add_text("Loading", initial_value="0%", disabled=True)
            self.zoom_display = self.server.gui.add_text("Zoom", initial_value="100%", disabled=True)

            self.demo_button = self.server.gui.add_button("Toggle Cinematic Demo")
            self.demo_button.on_click(lambda _: self._dispatch(self.engine.toggle_cinematic))

            self.skip_button = self.server.gui.add_button("Skip")
            self.skip_button.on_click(lambda _: self._dispatch(self.engine.skip))

            self.reset_button = self.server.gui.add_button("Reset View")
            self.reset_button.on_click(lambda _: self._dispatch(self.engine.reset_view))

            self.auto_rotate_checkbox = self.server.gui.add_checkbox(
                "Auto Rotate", initial_value=self.engine.auto_rotate_enabled)
            self.auto_rotate_checkbox.on_update(self._on_auto_rotate_change)

        zoom = self.engine.zoom
        with self.server.gui.add_folder("🔍 Zoom & Rotation"):
            self.zoom_slider = self.server.gui.add_slider(
                "Zoom", min=zoom.min_zoom, max=zoom.max_zoom,
                step=zoom.zoom_step, initial_value=zoom.zoom)
            self.zoom_slider.on_update(lambda _: self._on_zoom_slider())

            self.frame_slider = self.server.gui.add_slider(
                "Frame", min=0, max=self.engine.rotation.total_frames - 1,
                step=1, initial_value=self.engine.rotation.frame)
            self.frame_slider.on_update(lambda _: self._on_frame_slider())

            rotate_left = self.server.gui.add_button("Rotate Left")
            rotate_left.on_click(lambda _: self._dispatch(self.engine.rotate_left))
            rotate_right = self.server.gui.add_button("Rotate Right")
            rotate_right.on_click(lambda _: self._dispatch(self.engine.rotate_right))

        with self.server.gui.add_folder("📍 Hotspots"):
            self.hotspots_checkbox = self.server.gui.add_checkbox("Show Hotspots", initial_value=True)
            self.hotspots_checkbox.on_update(lambda _: self._on_hotspot_visibility())
            self.hotspot_panel = self.server.gui.add_markdown("_Click a marker for details_")
            close_button = self.server.gui.add_button("Close Details")
            close_button.on_click(lambda _: self._dispatch(self.engine.hotspots.clear))

    def _add_hotspot_markers(self):
        for hotspot in self.engine.hotspots:
            handle = self.server.scene.add_icosphere(
                name=f"/hotspots/{hotspot.id}",
                radius=0.06,
                color=(0, 206, 209),
                position=hotspot.world_position,
            )
            handle.on_click(lambda _, hotspot_id=hotspot.id: self._dispatch(self.engine.select_hotspot, hotspot_id))
            self._hotspot_handles[hotspot.id] = handle

    def _on_client_connect(self, client: viser.ClientHandle):
        client.camera.fov = np.radians(self.fov_deg)
        client.camera.on_update(lambda camera: self._on_client_camera(client, camera))
        self._push_pose(client, self.engine.pose)

    def _on_client_camera(self, client: viser.ClientHandle, camera):
        """Treat camera moves that we did not push as user interaction."""
        pushed = self._last_pushed.get(client.client_id)
        current = CameraPose(position=camera.position, target=camera.look_at)
        if pushed is None or _poses_close(pushed, current):
            return
        self._last_pushed[client.client_id] = current
        self._dispatch(self.engine.user_interaction, current)

    def _on_auto_rotate_change(self, _):
        if self.auto_rotate_checkbox.value != self.engine.auto_rotate_enabled:
            self._dispatch(self.engine.toggle_auto_rotate)

    def _on_zoom_slider(self):
        if abs(self.zoom_slider.value - self.engine.zoom.zoom) > 1e-9:
            self._dispatch(self.engine.set_zoom, self.zoom_slider.value)

    def _on_frame_slider(self):
        if int(self.frame_slider.value) != self.engine.rotation.frame:
            self._dispatch(self.engine.set_frame, int(self.frame_slider.value))

    def _on_hotspot_visibility(self):
        if self.hotspots_checkbox.value != self.engine.hotspots.visible:
            self._dispatch(self.engine.hotspots.toggle_visibility)

    def _dispatch(self, action: Callable, *args):
        with self._engine_lock:
            return action(*args)

    def _push_pose(self, client: viser.ClientHandle, pose: CameraPose):
        self._last_pushed[client.client_id] = pose
        with client.atomic():
            client.camera.position = pose.position
            client.camera.look_at = pose.target

    def _sync_ui(self):
        """Mirror engine state into the GUI and scene."""
        engine = self.engine
        self.mode_display.value = engine.mode.value
        self.loading_display.value = f"{engine.loading_percentage:.0f}%"
        self.zoom_display.value = f"{engine.zoom_percentage}%"

        if abs(self.zoom_slider.value - engine.zoom.zoom) > 1e-9:
            self.zoom_slider.value = engine.zoom.zoom
        if int(self.frame_slider.value) != engine.rotation.frame:
            self.frame_slider.value = engine.rotation.frame

        for handle in self._hotspot_handles.values():
            handle.visible = engine.hotspots.visible

        active = engine.active_hotspot
        if active is None:
            self.hotspot_panel.content = "_Click a marker for details_"
        else:
            self.hotspot_panel.content = f"### {active.icon} {active.title}\n\n{active.description}"

        self._show_frame_image()

    def _show_frame_image(self):
        """Show the loaded frame for the current rotation as the scene background."""
        handles = self.engine.loaded_handles
        if not handles or self.engine.mode is not Mode.MANUAL:
            return
        frame = self.engine.rotation.frame % len(handles)
        if frame == self._last_frame_shown:
            return
        self._last_frame_shown = frame
        self.server.scene.set_background_image(np.asarray(handles[frame]))

    def step(self, now_ms: float) -> CameraPose:
        """Run one engine tick and push the resulting pose to every client."""
        with self._engine_lock:
            pose = self.engine.tick(now_ms)
        for client in self.server.get_clients().values():
            pushed = self._last_pushed.get(client.client_id)
            if pushed is None or not _poses_close(pushed, pose):
                self._push_pose(client, pose)
        self._sync_ui()
        return pose

    def run(self):
        """Run the render loop until interrupted."""
        interval = 1.0 / self.fps
        self._running = True
        self.engine.mount(time.monotonic() * 1000.0)

        try:
            logger.info("Viewer running. Press Ctrl+C to stop.")
            while self._running:
                started = time.monotonic()
                self.step(started * 1000.0)
                time.sleep(max(0.0, interval - (time.monotonic() - started)))

        except KeyboardInterrupt:
            logger.info("Viewer stopped")
        finally:
            self.stop()

    def stop(self):
        self._running = False
        self.engine.dispose()
        self.server.stop()
