"""Tests for hotspot selection and projection."""

import pytest

from view_engine.camera_pose import CameraPose
from view_engine.hotspots import DEFAULT_HOTSPOTS, Hotspot, HotspotRegistry, project_to_screen


@pytest.fixture
def registry():
    return HotspotRegistry(DEFAULT_HOTSPOTS)


class TestHotspotRegistry:
    """Single selection with toggle semantics."""

    def test_default_catalog(self, registry):
        assert len(registry) == 5
        assert [hotspot.id for hotspot in registry] == [
            'front-wing', 'halo', 'engine-cover', 'rear-wing', 'sidepod',
        ]

    def test_duplicate_ids_raise(self):
        hotspot = Hotspot('a', (0, 0, 0), 'A', 'first')
        with pytest.raises(ValueError, match="Duplicate"):
            HotspotRegistry([hotspot, hotspot])

    def test_select_toggles(self, registry):
        assert registry.select('halo').id == 'halo'
        assert registry.active_id == 'halo'
        assert registry.select('halo') is None
        assert registry.active is None

    def test_select_replaces(self, registry):
        registry.select('halo')
        registry.select('sidepod')
        assert registry.active_id == 'sidepod'

    def test_unknown_id_is_ignored(self, registry):
        registry.select('halo')
        assert registry.select('spoiler').id == 'halo'
        assert registry.active_id == 'halo'

    def test_at_most_one_active(self, registry):
        for hotspot_id in ['halo', 'sidepod', 'sidepod', 'front-wing', 'nope', 'halo']:
            registry.select(hotspot_id)
            assert registry.active_id is None or registry.active_id in registry

    def test_clear(self, registry):
        registry.select('halo')
        registry.clear()
        assert registry.active is None

    def test_visibility(self, registry):
        assert registry.visible
        assert registry.toggle_visibility() is False
        assert registry.toggle_visibility() is True

    def test_to_dict(self, registry):
        data = registry.get('halo').to_dict()
        assert data['world_position'] == [0.0, 1.2, 0.3]
        assert data['title'] == 'Halo Protection System'


class TestProjection:
    """World to screen projection."""

    def test_target_projects_to_center(self):
        pose = CameraPose((0, 0, 10), (0, 0, 0))
        x, y = project_to_screen((0, 0, 0), pose, 50.0, 800, 600)
        assert x == pytest.approx(400)
        assert y == pytest.approx(300)

    def test_axes(self):
        """Points to the right land right of center, points above land higher."""
        pose = CameraPose((0, 0, 10), (0, 0, 0))
        x, _ = project_to_screen((1, 0, 0), pose, 50.0, 800, 600)
        _, y = project_to_screen((0, 1, 0), pose, 50.0, 800, 600)
        assert x > 400
        assert y < 300

    def test_behind_camera(self):
        pose = CameraPose((0, 0, 10), (0, 0, 0))
        assert project_to_screen((0, 0, 20), pose, 50.0, 800, 600) is None
