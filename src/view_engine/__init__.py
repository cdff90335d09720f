"""View-state and motion engine for an interactive product configurator."""

from .asset_cache import AssetPreloadCache, LoadingProgress, ViewGroup, generate_image_paths
from .camera_pose import CameraPose, Keyframe, OrbitParams
from .config import ViewerSettings, load_settings, save_settings
from .easing import ease_in_out_cubic, ease_out_cubic, get_easing, linear
from .hotspots import Hotspot, HotspotRegistry, project_to_screen
from .keyframes import DEMO_KEYFRAMES, KeyframeAnimator, load_keyframes, save_keyframes
from .rotation import PointerRotationMapper, ScrollTiltMapper
from .timers import ClickCounter, TimerQueue
from .view_state import Mode, TransitionPhase, ViewStateMachine
from .zoom import ZoomController

__all__ = [
    'AssetPreloadCache',
    'LoadingProgress',
    'ViewGroup',
    'generate_image_paths',
    'CameraPose',
    'Keyframe',
    'OrbitParams',
    'ViewerSettings',
    'load_settings',
    'save_settings',
    'ease_in_out_cubic',
    'ease_out_cubic',
    'get_easing',
    'linear',
    'Hotspot',
    'HotspotRegistry',
    'project_to_screen',
    'DEMO_KEYFRAMES',
    'KeyframeAnimator',
    'load_keyframes',
    'save_keyframes',
    'PointerRotationMapper',
    'ScrollTiltMapper',
    'ClickCounter',
    'TimerQueue',
    'Mode',
    'TransitionPhase',
    'ViewStateMachine',
    'ZoomController',
]
