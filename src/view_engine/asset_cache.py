"""Asset preloading and caching for viewer images.

This module loads the images behind each logical view group in parallel,
memoizes them by key, reports aggregate batch progress and substitutes a
placeholder image for anything that fails to load, so a missing asset never
blocks the viewer.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union
import logging
import time

from PIL import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)

PLACEHOLDER_SIZE = (400, 400)
PLACEHOLDER_BACKGROUND = (26, 26, 26)
PLACEHOLDER_ACCENT = (212, 175, 55)
PLACEHOLDER_LABEL = "Image Not Available"


class LoadStatus(Enum):
    PENDING = 'pending'
    LOADED = 'loaded'
    FAILED = 'failed'


@dataclass
class LoadTask:
    key: str
    status: LoadStatus = LoadStatus.PENDING


@dataclass(frozen=True)
class LoadingProgress:
    """Progress event delivered to batch progress callbacks."""
    loaded: int
    total: int
    percentage: float


ProgressCallback = Callable[[LoadingProgress], None]
Fetcher = Callable[[str], Any]


class LoadBatch:
    """Progress bookkeeping for the keys of a single ``load`` call.

    Settling is serialized under a lock so callbacks observe a strictly
    increasing ``loaded`` count even when keys finish on different threads.
    """

    def __init__(self, keys: Sequence[str], on_progress: Optional[ProgressCallback] = None):
        self.tasks: List[LoadTask] = [LoadTask(key) for key in keys]
        self.on_progress = on_progress
        self.loaded_count = 0
        self.failed_count = 0
        self.started_at = time.time()
        self._lock = threading.Lock()

    @property
    def total(self) -> int:
        return len(self.tasks)

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 100.0
        return self.loaded_count / self.total * 100

    @property
    def complete(self) -> bool:
        return self.loaded_count >= self.total

    def settle(self, index: int, succeeded: bool) -> bool:
        """Mark one task as settled and report progress.

        Args:
            index: Position of the task in the batch
            succeeded: Whether the real asset was obtained

        Returns:
            True when this call settled the last outstanding task
        """
        with self._lock:
            task = self.tasks[index]
            if task.status is not LoadStatus.PENDING:
                return False
            task.status = LoadStatus.LOADED if succeeded else LoadStatus.FAILED
            self.loaded_count += 1
            if not succeeded:
                self.failed_count += 1
            self._report()
            return self.complete

    def report_empty(self) -> None:
        with self._lock:
            self._report()

    def _report(self) -> None:
        if self.on_progress is None:
            return
        progress = LoadingProgress(
            loaded=self.loaded_count,
            total=self.total,
            percentage=self.percentage,
        )
        try:
            self.on_progress(progress)
        except Exception as e:
            logger.error(f"Progress callback failed at {progress.loaded}/{progress.total}: {e}")


def create_placeholder(size: Tuple[int, int] = PLACEHOLDER_SIZE) -> Image.Image:
    """Create the stand-in image shown for assets that failed to load.

    Dark background, gold border inset by 10 px and a centered label.

    Args:
        size: Placeholder size (width, height)

    Returns:
        RGB placeholder image
    """
    width, height = size
    image = Image.new('RGB', (width, height), color=PLACEHOLDER_BACKGROUND)
    draw = ImageDraw.Draw(image)
    draw.rectangle([10, 10, width - 11, height - 11], outline=PLACEHOLDER_ACCENT, width=2)

    font = ImageFont.load_default()
    left, top, right, bottom = draw.textbbox((0, 0), PLACEHOLDER_LABEL, font=font)
    text_x = (width - (right - left)) / 2
    text_y = (height - (bottom - top)) / 2
    draw.text((text_x, text_y), PLACEHOLDER_LABEL, fill=PLACEHOLDER_ACCENT, font=font)

    return image


class ImageFileFetcher:
    """Default fetcher: opens image files relative to a base directory."""

    def __init__(self, base_path: Union[str, Path] = "."):
        self.base_path = Path(base_path)

    def __call__(self, key: str) -> Optional[Image.Image]:
        """Load a single image from disk.

        Args:
            key: Path of the image, relative to the base directory

        Returns:
            RGB image or None if the file does not exist
        """
        path = self.base_path / key.lstrip('/')
        if not path.exists():
            logger.warning(f"Image not found: {path}")
            return None

        with Image.open(path) as image:
            # Convert to RGB if necessary (handles RGBA, grayscale, etc.)
            return image.convert('RGB')


class AssetPreloadCache:
    """Loads and memoizes asset handles with single-flight semantics per key."""

    def __init__(self,
                 fetcher: Optional[Fetcher] = None,
                 max_workers: int = 4,
                 placeholder_size: Tuple[int, int] = PLACEHOLDER_SIZE):
        """Initialize the cache.

        Args:
            fetcher: Callable mapping a key to a handle. Returning None or
                raising marks the key as failed. Defaults to loading image
                files relative to the working directory.
            max_workers: Number of parallel loader threads
            placeholder_size: Size of the placeholder image for failed keys
        """
        self.fetcher: Fetcher = fetcher if fetcher is not None else ImageFileFetcher()
        self.placeholder_size = placeholder_size
        self._placeholder: Optional[Image.Image] = None

        self._handles: Dict[str, Any] = {}
        self._failed: set = set()
        self._inflight: Dict[str, Future] = {}
        self.fetch_count = 0

        # Re-entrant: done-callbacks of already finished futures run inline
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='asset-loader')

    @property
    def placeholder(self) -> Image.Image:
        """The shared placeholder handle, created on first use."""
        with self._lock:
            if self._placeholder is None:
                self._placeholder = create_placeholder(self.placeholder_size)
            return self._placeholder

    def has(self, key: str) -> bool:
        return key in self._handles

    def get(self, key: str) -> Optional[Any]:
        """Get a cached handle without triggering a fetch."""
        return self._handles.get(key)

    def is_placeholder(self, key: str) -> bool:
        """True when the cached handle for ``key`` is the failure placeholder."""
        return key in self._failed

    def __len__(self) -> int:
        return len(self._handles)

    def submit(self, keys: Iterable[str],
               on_progress: Optional[ProgressCallback] = None) -> 'Future[List[Any]]':
        """Start loading a batch of keys.

        The returned future resolves to one handle per key, in input order,
        once every key has settled. It never fails because of a single key:
        failed keys resolve to the placeholder.

        Args:
            keys: Asset keys to load
            on_progress: Called once per settled key with batch progress

        Returns:
            Future resolving to the list of handles
        """
        keys = list(keys)
        batch = LoadBatch(keys, on_progress)
        result: Future = Future()
        handles: List[Any] = [None] * len(keys)

        if not keys:
            batch.report_empty()
            result.set_result(handles)
            return result

        logger.info(f"Loading batch of {len(keys)} assets")
        with self._lock:
            key_futures = [self._future_for(key) for key in keys]

        for index, key_future in enumerate(key_futures):
            key_future.add_done_callback(partial(self._on_key_settled, batch, handles, index, result))

        return result

    def load(self, keys: Iterable[str],
             on_progress: Optional[ProgressCallback] = None) -> List[Any]:
        """Load a batch of keys and wait for all of them to settle."""
        return self.submit(keys, on_progress).result()

    def preload_groups(self, groups: Iterable['ViewGroup'], base_path: str = "") -> List[Future]:
        """Warm the cache for several view groups in the background.

        Args:
            groups: View groups whose frames should be cached
            base_path: Prefix applied to generated frame paths

        Returns:
            One future per group
        """
        futures = []
        for group in groups:
            keys = group.image_paths(base_path)
            logger.debug(f"Background preload of view '{group.id}' ({len(keys)} frames)")
            futures.append(self.submit(keys))
        return futures

    def clear(self) -> None:
        """Drop every cached handle so later loads fetch again."""
        with self._lock:
            self._handles.clear()
            self._failed.clear()
        logger.info("Asset cache cleared")

    def shutdown(self, wait: bool = True) -> None:
        """Stop the loader threads."""
        self._executor.shutdown(wait=wait)

    def get_statistics(self) -> Dict[str, Any]:
        """Get statistics about cached assets.

        Returns:
            Dictionary with cache statistics
        """
        with self._lock:
            return {
                'cached_assets': len(self._handles),
                'failed_assets': len(self._failed),
                'in_flight': len(self._inflight),
                'fetches_issued': self.fetch_count,
            }

    def _future_for(self, key: str) -> Future:
        # Caller holds self._lock
        if key in self._handles:
            cached: Future = Future()
            cached.set_result((self._handles[key], key not in self._failed))
            return cached

        if key in self._inflight:
            return self._inflight[key]

        self.fetch_count += 1
        key_future = self._executor.submit(self._fetch, key)
        self._inflight[key] = key_future
        # Registered first so the cache is populated before any batch sees the result
        key_future.add_done_callback(partial(self._store, key))
        return key_future

    def _fetch(self, key: str) -> Tuple[Any, bool]:
        try:
            handle = self.fetcher(key)
        except Exception as e:
            logger.warning(f"Failed to load asset {key}: {e}")
            return self.placeholder, False

        if handle is None:
            logger.warning(f"Failed to load asset {key}, using placeholder")
            return self.placeholder, False
        return handle, True

    def _store(self, key: str, key_future: Future) -> None:
        handle, succeeded = key_future.result()
        with self._lock:
            self._handles[key] = handle
            if succeeded:
                self._failed.discard(key)
            else:
                self._failed.add(key)
            self._inflight.pop(key, None)

    def _on_key_settled(self, batch: LoadBatch, handles: List[Any], index: int,
                        result: Future, key_future: Future) -> None:
        handle, succeeded = key_future.result()
        handles[index] = handle
        if batch.settle(index, succeeded):
            elapsed = time.time() - batch.started_at
            logger.info(f"Loaded {batch.total - batch.failed_count}/{batch.total} assets "
                        f"in {elapsed:.2f} seconds ({batch.failed_count} placeholders)")
            result.set_result(handles)


@dataclass(frozen=True)
class ViewGroup:
    """A logical view whose frames are loaded together."""
    id: str
    label: str
    path: str
    frames: int
    icon: str = ''
    description: str = ''

    def image_paths(self, base_path: str = "", extension: str = "png") -> List[str]:
        return generate_image_paths(base_path, self.path, self.frames, extension)


def generate_image_paths(base_path: str, view_path: str, frame_count: int,
                         extension: str = "png") -> List[str]:
    """Generate frame paths for a view.

    Frames are numbered from 1: ``{base}{view}/car-{view}-{i}.{ext}``.

    Args:
        base_path: Prefix such as ``"/car-images/"``
        view_path: View directory with trailing slash, e.g. ``"exterior/"``
        frame_count: Number of frames in the view
        extension: File extension without the dot

    Returns:
        List of frame paths
    """
    view_name = view_path.replace('/', '')
    return [
        f"{base_path}{view_path}car-{view_name}-{i}.{extension}"
        for i in range(1, frame_count + 1)
    ]


DEFAULT_VIEW_GROUPS: Dict[str, ViewGroup] = {
    'exterior': ViewGroup('exterior', 'Exterior', 'exterior/', 8, '\U0001F697',
                          '360° exterior view showcasing body lines and design'),
    'interior': ViewGroup('interior', 'Interior', 'interior/', 1, '\U0001FA91',
                          'Luxury cabin with premium finishes'),
    'front': ViewGroup('front', 'Front', 'front/', 4, '\U0001F3AF',
                       'Detailed front view and headlights'),
    'detail': ViewGroup('detail', 'Details', 'detail/', 3, '✨',
                        'Close-up shots of special features'),
}
