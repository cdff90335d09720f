"""Tests for asset preloading, progress aggregation and placeholders."""

import pytest
from PIL import Image

from view_engine.asset_cache import (
    DEFAULT_VIEW_GROUPS,
    PLACEHOLDER_ACCENT,
    PLACEHOLDER_BACKGROUND,
    AssetPreloadCache,
    ImageFileFetcher,
    LoadBatch,
    LoadingProgress,
    create_placeholder,
    generate_image_paths,
)
from conftest import RecordingFetcher


class TestLoad:
    """Batch loading results and progress reporting."""

    def test_handles_in_input_order(self, cache):
        handles = cache.load(['b', 'a', 'c'])
        assert handles == ['handle:b', 'handle:a', 'handle:c']

    def test_progress_is_monotonic_and_ends_at_100(self, cache):
        events = []
        cache.load([f"img-{i}" for i in range(10)], events.append)

        assert len(events) == 10
        assert [e.loaded for e in events] == list(range(1, 11))
        percentages = [e.percentage for e in events]
        assert percentages == sorted(percentages)
        assert events[-1] == LoadingProgress(loaded=10, total=10, percentage=100.0)
        assert sum(1 for e in events if e.percentage == 100.0) == 1

    def test_empty_batch_reports_once(self, cache):
        events = []
        assert cache.load([], events.append) == []
        assert events == [LoadingProgress(loaded=0, total=0, percentage=100.0)]

    def test_failed_key_gets_placeholder(self):
        fetcher = RecordingFetcher(missing={'broken'})
        cache = AssetPreloadCache(fetcher=fetcher)
        try:
            events = []
            handles = cache.load(['ok', 'broken'], events.append)
            assert handles[0] == 'handle:ok'
            assert handles[1] is cache.placeholder
            assert cache.is_placeholder('broken')
            assert not cache.is_placeholder('ok')
            # Failures still count toward progress
            assert events[-1].percentage == 100.0
        finally:
            cache.shutdown()

    def test_fetcher_exception_gets_placeholder(self):
        def exploding(key):
            raise IOError(f"cannot read {key}")

        cache = AssetPreloadCache(fetcher=exploding)
        try:
            assert cache.load(['x']) == [cache.placeholder]
        finally:
            cache.shutdown()

    def test_progress_callback_error_does_not_break_load(self, cache):
        def bad_callback(progress):
            raise RuntimeError("ui gone")

        assert cache.load(['a'], bad_callback) == ['handle:a']

    def test_submit_returns_future(self, cache):
        future = cache.submit(['a', 'b'])
        assert future.result(timeout=5) == ['handle:a', 'handle:b']


class TestCaching:
    """Memoization and single-flight fetching."""

    def test_cached_key_is_not_refetched(self, cache, fetcher):
        cache.load(['a'])
        events = []
        cache.load(['a'], events.append)
        assert fetcher.calls == ['a']
        assert events == [LoadingProgress(loaded=1, total=1, percentage=100.0)]

    def test_concurrent_batches_share_fetch(self):
        fetcher = RecordingFetcher(blocked={'shared'})
        cache = AssetPreloadCache(fetcher=fetcher)
        try:
            first = cache.submit(['shared', 'one'])
            second = cache.submit(['shared', 'two'])
            fetcher.gate.set()
            assert first.result(timeout=5)[0] == 'handle:shared'
            assert second.result(timeout=5)[0] == 'handle:shared'
            assert fetcher.calls.count('shared') == 1
            assert cache.fetch_count == 3
        finally:
            cache.shutdown()

    def test_has_and_get_never_fetch(self, cache, fetcher):
        assert not cache.has('a')
        assert cache.get('a') is None
        assert fetcher.calls == []
        cache.load(['a'])
        assert cache.has('a')
        assert cache.get('a') == 'handle:a'
        assert len(cache) == 1

    def test_clear_forces_refetch(self, cache, fetcher):
        cache.load(['a'])
        cache.clear()
        assert not cache.has('a')
        cache.load(['a'])
        assert fetcher.calls == ['a', 'a']

    def test_statistics(self):
        cache = AssetPreloadCache(fetcher=RecordingFetcher(missing={'bad'}))
        try:
            cache.load(['good', 'bad'])
            stats = cache.get_statistics()
            assert stats['cached_assets'] == 2
            assert stats['failed_assets'] == 1
            assert stats['in_flight'] == 0
            assert stats['fetches_issued'] == 2
        finally:
            cache.shutdown()

    def test_preload_groups(self, cache, fetcher):
        futures = cache.preload_groups([DEFAULT_VIEW_GROUPS['front']], base_path='/car-images/')
        assert len(futures[0].result(timeout=5)) == 4
        assert cache.has('/car-images/front/car-front-1.png')


class TestLoadBatch:
    """Progress bookkeeping."""

    def test_settle_twice_is_ignored(self):
        batch = LoadBatch(['a', 'b'])
        assert batch.settle(0, True) is False
        assert batch.settle(0, True) is False
        assert batch.settle(1, False) is True
        assert batch.loaded_count == 2
        assert batch.failed_count == 1


class TestPlaceholder:
    """Placeholder image generation."""

    def test_placeholder_appearance(self):
        image = create_placeholder()
        assert image.size == (400, 400)
        assert image.mode == 'RGB'
        assert image.getpixel((0, 0)) == PLACEHOLDER_BACKGROUND
        assert image.getpixel((10, 200)) == PLACEHOLDER_ACCENT

    def test_placeholder_is_shared(self, cache):
        assert cache.placeholder is cache.placeholder


class TestImageFileFetcher:
    """Default fetcher reading from disk."""

    def test_loads_rgb(self, tmp_path):
        Image.new('RGBA', (8, 8), (255, 0, 0, 128)).save(tmp_path / 'car.png')
        image = ImageFileFetcher(tmp_path)('/car.png')
        assert image.mode == 'RGB'
        assert image.size == (8, 8)

    def test_missing_file_returns_none(self, tmp_path):
        assert ImageFileFetcher(tmp_path)('nope.png') is None


class TestImagePaths:
    """View group key generation."""

    def test_generate_image_paths(self):
        paths = generate_image_paths('/car-images/', 'exterior/', 3)
        assert paths == [
            '/car-images/exterior/car-exterior-1.png',
            '/car-images/exterior/car-exterior-2.png',
            '/car-images/exterior/car-exterior-3.png',
        ]

    def test_default_groups(self):
        assert {group_id: group.frames for group_id, group in DEFAULT_VIEW_GROUPS.items()} == {
            'exterior': 8, 'interior': 1, 'front': 4, 'detail': 3,
        }

    @pytest.mark.parametrize("extension", ["jpg", "webp"])
    def test_extension(self, extension):
        assert DEFAULT_VIEW_GROUPS['interior'].image_paths(extension=extension) == [
            f'interior/car-interior-1.{extension}'
        ]
