import threading

from photo_overlay.models import FrameSettings, OverlaySettings
from photo_overlay.pipeline.cache_manager import RenderCache, make_cache_key
from photo_overlay.pipeline.request import RequestVariant

OVERLAY = {
    'position': 'TopLeft',
    'font': {'size': 20, 'color': '#FFFFFF', 'weight': 'Bold'},
    'background': {'color': '#000000', 'opacity': 0.5, 'padding': 4},
}
OVERLAY_REORDERED = {
    'background': {'padding': 4, 'opacity': 0.5, 'color': '#000000'},
    'font': {'weight': 'Bold', 'color': '#FFFFFF', 'size': 20},
    'position': 'TopLeft',
}
FRAME = {'enabled': True, 'style': 'Polaroid', 'customProperties': {'shadowBlur': 4, 'cornerRadius': 2}}
FRAME_REORDERED = {'customProperties': {'cornerRadius': 2, 'shadowBlur': 4}, 'style': 'Polaroid', 'enabled': True}


def test_key_ignores_field_order():
    a = make_cache_key("/tmp/a.jpg", OVERLAY, FRAME, RequestVariant.Preview)
    b = make_cache_key("/tmp/a.jpg", OVERLAY_REORDERED, FRAME_REORDERED, RequestVariant.Preview)
    assert a == b
    assert a.startswith("unified_cache_")


def test_key_same_for_records_and_parsed_settings():
    a = make_cache_key("/tmp/a.jpg", OVERLAY, FRAME, RequestVariant.Both)
    b = make_cache_key(
        "/tmp/a.jpg", OverlaySettings.from_dict(OVERLAY), FrameSettings.from_dict(FRAME), RequestVariant.Both
    )
    assert a == b


def test_key_changes_with_any_input():
    base = make_cache_key("/tmp/a.jpg", OVERLAY, FRAME, RequestVariant.Preview)
    changed_frame = dict(FRAME, customProperties={'shadowBlur': 5, 'cornerRadius': 2})
    assert base != make_cache_key("/tmp/b.jpg", OVERLAY, FRAME, RequestVariant.Preview)
    assert base != make_cache_key("/tmp/a.jpg", OVERLAY, FRAME, RequestVariant.FullQuality)
    assert base != make_cache_key("/tmp/a.jpg", OVERLAY, changed_frame, RequestVariant.Preview)
    assert base != make_cache_key("/tmp/a.jpg", OVERLAY, FRAME, RequestVariant.Preview, extra={'previewMax': [10, 10]})


def test_put_then_get_returns_same_bytes():
    cache = RenderCache()
    cache.put("k", preview_data=b"preview", full_data=b"full")
    entry = cache.get("k")
    assert entry.preview_data == b"preview"
    assert entry.full_data == b"full"
    assert entry.size_bytes == len(b"preview") + len(b"full")
    assert cache.get("missing") is None


def test_batch_eviction_drops_oldest_twenty():
    cache = RenderCache(capacity=100, evict_batch=20)
    keys = [f"key-{i}" for i in range(101)]
    for key in keys:
        cache.put(key, preview_data=key.encode())

    assert len(cache) == 81
    for key in keys[:20]:
        assert key not in cache
    for key in keys[20:]:
        assert key in cache


def test_replacing_entry_does_not_grow_cache():
    cache = RenderCache(capacity=3, evict_batch=1)
    cache.put("a", preview_data=b"1")
    cache.put("a", preview_data=b"2")
    assert len(cache) == 1
    assert cache.get("a").preview_data == b"2"


def test_clear():
    cache = RenderCache()
    cache.put("a", full_data=b"x")
    cache.clear()
    assert len(cache) == 0


def test_concurrent_puts_respect_capacity():
    cache = RenderCache(capacity=50, evict_batch=10)

    def worker(offset):
        for i in range(100):
            cache.put(f"{offset}-{i}", preview_data=b"x")

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(cache) <= 50
