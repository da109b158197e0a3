"""Thumbnail Engine - freedesktop.org thumbnail cache core.

This package provides:
- Cache keys (cache_key)
- Artifact reading/writing with freshness metadata (cache_store)
- Decoding and resizing (renderer, codec, formats)
- Coalesced, pool-parallel generation (orchestrator, pregenerate)

Usage:
    from background_picker.thumbnail_engine import SizeClass, ThumbnailCacheStore, ThumbnailOrchestrator

    with ThumbnailOrchestrator(ThumbnailCacheStore()) as orchestrator:
        for result in orchestrator.ensure(paths, SizeClass.NORMAL):
            ...
"""

from .cache_key import derive, file_uri
from .cache_store import ThumbnailCacheStore, default_cache_root
from .models import CacheEntry, GenerationTask, SizeClass, SourceImage, ThumbnailResult
from .orchestrator import ThumbnailOrchestrator
from .pregenerate import PregenerateSummary, pregenerate
from .renderer import RenderedThumbnail, ThumbnailRenderer

__all__ = [
    "CacheEntry",
    "GenerationTask",
    "PregenerateSummary",
    "RenderedThumbnail",
    "SizeClass",
    "SourceImage",
    "ThumbnailCacheStore",
    "ThumbnailOrchestrator",
    "ThumbnailRenderer",
    "ThumbnailResult",
    "default_cache_root",
    "derive",
    "file_uri",
    "pregenerate",
]
