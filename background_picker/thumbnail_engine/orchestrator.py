"""ThumbnailOrchestrator: lookup / validate / generate / store per requested image.

Requests for the same (cache key, size class) are coalesced: while one is in
flight, later requests attach to its future instead of queuing new work, so
a thumbnail is never decoded twice concurrently and two workers never race
to write the same artifact.

Work happens in two thread pools, mirroring the I/O + decode split used by
image loaders:

- an I/O pool stats the source and reads the cached artifact;
- a render pool (bounded by the configured worker count) decodes, resizes
  and writes misses.

The calling thread canonicalizes the path (resolving symlinks costs a few
lstat/readlink calls for str and Path requests; SourceImage requests are
already canonical), derives the key and submits. Stats, cache reads, decodes
and writes all run on the pools. pyvips releases the GIL while it works,
so threads run decodes in parallel.
"""

from __future__ import annotations

import dataclasses
import os
import threading
from collections.abc import Iterable, Iterator
from concurrent.futures import Future, ThreadPoolExecutor, as_completed

from background_picker.errors import CacheWriteError, DecodeError
from background_picker.logger import get_logger
from background_picker.path_utils import abs_path_str

from .cache_key import derive
from .cache_store import ThumbnailCacheStore
from .metrics import Event, metrics
from .models import GenerationTask, SizeClass, SourceImage, ThumbnailResult
from .renderer import RenderedThumbnail, ThumbnailRenderer

_logger = get_logger("orchestrator")

MIN_THREAD_COUNT = 4

ImageRequest = SourceImage | str | os.PathLike
_Slot = tuple[str, SizeClass]


def default_worker_count() -> int:
    return max(os.cpu_count() or 1, MIN_THREAD_COUNT)


class ThumbnailOrchestrator:
    """Coordinates cache lookups and thumbnail generation across worker pools.

    Use as a context manager, or call `shutdown` when done.
    """

    def __init__(
        self,
        store: ThumbnailCacheStore,
        renderer: ThumbnailRenderer | None = None,
        workers: int | None = None,
        io_workers: int | None = None,
        reuse_larger: bool = True,
    ) -> None:
        self.store = store
        self.renderer = renderer if renderer is not None else ThumbnailRenderer()
        self.workers = int(workers) if workers else default_worker_count()
        max_io = int(io_workers) if io_workers else max(2, min(4, (os.cpu_count() or 2)))
        self.reuse_larger = reuse_larger
        self._render_pool = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="thumb-render")
        self._io_pool = ThreadPoolExecutor(max_workers=max_io, thread_name_prefix="thumb-io")
        self._in_flight: dict[_Slot, Future] = {}
        self._lock = threading.Lock()
        _logger.debug("orchestrator init: render_workers=%s io_workers=%s", self.workers, max_io)

    # ---- public API ------------------------------------------------
    def submit(self, item: ImageRequest, size_class: SizeClass) -> Future:
        """Request one thumbnail; returns a future resolving to a ThumbnailResult.

        The future never raises: failures are reported through
        ``ThumbnailResult.error``.
        """
        metrics.record(Event.REQUEST)
        if isinstance(item, SourceImage):
            path, source = item.absolute_path, item
        else:
            # Symlinks resolve here so every spelling of a file shares one key.
            path, source = abs_path_str(item), None

        try:
            key = derive(path)
        except ValueError as exc:
            done: Future = Future()
            done.set_result(ThumbnailResult(path, size_class, error=exc))
            return done

        slot = (key, size_class)
        with self._lock:
            future = self._in_flight.get(slot)
            if future is not None:
                metrics.record(Event.COALESCED)
                _logger.debug("request coalesced: path=%s size=%s", path, size_class.value)
                return future
            future = Future()
            # Shared by every coalesced caller; nobody gets to cancel it.
            future.set_running_or_notify_cancel()
            self._in_flight[slot] = future
            in_flight = len(self._in_flight)

        _logger.debug("request queued: path=%s size=%s in_flight=%s", path, size_class.value, in_flight)
        try:
            self._io_pool.submit(self._run_stage, self._lookup_stage, slot, future, path, source)
        except RuntimeError as exc:
            self._finish(slot, future, ThumbnailResult(path, size_class, error=exc))
        return future

    def ensure(self, paths: Iterable[ImageRequest], size_class: SizeClass) -> Iterator[ThumbnailResult]:
        """Make sure every path has a fresh thumbnail; stream results as they complete.

        All requests are dispatched before this returns. Results arrive in
        completion order, one per requested item, each tagged with the path
        it was requested under.
        """
        waiting: dict[Future, list[str]] = {}
        for item in paths:
            tag = item.absolute_path if isinstance(item, SourceImage) else os.fspath(item)
            waiting.setdefault(self.submit(item, size_class), []).append(tag)
        return self._drain(waiting)

    def in_flight_count(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def shutdown(self, wait: bool = True) -> None:
        # Lookups hand misses to the render pool, so stop them first.
        self._io_pool.shutdown(wait=wait)
        self._render_pool.shutdown(wait=wait)

    def __enter__(self) -> ThumbnailOrchestrator:
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown(wait=True)

    # ---- internals -------------------------------------------------
    @staticmethod
    def _drain(waiting: dict[Future, list[str]]) -> Iterator[ThumbnailResult]:
        for future in as_completed(waiting):
            result: ThumbnailResult = future.result()
            for tag in waiting[future]:
                yield result if tag == result.path else dataclasses.replace(result, path=tag)

    def _finish(self, slot: _Slot, future: Future, result: ThumbnailResult) -> None:
        # Leave the in-flight map before resolving, so a caller reacting to
        # the result and asking again starts from a fresh cache lookup.
        with self._lock:
            if self._in_flight.get(slot) is future:
                del self._in_flight[slot]
        future.set_result(result)

    def _run_stage(self, stage, slot: _Slot, future: Future, path: str, *args) -> None:
        try:
            stage(slot, future, path, *args)
        except Exception as exc:
            _logger.warning("thumbnail pipeline failed for %s: %s", path, exc)
            _logger.debug("thumbnail pipeline traceback", exc_info=True)
            if not future.done():
                self._finish(slot, future, ThumbnailResult(path, slot[1], error=exc))

    def _lookup_stage(self, slot: _Slot, future: Future, path: str, source: SourceImage | None) -> None:
        key, size_class = slot
        if source is None:
            try:
                source = SourceImage.from_path(path)
            except OSError as exc:
                err = DecodeError(path, exc.strerror or str(exc))
                _logger.warning("no thumbnail for %s: %s", path, err.reason)
                self._finish(slot, future, ThumbnailResult(path, size_class, error=err))
                return

        entry = self.store.lookup(key, size_class)
        if entry is not None and self.store.is_fresh(entry, source):
            metrics.record(Event.CACHE_HIT)
            _logger.debug("cache hit: %s (%s)", path, size_class.value)
            self._finish(slot, future, ThumbnailResult(path, size_class, entry, cached=True, stored=True))
            return

        if entry is not None:
            _logger.debug(
                "stale thumbnail: %s stored_mtime=%s current_mtime=%s",
                path,
                entry.stored_modified_time,
                source.modified_time,
            )
        task = GenerationTask(source=source, key=key, size_class=size_class)
        metrics.record(Event.GENERATION)
        try:
            self._render_pool.submit(self._run_stage, self._generate_stage, slot, future, path, task)
        except RuntimeError as exc:
            self._finish(slot, future, ThumbnailResult(path, size_class, error=exc))

    def _from_larger(self, task: GenerationTask) -> RenderedThumbnail | None:
        for size_class in task.size_class.larger():
            entry = self.store.lookup(task.key, size_class)
            if entry is not None and self.store.is_fresh(entry, task.source):
                metrics.record(Event.DOWNSCALED)
                _logger.debug("reusing %s thumbnail for %s", size_class.value, task.source.absolute_path)
                return self.renderer.downscale(entry, task.size_class)
        return None

    def _generate_stage(self, slot: _Slot, future: Future, path: str, task: GenerationTask) -> None:
        rendered = self._from_larger(task) if self.reuse_larger else None
        if rendered is None:
            try:
                rendered = self.renderer.render(task.source, task.size_class)
            except DecodeError as exc:
                metrics.record(Event.DECODE_ERROR)
                _logger.warning("no thumbnail for %s: %s", path, exc.reason)
                self._finish(slot, future, ThumbnailResult(path, task.size_class, error=exc))
                return

        entry = rendered.to_entry(task.key, task.size_class)
        try:
            self.store.store(task.key, task.size_class, entry)
        except CacheWriteError as exc:
            # Not retried here; the next run sees a miss and tries again.
            metrics.record(Event.STORE_FAILURE)
            _logger.warning("thumbnail for %s generated but not cached: %s", path, exc)
            self._finish(slot, future, ThumbnailResult(path, task.size_class, entry, error=exc, stored=False))
            return

        self._finish(slot, future, ThumbnailResult(path, task.size_class, entry, stored=True))

