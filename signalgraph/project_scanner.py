"""Project discovery and parallel GDScript parsing."""

from __future__ import annotations

import math
import os
import queue
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Set

from .config import ScannerConfig
from .logging import get_logger
from .models import ParsedFile, ParseFailure, ScanEvent, ScanStats
from .parsers.tree_sitter import GDScriptParser, ParseError, ParserInitError
from .stores.cache_manager import GraphCacheManager, file_mtime_ms

_EXCLUDED_DIRS = {
    ".godot",
    ".import",
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "build",
    "dist",
    "__pycache__",
    ".signalgraph",
}

_PARALLEL_TIER_FILES = 64
_SMALL_TIER_WORKERS = 4
_POLL_SECONDS = 0.05

FULL = "full"
INCREMENTAL = "incremental"
SCAN_MODES = (FULL, INCREMENTAL)

ProgressCallback = Callable[[ScanEvent], None]

_logger = get_logger("project_scanner")


class ScanError(RuntimeError):
    """Raised when a scan cannot start at all."""


@dataclass
class _FileResult:
    path: Path
    parsed: Optional[ParsedFile] = None
    failure: Optional[ParseFailure] = None


class ProjectScanner:
    """Walks a Godot project and parses every script it finds.

    Small projects are parsed on the calling thread. Larger ones are split into
    contiguous chunks, one per worker thread; each worker owns its own parser
    and reports per-file results back through a queue. A worker that dies only
    costs the files of its chunk it had not reported yet.
    """

    def __init__(
        self,
        parser_factory: Callable[[], GDScriptParser] = GDScriptParser,
        cache_manager: GraphCacheManager | None = None,
        config: ScannerConfig | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self._parser_factory = parser_factory
        self.cache_manager = cache_manager or GraphCacheManager()
        self.config = config or ScannerConfig()
        self._progress = progress
        self.stats = ScanStats()
        self.failures: List[ParseFailure] = []
        self.discovered: List[str] = []

    def discover(self, root: Path | str) -> List[Path]:
        """Return every source file under ``root`` in a stable order."""
        root_path = Path(root)
        extensions = {ext.lower() for ext in self.config.extensions}
        return sorted(_iter_sources(root_path, extensions, set(self.config.exclude_dirs)))

    def scan(self, root: Path | str, mode: str = FULL) -> List[ParsedFile]:
        if mode not in SCAN_MODES:
            raise ValueError(f"Unknown scan mode: {mode!r}")
        started = time.perf_counter()
        self.stats = ScanStats()
        self.failures = []
        self._emit(ScanEvent(kind="scan_started", root=str(root), mode=mode))

        try:
            root_path = _resolve_root(root)
            main_parser = self._parser_factory()
            main_parser.init()
        except (FileNotFoundError, NotADirectoryError, ParserInitError) as exc:
            self._emit(ScanEvent(kind="scan_failed", root=str(root), mode=mode, error=str(exc)))
            raise ScanError(str(exc)) from exc

        files = self.discover(root_path)
        self.discovered = [str(path) for path in files]
        self.stats.files_discovered = len(files)
        self._evict_deleted(root_path, set(self.discovered))

        if mode == INCREMENTAL:
            targets = [path for path in files if self.cache_manager.is_stale(str(path))]
        else:
            targets = files
        self.stats.files_skipped = len(files) - len(targets)

        workers = self._worker_count(len(targets))
        self.stats.worker_count = workers
        _logger.debug(
            "Scanning %d of %d files under %s with %d worker(s)",
            len(targets),
            len(files),
            root_path,
            workers,
        )

        if workers <= 1:
            results = self._scan_serial(targets, main_parser, root_path, mode)
        else:
            results = self._scan_parallel(targets, workers, root_path, mode)

        order = {path: index for index, path in enumerate(targets)}
        results.sort(key=lambda item: order.get(Path(item.file_path), 0))
        for parsed in results:
            self.cache_manager.update_cache(parsed.file_path, parsed.mtime)

        self.stats.files_parsed = len(results)
        self.stats.files_failed = len(self.failures)
        self.stats.duration_ms = (time.perf_counter() - started) * 1000
        _logger.info(
            "Scan complete: %d discovered, %d parsed, %d skipped, %d failed",
            self.stats.files_discovered,
            self.stats.files_parsed,
            self.stats.files_skipped,
            self.stats.files_failed,
        )
        self._emit(
            ScanEvent(
                kind="scan_completed",
                root=str(root_path),
                mode=mode,
                files_processed=len(targets),
                total_files=len(targets),
                stats=self.stats,
            )
        )
        return results

    # ------------------------------------------------------------------
    # Internal helpers

    def _worker_count(self, file_count: int) -> int:
        if file_count < self.config.serial_threshold:
            return 1
        cpus = os.cpu_count() or 1
        if file_count < _PARALLEL_TIER_FILES:
            workers = min(_SMALL_TIER_WORKERS, cpus)
        else:
            workers = min(self.config.max_workers, cpus)
        return max(1, min(workers, file_count))

    def _scan_serial(
        self, files: Sequence[Path], parser: GDScriptParser, root: Path, mode: str
    ) -> List[ParsedFile]:
        results: List[ParsedFile] = []
        for processed, path in enumerate(files, start=1):
            try:
                result = _parse_one(parser, path)
            except Exception as exc:
                _logger.warning("Parser crashed on %s: %s", path, exc)
                result = _FileResult(
                    path=path, failure=ParseFailure(file_path=str(path), error=f"worker failed: {exc}")
                )
            self._collect(result, results)
            self._report_progress(processed, len(files), root, mode)
        return results

    def _scan_parallel(
        self, files: Sequence[Path], workers: int, root: Path, mode: str
    ) -> List[ParsedFile]:
        size = math.ceil(len(files) / workers)
        chunks = [list(files[start : start + size]) for start in range(0, len(files), size)]
        messages: "queue.Queue[_FileResult]" = queue.Queue()
        results: List[ParsedFile] = []
        reported: Set[Path] = set()

        def drain() -> None:
            while True:
                try:
                    message = messages.get_nowait()
                except queue.Empty:
                    return
                reported.add(message.path)
                self._collect(message, results)
                self._report_progress(len(reported), len(files), root, mode)

        with ThreadPoolExecutor(
            max_workers=len(chunks), thread_name_prefix="signalgraph-scan"
        ) as pool:
            futures: Dict[Future, List[Path]] = {
                pool.submit(self._parse_chunk, chunk, messages): chunk for chunk in chunks
            }
            pending = set(futures)
            while pending:
                _, pending = wait(pending, timeout=_POLL_SECONDS, return_when=FIRST_COMPLETED)
                drain()
        drain()

        for future, chunk in futures.items():
            exc = future.exception()
            if exc is None:
                continue
            lost = [path for path in chunk if path not in reported]
            _logger.warning(
                "Scan worker failed (%s); %d file(s) in its chunk were not parsed", exc, len(lost)
            )
            for path in lost:
                self.failures.append(
                    ParseFailure(file_path=str(path), error=f"worker failed: {exc}")
                )
        return results

    def _parse_chunk(self, chunk: Sequence[Path], messages: "queue.Queue[_FileResult]") -> None:
        parser = self._parser_factory()
        parser.init()
        for path in chunk:
            messages.put(_parse_one(parser, path))

    def _collect(self, result: _FileResult, results: List[ParsedFile]) -> None:
        if result.parsed is not None:
            results.append(result.parsed)
        elif result.failure is not None:
            self.failures.append(result.failure)

    def _report_progress(self, processed: int, total: int, root: Path, mode: str) -> None:
        if processed % self.config.progress_interval and processed != total:
            return
        self._emit(
            ScanEvent(
                kind="scan_progress",
                root=str(root),
                mode=mode,
                files_processed=processed,
                total_files=total,
            )
        )

    def _emit(self, event: ScanEvent) -> None:
        if self._progress is None:
            return
        try:
            self._progress(event)
        except Exception as exc:  # progress sinks are observability only
            _logger.warning("Progress callback failed on %s: %s", event.kind, exc)

    def _evict_deleted(self, root: Path, present: Set[str]) -> None:
        prefix = f"{root}{os.sep}"
        for cached in self.cache_manager.cached_files():
            if cached.startswith(prefix) and cached not in present:
                self.cache_manager.evict(cached)


def _resolve_root(root: Path | str) -> Path:
    root_path = Path(root).expanduser().resolve()
    if not root_path.exists():
        raise FileNotFoundError(f"Project path not found: {root}")
    if not root_path.is_dir():
        raise NotADirectoryError(f"Project path is not a directory: {root}")
    return root_path


def _iter_sources(root: Path, extensions: Set[str], extra_excludes: Set[str]) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        dirnames[:] = [
            name
            for name in dirnames
            if name not in _EXCLUDED_DIRS and name not in extra_excludes and not name.startswith(".")
        ]
        for filename in filenames:
            if Path(filename).suffix.lower() in extensions:
                yield current_dir / filename


def _parse_one(parser: GDScriptParser, path: Path) -> _FileResult:
    try:
        stat_result = path.stat()
        mtime = file_mtime_ms(path)
        source = parser.read_source(path)
        started = time.perf_counter()
        tree = parser.parse_bytes(source, label=str(path))
    except (OSError, ParseError) as exc:
        _logger.warning("Skipping %s: %s", path, exc)
        return _FileResult(path=path, failure=ParseFailure(file_path=str(path), error=str(exc)))
    return _FileResult(
        path=path,
        parsed=ParsedFile(
            tree=tree,
            file_path=str(path),
            size_bytes=stat_result.st_size,
            parse_duration_ms=(time.perf_counter() - started) * 1000,
            mtime=mtime,
            source=source,
        ),
    )


__all__ = ["FULL", "INCREMENTAL", "ProjectScanner", "ScanError", "SCAN_MODES"]
