"""
Microbench Core Engine (core/engine.py)

Coordinates benchmark discovery, metadata building, the runner, environment
gathering and the historical store.
"""
from __future__ import annotations
from typing import Dict, Iterable, List, Optional, Sequence
import logging
import re
import threading
from pathlib import Path

from .config import MicrobenchConfig
from .driver import AttributeDriver
from .factory import MetadataFactory
from .models import BenchmarkMetadata
from .progress import LoggingProgressLogger, ProgressLogger
from .reflection import ModuleReflector
from .results import SuiteResult
from .runner import Runner
from . import serializer
from .validate import SuiteDocumentValidator
from microbench.adapters.base import BaseStorage, StorageResult

# Configure logging
logger = logging.getLogger("microbench.engine")


class BenchEngine:
    """Microbench Core Engine"""

    def __init__(
        self,
        config: Optional[MicrobenchConfig] = None,
        storage: Optional[BaseStorage] = None,
        factory: Optional[MetadataFactory] = None,
        supplier=None,
        progress: Optional[ProgressLogger] = None,
    ):
        self.config = config or MicrobenchConfig.default()
        runner_cfg = self.config.runner

        if factory is None:
            factory = MetadataFactory(
                reflector=ModuleReflector(subject_prefix=runner_cfg.subject_prefix),
                driver=AttributeDriver(
                    default_iterations=runner_cfg.default_iterations,
                    subject_prefix=runner_cfg.subject_prefix,
                ),
            )
        self.factory = factory

        if storage is None and self.config.database.path:
            from microbench.adapters.sqlite_adapter import SQLiteStorage

            storage = SQLiteStorage(self.config.database.path, timeout=self.config.database.timeout)
        self.storage = storage

        if supplier is None:
            from microbench.environment.supplier import create_supplier

            supplier = create_supplier(config=self.config)
        self.supplier = supplier
        self.progress = progress or LoggingProgressLogger()
        self.validator = SuiteDocumentValidator(self.config.schema_path)

        self.stop_event = threading.Event()
        self._metadata_cache: Dict[Path, Optional[BenchmarkMetadata]] = {}

        logger.info(
            f"Engine initialized - Storage: {self.storage.__class__.__name__ if self.storage else 'none'}, "
            f"Patterns: {', '.join(runner_cfg.file_patterns)}"
        )

    # ---------- discovery ----------
    def collect_files(self, paths: Iterable[str | Path]) -> List[Path]:
        """Expand files and directories into benchmark files, in stable order"""
        files: List[Path] = []
        for raw in paths:
            path = Path(raw)
            if path.is_file():
                candidates = [path]
            elif path.is_dir():
                candidates = sorted(
                    {p for pattern in self.config.runner.file_patterns for p in path.rglob(pattern) if p.is_file()}
                )
            else:
                raise FileNotFoundError(f"Benchmark path not found: {path}")
            for candidate in candidates:
                resolved = candidate.resolve()
                if resolved not in files:
                    files.append(resolved)
        return files

    def load_metadata(self, path: str | Path) -> Optional[BenchmarkMetadata]:
        """Build metadata for ``path`` once; later calls return the cached result"""
        key = Path(path).resolve()
        if key not in self._metadata_cache:
            self._metadata_cache[key] = self.factory.get_metadata_for_file(key)
        return self._metadata_cache[key]

    def collect(
        self,
        paths: Iterable[str | Path],
        filter: Optional[str] = None,
        groups: Optional[Sequence[str]] = None,
        iterations: Optional[int] = None,
    ) -> List[BenchmarkMetadata]:
        """
        Collect runnable benchmarks

        Args:
            paths: Files or directories to scan
            filter: Regular expression searched in ``Class::subject``
            groups: Keep subjects belonging to at least one of these groups
            iterations: Override the iteration count of every subject
        """
        if iterations is not None and iterations < 1:
            raise ValueError(f"iterations must be at least 1, got {iterations}")
        pattern = re.compile(filter) if filter else None

        selected: List[BenchmarkMetadata] = []
        for path in self.collect_files(paths):
            metadata = self.load_metadata(path)
            if metadata is None:
                continue
            subjects = []
            for subject in metadata.iter_subjects():
                if pattern and not pattern.search(f"{metadata.class_name}::{subject.name}"):
                    continue
                if groups and not subject.in_groups(list(groups)):
                    continue
                if iterations is not None:
                    subject = subject.model_copy(update={"iterations": iterations})
                subjects.append(subject)
            if subjects:
                selected.append(metadata.model_copy(update={"subjects": subjects}))

        logger.info(
            f"Collected {len(selected)} benchmark(s), "
            f"{sum(len(b.subjects) for b in selected)} subject(s)"
        )
        return selected

    # ---------- execution ----------
    def abort(self) -> None:
        """Ask the running suite to stop before its next iteration"""
        self.stop_event.set()

    def run(
        self,
        paths: Iterable[str | Path],
        filter: Optional[str] = None,
        groups: Optional[Sequence[str]] = None,
        iterations: Optional[int] = None,
        context: Optional[str] = None,
    ) -> SuiteResult:
        benchmarks = self.collect(paths, filter=filter, groups=groups, iterations=iterations)
        environment = self.supplier.get_information()

        self.stop_event.clear()
        runner = Runner(
            benchmarks,
            progress=self.progress,
            measure_memory=self.config.runner.measure_memory,
            stop_event=self.stop_event,
            context=context if context is not None else self.config.runner.context,
        )
        suite = runner.run_all()
        suite.environment = environment
        return suite

    def store(self, suite: SuiteResult) -> StorageResult:
        """Persist a suite; failures are reported in the result rather than raised"""
        if self.storage is None:
            return StorageResult(success=False, error="No storage configured")
        try:
            return self.storage.store(suite)
        except Exception as e:
            logger.error(f"Failed to store suite: {e}")
            return StorageResult(success=False, data={}, error=str(e))

    # ---------- documents ----------
    def dump(self, suite: SuiteResult, path: str | Path) -> Path:
        written = serializer.dump_file(suite, path)
        logger.info(f"Suite written to {written}")
        return written

    def load(self, path: str | Path) -> SuiteResult:
        return serializer.load_file(path, self.validator)

    def close(self) -> None:
        if self.storage is not None:
            self.storage.close()
