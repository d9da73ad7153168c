"""Sync orchestrator: discover, parse, generate, diff and report.

One run is a pure function of the schema corpus and the previously committed
output tree. Documents are processed concurrently in worker threads; every
per-document failure is downgraded to a report entry, while environment
failures abort the run.
"""

import asyncio
from dataclasses import dataclass
import json
import time
import uuid

from ..core.config import SyncSettings
from ..core.exceptions import (
    NameCollisionError,
    OutputCollisionError,
    SchemaParseError,
    SyncEnvironmentError,
)
from ..core.ir import SchemaIR
from ..core.logging import OperationTimer, bind_context, clear_context, get_logger
from ..core.schema_parser import ParserOptions, SchemaParser
from ..generators import GeneratedFile, generate_all, output_package
from .report import ChangeKind, DocumentOutcome, DocumentStatus, FileChange, SyncPhase, SyncReport
from .sources import DocumentSource, FileSystemSource, matches_patterns
from .store import FileSystemStore, OutputStore

logger = get_logger(__name__)

MANIFEST_PATH = ".armgen-manifest.json"


@dataclass
class _DocumentResult:
    outcome: DocumentOutcome
    files: tuple[GeneratedFile, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.outcome.status == DocumentStatus.SUCCEEDED


class SchemaSync:
    """Re-runs the generation pipeline over a schema corpus.

    Example:
        sync = SchemaSync(settings)
        report = asyncio.run(sync.run())
    """

    def __init__(
        self,
        settings: SyncSettings,
        source: DocumentSource | None = None,
        store: OutputStore | None = None,
        parser: SchemaParser | None = None,
    ):
        """Initialize orchestrator.

        Args:
            settings: Run configuration
            source: Document source (defaults to the filesystem under
                ``settings.schemas_dir``)
            store: Output store (defaults to the filesystem under
                ``settings.output_dir``)
            parser: Schema parser (defaults to one built from ``settings``)
        """
        self.settings = settings
        self.source = source or FileSystemSource(settings.schemas_dir, settings.patterns)
        self.store = store or FileSystemStore(settings.output_dir)
        self.parser = parser or SchemaParser(
            ParserOptions(strip_expressions=settings.strip_expressions)
        )

    async def run(self, cancel_event: asyncio.Event | None = None) -> SyncReport:
        """Execute one sync run.

        Args:
            cancel_event: When set, documents that have not started yet are
                skipped; in-flight documents finish normally

        Returns:
            Completed report, including per-document failures

        Raises:
            SyncEnvironmentError: If discovery or persistence fails
        """
        report = SyncReport(run_id=uuid.uuid4().hex[:12], dry_run=self.settings.dry_run)
        bind_context(run_id=report.run_id)
        start = time.perf_counter()

        try:
            report.phase = SyncPhase.DISCOVER
            document_ids = sorted(self.source.discover())
            logger.info("Sync started", documents=len(document_ids), dry_run=report.dry_run)

            report.phase = SyncPhase.PARSE
            results = await self._process_all(document_ids, cancel_event)

            # Parse and generate run together per document; this checks their combined output
            report.phase = SyncPhase.GENERATE
            self._check_output_collisions(results)

            report.phase = SyncPhase.DIFF
            report.changes = self._diff_and_commit(results)

            report.phase = SyncPhase.REPORT
            report.documents = [result.outcome for result in results]
            report.phase = SyncPhase.COMPLETED
        except SyncEnvironmentError as e:
            report.error = str(e)
            logger.error("Sync aborted", phase=report.phase.value, error=str(e))
            report.phase = SyncPhase.ABORTED
            raise
        finally:
            report.duration_ms = round((time.perf_counter() - start) * 1000, 2)
            clear_context()

        logger.info(
            "Sync completed",
            succeeded=report.succeeded,
            failed=report.failed,
            skipped=report.skipped,
            changes=report.change_counts(),
            duration_ms=report.duration_ms,
        )
        return report

    async def _process_all(
        self, document_ids: list[str], cancel_event: asyncio.Event | None
    ) -> list[_DocumentResult]:
        semaphore = asyncio.Semaphore(self.settings.concurrency)

        async def worker(document_id: str) -> _DocumentResult:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return _DocumentResult(
                        DocumentOutcome(
                            document=document_id,
                            status=DocumentStatus.SKIPPED,
                            error_type="Cancelled",
                            reason="run cancelled before the document started",
                        )
                    )
                return await self._process_document(document_id)

        # gather keeps input order, so results stay sorted by document id
        return list(await asyncio.gather(*(worker(d) for d in document_ids)))

    async def _process_document(self, document_id: str) -> _DocumentResult:
        bind_context(document=document_id)
        timeout = self.settings.document_timeout_seconds
        start = time.perf_counter()

        try:
            ir, files = await asyncio.wait_for(
                asyncio.to_thread(self._build, document_id), timeout=timeout
            )
        except asyncio.TimeoutError:
            return self._failed(document_id, "TimeoutError", f"timed out after {timeout}s", start)
        except (SchemaParseError, NameCollisionError) as e:
            return self._failed(document_id, type(e).__name__, str(e), start)
        except SyncEnvironmentError:
            raise
        except Exception as e:
            logger.exception("Unexpected document failure", document=document_id)
            return self._failed(document_id, type(e).__name__, str(e), start)

        outcome = DocumentOutcome(
            document=document_id,
            status=DocumentStatus.SUCCEEDED,
            provider=ir.provider,
            api_version=ir.api_version,
            package=output_package(ir),
            files=[generated.path for generated in files],
            warnings=[str(warning) for warning in ir.warnings],
            duration_ms=_elapsed(start),
        )
        logger.info(
            "Document generated",
            provider=ir.provider,
            api_version=ir.api_version,
            files=len(files),
            warnings=len(ir.warnings),
        )
        return _DocumentResult(outcome, files)

    def _build(self, document_id: str) -> tuple[SchemaIR, tuple[GeneratedFile, ...]]:
        """Fetch, parse and generate one document. Runs in a worker thread."""
        data = self.source.fetch(document_id)
        with OperationTimer(logger, "parse", document=document_id):
            ir = self.parser.parse(data, source_path=document_id)
        with OperationTimer(logger, "generate", document=document_id):
            files = generate_all(ir)
        return ir, files

    @staticmethod
    def _failed(
        document_id: str, error_type: str, reason: str, start: float
    ) -> _DocumentResult:
        logger.warning("Document failed", error_type=error_type, reason=reason)
        return _DocumentResult(
            DocumentOutcome(
                document=document_id,
                status=DocumentStatus.FAILED,
                error_type=error_type,
                reason=reason,
                duration_ms=_elapsed(start),
            )
        )

    @staticmethod
    def _check_output_collisions(results: list[_DocumentResult]) -> None:
        """Fail every document whose package an earlier document already produced."""
        owners: dict[str, str] = {}
        for result in results:
            if not result.succeeded:
                continue
            package = result.outcome.package or ""
            if package not in owners:
                owners[package] = result.outcome.document
                continue

            error = OutputCollisionError(
                package,
                f"document '{owners[package]}'",
                f"document '{result.outcome.document}'",
            )
            logger.warning(
                "Output collision", document=result.outcome.document, package=package
            )
            result.outcome.status = DocumentStatus.FAILED
            result.outcome.error_type = type(error).__name__
            result.outcome.reason = str(error)
            result.outcome.files = []
            result.files = ()

    def _diff_and_commit(self, results: list[_DocumentResult]) -> list[FileChange]:
        """Compare generated files with the committed tree and persist the difference.

        Raises:
            SyncEnvironmentError: If the store cannot be read or written
        """
        manifest = self._load_manifest()
        updated = dict(manifest)
        dry_run = self.settings.dry_run
        changes: list[FileChange] = []

        produced_now = {
            generated.path for result in results for generated in result.files
        }
        discovered = {result.outcome.document for result in results}

        with OperationTimer(logger, "commit", dry_run=dry_run):
            for result in results:
                if not result.succeeded:
                    # Files of failed and skipped documents stay as committed
                    continue

                document_id = result.outcome.document
                for generated in result.files:
                    change = self._classify(generated)
                    changes.append(FileChange(generated.path, change, document_id))
                    if change != ChangeKind.UNCHANGED and not dry_run:
                        self.store.write(generated.path, generated.data)

                stale = set(manifest.get(document_id, ())) - {f.path for f in result.files}
                changes.extend(self._remove(stale - produced_now, document_id))
                updated[document_id] = sorted(generated.path for generated in result.files)

            # Documents that disappeared from the corpus but are still in scope
            for document_id in sorted(set(manifest) - discovered):
                if matches_patterns(document_id, self.settings.patterns):
                    changes.extend(
                        self._remove(set(manifest[document_id]) - produced_now, document_id)
                    )
                    del updated[document_id]

            if not dry_run:
                self._save_manifest(manifest, updated)

        return sorted(changes, key=lambda change: (change.path, change.document))

    def _classify(self, generated: GeneratedFile) -> ChangeKind:
        previous = self.store.read(generated.path)
        if previous is None:
            return ChangeKind.ADDED
        if previous == generated.data:
            return ChangeKind.UNCHANGED
        return ChangeKind.MODIFIED

    def _remove(self, paths: set[str], document_id: str) -> list[FileChange]:
        changes = []
        for path in sorted(paths):
            if self.store.read(path) is None:
                continue
            changes.append(FileChange(path, ChangeKind.REMOVED, document_id))
            if not self.settings.dry_run:
                self.store.delete(path)
        return changes

    def _load_manifest(self) -> dict[str, list[str]]:
        data = self.store.read(MANIFEST_PATH)
        if data is None:
            return {}
        try:
            manifest = json.loads(data)
        except ValueError:
            logger.warning("Ignoring unreadable manifest", path=MANIFEST_PATH)
            return {}
        if not isinstance(manifest, dict):
            logger.warning("Ignoring malformed manifest", path=MANIFEST_PATH)
            return {}
        return {
            str(document): [str(path) for path in paths]
            for document, paths in manifest.items()
            if isinstance(paths, list)
        }

    def _save_manifest(
        self, previous: dict[str, list[str]], updated: dict[str, list[str]]
    ) -> None:
        existing = self.store.read(MANIFEST_PATH)
        if existing is None and not updated:
            return
        if existing is not None and updated == previous:
            return
        content = json.dumps(updated, indent=2, sort_keys=True) + "\n"
        self.store.write(MANIFEST_PATH, content.encode("utf-8"))


def _elapsed(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
