"""Per-folder deployment pipeline.

One ``FolderPipeline`` is shared by every folder of a dispatch: it holds only
read-only configuration and thread-safe client handles, and each call to
``run(folder)`` keeps its state on the stack. Stages run strictly in order::

    fingerprinting -> freshness_check -> building -> packaging -> uploading
        -> signing_submit -> signing_wait -> downloading
        -> fingerprinting_signed -> copying
        -> [updating_code -> awaiting_update -> publishing_version
            -> updating_alias] -> done

Transient resources are scoped so their release runs whichever stage fails:

- the local executable is removed as soon as it is packaged,
- the staging object is deleted once the signed copy is made,
- the unsigned object is deleted when the pipeline finishes.

Release failures are logged and never replace the pipeline's own result.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path

from signforge.core.artifact_store import ArtifactStore
from signforge.core.builder import PackageBuilder
from signforge.core.errors import DeployError
from signforge.core.freshness import is_up_to_date
from signforge.core.hasher import fingerprint_folder, hash_bytes
from signforge.core.publisher import FunctionPublisher
from signforge.core.signing import Signer
from signforge.core.timer import Timer
from signforge.models.artifacts import DeploymentMetadata
from signforge.models.config import DeployConfig
from signforge.models.stages import (
    STAGE_DISPLAY_NAMES,
    DeployOutcome,
    FolderResult,
    PipelineStage,
)

logger = logging.getLogger(__name__)


class _FolderRun:
    """Mutable progress of one folder's run; never shared across threads."""

    def __init__(self, folder: str) -> None:
        self.folder = folder
        self.stage = PipelineStage.PENDING
        self.unsigned_hash: str | None = None
        self.signed_hash: str | None = None
        self.function_version: str | None = None
        self.timer = Timer()

    @contextmanager
    def stage_scope(self, stage: PipelineStage) -> Iterator[None]:
        """Enter *stage*, logging its start, completion time, or failure."""
        self.stage = stage
        name = STAGE_DISPLAY_NAMES[stage]
        logger.info("%s | %s.", self.folder, name)
        timer = Timer()
        try:
            yield
        except Exception as exc:
            logger.error("%s | %s failed: %s", self.folder, name, exc)
            raise
        logger.info("%s | %s done. Took %s.", self.folder, name, timer)

    def result(self, outcome: DeployOutcome, error: Exception | None = None) -> FolderResult:
        return FolderResult(
            folder=self.folder,
            outcome=outcome,
            stage=self.stage,
            unsigned_hash=self.unsigned_hash,
            signed_hash=self.signed_hash,
            function_version=self.function_version,
            error_type=type(error).__name__ if error else None,
            error=str(error) if error else None,
            elapsed_seconds=self.timer.elapsed,
        )


class FolderPipeline:
    """Build, sign, publish and activate one folder at a time.

    Parameters
    ----------
    config:
        Immutable run configuration.
    root:
        Directory containing the function folders.
    store:
        Artifact store bound to ``config.bucket``.
    builder:
        Compiles a folder and packages the executable.
    signer:
        Signing coordinator.
    publisher:
        Function publisher. Ignored when ``config.update_functions`` is
        False; may be None in that case.
    """

    def __init__(
        self,
        config: DeployConfig,
        *,
        root: Path,
        store: ArtifactStore,
        builder: PackageBuilder,
        signer: Signer,
        publisher: FunctionPublisher | None = None,
    ) -> None:
        if config.update_functions and publisher is None:
            raise ValueError("A function publisher is required when update_functions is set")
        self.config = config
        self.root = Path(root)
        self.store = store
        self.builder = builder
        self.signer = signer
        self.publisher = publisher

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self, folder: str) -> FolderResult:
        """Run the pipeline for *folder* and return its result.

        A ``DeployError`` from any stage ends the run and is recorded in the
        returned result; it is not raised.
        """
        run = _FolderRun(folder)
        try:
            outcome = self._deploy(run)
        except DeployError as exc:
            logger.error("%s | Deployment failed at %s: %s", folder, run.stage.value, exc)
            return run.result(DeployOutcome.FAILED, exc)
        run.stage = PipelineStage.DONE
        logger.info("%s | Finished (%s). Took %s.", folder, outcome.value, run.timer)
        return run.result(outcome)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _deploy(self, run: _FolderRun) -> DeployOutcome:
        cfg = self.config
        folder = run.folder
        source = self.root / folder
        unsigned_key = cfg.unsigned_key(folder)
        signed_key = cfg.signed_key(folder)

        with run.stage_scope(PipelineStage.FINGERPRINTING):
            unsigned_hash = fingerprint_folder(source, cfg.source_patterns)
        run.unsigned_hash = unsigned_hash
        logger.info("%s | Source fingerprint: %s", folder, unsigned_hash)

        if not cfg.force:
            with run.stage_scope(PipelineStage.FRESHNESS_CHECK):
                fresh = is_up_to_date(self.store, signed_key, unsigned_hash, folder=folder)
            if fresh:
                return DeployOutcome.UP_TO_DATE

        with ExitStack() as build_scope:
            with run.stage_scope(PipelineStage.BUILDING):
                executable = build_scope.enter_context(self.builder.build(source))
            with run.stage_scope(PipelineStage.PACKAGING):
                package = self.builder.package(executable)
        logger.info(
            "%s | Size of unsigned deployment package: %.2f M.", folder, len(package) / 1_000_000
        )

        with ExitStack() as cleanup:
            with run.stage_scope(PipelineStage.UPLOADING):
                version_id = self.store.put(unsigned_key, package)
            cleanup.callback(self._discard, folder, unsigned_key)
            logger.info("%s | Uploaded %s (version %s).", folder, unsigned_key, version_id)

            with run.stage_scope(PipelineStage.SIGNING_SUBMIT):
                job_id = self.signer.submit(unsigned_key, version_id)
            logger.info("%s | Signing job id: %s.", folder, job_id)
            with run.stage_scope(PipelineStage.SIGNING_WAIT):
                self.signer.await_completion(job_id)

            staging_key = cfg.staging_key(job_id)
            with ExitStack() as staging_scope:
                staging_scope.callback(self._discard, folder, staging_key)
                with run.stage_scope(PipelineStage.DOWNLOADING):
                    signed_package = self.store.get(staging_key)
                with run.stage_scope(PipelineStage.FINGERPRINTING_SIGNED):
                    signed_hash = hash_bytes(signed_package)
                run.signed_hash = signed_hash
                logger.info("%s | Signed fingerprint: %s", folder, signed_hash)
                metadata = DeploymentMetadata(unsigned_hash=unsigned_hash, signed_hash=signed_hash)
                with run.stage_scope(PipelineStage.COPYING):
                    self.store.copy(staging_key, signed_key, metadata.as_object_metadata())

            publisher = self.publisher
            if not cfg.update_functions or publisher is None:
                return DeployOutcome.PUBLISHED

            self._activate(run, publisher, signed_key, signed_hash)
        return DeployOutcome.DEPLOYED

    def _activate(
        self, run: _FolderRun, publisher: FunctionPublisher, signed_key: str, signed_hash: str
    ) -> None:
        """Point the function at the signed package and move the alias.

        *signed_hash* is the fingerprint just recorded on the signed object; the
        version is only published if the deployed code matches it.
        """
        folder = run.folder

        with run.stage_scope(PipelineStage.UPDATING_CODE):
            publisher.update_code(folder, self.config.bucket, signed_key)
        with run.stage_scope(PipelineStage.AWAITING_UPDATE):
            publisher.await_code_updated(folder)
        with run.stage_scope(PipelineStage.PUBLISHING_VERSION):
            version = publisher.publish_version(folder, signed_hash)
        run.function_version = version
        logger.info("%s | Published function version %s.", folder, version)
        with run.stage_scope(PipelineStage.UPDATING_ALIAS):
            publisher.update_alias(folder, self.config.alias_name, version)

    # ------------------------------------------------------------------
    # Cleanup
    # ------------------------------------------------------------------

    def _discard(self, folder: str, key: str) -> None:
        """Best-effort delete of a transient object; failures are only logged."""
        try:
            self.store.delete(key)
        except Exception as exc:
            logger.warning("%s | Failed to delete object %s: %s", folder, key, exc)
            return
        logger.info("%s | Deleted object %s.", folder, key)
