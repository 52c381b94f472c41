"""Conversion pipeline: download → convert → register → notify → upload → cleanup.

WHY: Each inbound document needs the same sequence of blocking steps,
and a failure halfway through must not leave half-written files behind
or a registry entry pointing at nothing. This module owns that sequence
and the rollback at every step.

HOW: ConversionPipeline.run() walks a ConversionJob through JobStage
values on the calling thread. Every stage boundary catches the stage's
exception, logs the detail, removes the files that stage may have
touched, and sends the user one generic failure message. submit()
starts run() on a new daemon thread, one per document.

RULES:
- Wrong extension (case-insensitive): rejection text, no files, no tools
- Download failure: remove input only
- Convert or register failure: remove input and output
- Registry insert happens only after the converter succeeded
- Notify failure is logged; upload failure is logged and reported
- The input file is removed on every terminal path; the output file is
  kept on success so the HTTP server can serve it
- No retries, no timeouts, no admission control
"""

from __future__ import annotations

import abc
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Dict, Iterable, Optional

from mobi_bridge.config import ACCEPTED_EXTENSIONS, OUTPUT_SUFFIX
from mobi_bridge.core.errors import BridgeError, StorageError, ValidationRejection
from mobi_bridge.core.jobs import (
    ConversionJob,
    DocumentEvent,
    JobStage,
    RemoteFile,
    make_job_prefix,
)
from mobi_bridge.core.registry import SlugRegistry, generate_slug
from mobi_bridge.core.tools import convert_file, download_file
from mobi_bridge.messages import (
    FAILURE_TEXT,
    REJECTION_TEXT,
    STARTED_TEXT,
    UPLOAD_CAPTION,
    build_download_url,
    build_success_text,
)

logger = logging.getLogger(__name__)

Downloader = Callable[[str, Path, Optional[Dict[str, str]]], object]
Converter = Callable[[Path, Path], object]


class ChatGateway(abc.ABC):
    """Outbound view of the chat platform, as the pipeline needs it.

    WHY: The pipeline must not know which chat platform it serves. The
    front-end supplies an implementation; tests supply a MagicMock.
    """

    @abc.abstractmethod
    def send_text(self, chat_id: str, text: str) -> None:
        """Post a plain text message to *chat_id*."""

    @abc.abstractmethod
    def send_document(
        self,
        chat_id: str,
        filename: str,
        content: bytes,
        caption: Optional[str] = None,
    ) -> None:
        """Attach *content* as a file named *filename* to *chat_id*."""

    @abc.abstractmethod
    def resolve_download(self, event: DocumentEvent) -> RemoteFile:
        """Return the URL (and request headers) to fetch the event's file from."""


class ConversionPipeline:
    """Runs documents through the conversion stages.

    WHY: One object holds everything a job needs (registry, gateway,
    tools, directories) so front-ends only hand it DocumentEvents.

    HOW: The tools and the slug/prefix generators are constructor
    arguments defaulting to the real implementations, so tests can
    swap any of them for fakes.
    """

    def __init__(
        self,
        registry: SlugRegistry,
        gateway: ChatGateway,
        upload_dir: Path,
        public_host: str,
        accepted_extensions: Iterable[str] = ACCEPTED_EXTENSIONS,
        downloader: Downloader = download_file,
        converter: Converter = convert_file,
        slug_factory: Callable[[], str] = generate_slug,
        prefix_factory: Callable[[], str] = make_job_prefix,
    ) -> None:
        self.registry = registry
        self.gateway = gateway
        self.upload_dir = Path(upload_dir)
        self.public_host = public_host
        self.accepted_extensions = frozenset(ext.lower() for ext in accepted_extensions)
        self._download = downloader
        self._convert = converter
        self._new_slug = slug_factory
        self._new_prefix = prefix_factory

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def is_accepted(self, filename: str) -> bool:
        """True if *filename* has one of the accepted extensions (any case)."""
        return Path(filename).suffix.lower() in self.accepted_extensions

    def validate(self, filename: str) -> None:
        """Raise ValidationRejection unless *filename* is an accepted book."""
        if not self.is_accepted(filename):
            raise ValidationRejection(filename)

    def submit(self, event: DocumentEvent) -> threading.Thread:
        """Process *event* on a new daemon thread and return the thread.

        RULES:
        - One thread per document, no limit on how many run at once
        """
        thread = threading.Thread(
            target=self.run,
            args=(event,),
            name="convert-{}".format(event.file_id),
            daemon=True,
        )
        thread.start()
        return thread

    def run(self, event: DocumentEvent) -> ConversionJob:
        """Run one document through every stage and return the finished job.

        HOW: Blocks on the external tools. Stage failures are handled
        here and reflected in the returned job's stage and error; they
        are never raised to the caller.
        """
        job = ConversionJob(
            id=self._new_prefix(),
            chat_id=event.chat_id,
            filename=Path(event.filename).name,
            created_at=time.time(),
        )

        try:
            self.validate(job.filename)
        except ValidationRejection as exc:
            job.stage = JobStage.REJECTED
            logger.info("Job %s: %s (from %s)", job.id, exc, job.chat_id)
            self._send_text(job, REJECTION_TEXT)
            return job

        job.input_path = self.upload_dir / "{}_{}".format(job.id, job.filename)
        job.output_path = self.upload_dir / "{}_{}{}".format(
            job.id, Path(job.filename).stem, OUTPUT_SUFFIX
        )
        logger.info("Job %s: converting %s for %s", job.id, job.filename, job.chat_id)
        self._send_text(job, STARTED_TEXT)

        # Download
        self._advance(job, JobStage.DOWNLOADING)
        try:
            remote = self.gateway.resolve_download(event)
            self._download(remote.url, job.input_path, remote.headers)
        except Exception as exc:
            return self._fail(job, exc, job.input_path)

        # Convert
        self._advance(job, JobStage.CONVERTING)
        try:
            self._convert(job.input_path, job.output_path)
        except Exception as exc:
            return self._fail(job, exc, job.input_path, job.output_path)

        # Register
        self._advance(job, JobStage.REGISTERING)
        try:
            slug = self._new_slug()
            self.registry.insert(slug, job.output_path)
        except Exception as exc:
            return self._fail(job, exc, job.input_path, job.output_path)
        job.slug = slug

        # Notify (best effort)
        self._advance(job, JobStage.NOTIFYING)
        download_url = build_download_url(self.public_host, slug)
        self._send_text(job, build_success_text(download_url))

        # Upload
        self._advance(job, JobStage.UPLOADING)
        try:
            self._upload(job)
        except Exception:
            logger.exception("Job %s: failed to upload %s", job.id, job.output_path)
            self._send_text(job, FAILURE_TEXT)

        self._advance(job, JobStage.CLEANING_UP)
        self._remove(job.input_path)
        self._advance(job, JobStage.DONE)
        logger.info("Job %s: done, %s served as %s", job.id, job.output_path.name, slug)
        return job

    # ------------------------------------------------------------------
    # Stage helpers
    # ------------------------------------------------------------------

    def _upload(self, job: ConversionJob) -> None:
        try:
            content = job.output_path.read_bytes()
        except OSError as exc:
            raise StorageError("Cannot read {}: {}".format(job.output_path, exc)) from exc
        self.gateway.send_document(
            job.chat_id,
            job.output_path.name,
            content,
            caption=UPLOAD_CAPTION,
        )

    @staticmethod
    def _advance(job: ConversionJob, stage: JobStage) -> None:
        logger.debug("Job %s: %s -> %s", job.id, job.stage.value, stage.value)
        job.stage = stage

    def _fail(self, job: ConversionJob, exc: Exception, *paths: Path) -> ConversionJob:
        """Mark *job* failed, remove *paths*, and tell the user.

        RULES:
        - Must be called from inside the except block that caught *exc*
        - Bridge errors are logged without a traceback, anything else with one
        """
        logger.error(
            "Job %s failed while %s: %s",
            job.id,
            job.stage.value,
            exc,
            exc_info=not isinstance(exc, BridgeError),
        )
        job.error = str(exc)
        job.stage = JobStage.FAILED
        for path in paths:
            self._remove(path)
        self._send_text(job, FAILURE_TEXT)
        return job

    def _send_text(self, job: ConversionJob, text: str) -> bool:
        """Send *text* to the job's chat; log and swallow delivery errors."""
        try:
            self.gateway.send_text(job.chat_id, text)
        except Exception:
            logger.exception("Job %s: failed to send message to %s", job.id, job.chat_id)
            return False
        return True

    @staticmethod
    def _remove(path: Optional[Path]) -> None:
        if path is None:
            return
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug("Nothing to remove at %s", path)
        except OSError as exc:
            logger.warning("Failed to remove %s: %s", path, exc)
