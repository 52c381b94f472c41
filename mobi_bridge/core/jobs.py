"""Job stages, inbound document events, and per-job state.

WHY: A conversion moves through a fixed sequence of stages with two
ways out (rejected before starting, failed at any step). Naming the
stages as an enum keeps log lines and tests honest about where a job
stopped.

HOW: Three types:
  JobStage       — enum of pipeline stages
  DocumentEvent  — what the chat front-end hands to the pipeline
  ConversionJob  — transient state for one document, never persisted

RULES:
- JobStage inherits from str so values log and compare as plain strings
- Terminal stages are DONE, FAILED, and REJECTED
- Each job's file names start with a prefix unique to that job
"""

from __future__ import annotations

import enum
import secrets
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional


class JobStage(str, enum.Enum):
    """Stages of a document conversion.

    RULES:
    - received → downloading → converting → registering → notifying
      → uploading → cleaning_up → done
    - failed is reachable from any non-terminal stage
    - rejected is only reachable from received (bad extension)
    """

    RECEIVED = "received"
    DOWNLOADING = "downloading"
    CONVERTING = "converting"
    REGISTERING = "registering"
    NOTIFYING = "notifying"
    UPLOADING = "uploading"
    CLEANING_UP = "cleaning_up"
    DONE = "done"
    FAILED = "failed"
    REJECTED = "rejected"


TERMINAL_STAGES = frozenset({JobStage.DONE, JobStage.FAILED, JobStage.REJECTED})


@dataclass(frozen=True)
class DocumentEvent:
    """An inbound document from the chat platform.

    - chat_id: where replies go (a Slack channel ID)
    - filename: the name the user uploaded the document under
    - file_id: the platform's identifier for the remote file
    - url: download URL, when the front-end already knows it
    """

    chat_id: str
    filename: str
    file_id: str
    url: Optional[str] = None


@dataclass(frozen=True)
class RemoteFile:
    """Where to fetch a document from, and which request headers to send."""

    url: str
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class ConversionJob:
    """State of one document moving through the pipeline.

    RULES:
    - id: the job's file-name prefix ("<unix time>_<random hex>")
    - input_path/output_path: None until the document is accepted
    - slug: set once the artifact is registered
    - error: operator-facing failure detail, never shown to the user
    """

    id: str
    chat_id: str
    filename: str
    created_at: float
    stage: JobStage = JobStage.RECEIVED
    input_path: Optional[Path] = None
    output_path: Optional[Path] = None
    slug: Optional[str] = None
    error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.stage in TERMINAL_STAGES


def make_job_prefix(now: Optional[float] = None) -> str:
    """Return a file-name prefix unique to one job.

    WHY: Two users can send "book.fb2" within the same second. The
    timestamp keeps the upload directory sortable; the random suffix
    keeps concurrent jobs from writing to the same file.
    """
    timestamp = int(time.time() if now is None else now)
    return "{}_{}".format(timestamp, secrets.token_hex(3))
