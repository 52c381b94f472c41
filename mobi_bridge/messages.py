"""User-facing message texts and the retrieval URL builder.

WHY: The pipeline and the chat front-end both talk to users. Keeping
every string here means the wording can change without touching the
control flow, and tests can assert on the same constants.

RULES:
- FAILURE_TEXT is the only thing a user ever learns about a failure
- Retrieval URLs are plain http://<host>/<slug>
"""

from __future__ import annotations

from typing import Iterable

from mobi_bridge.config import ACCEPTED_EXTENSIONS


def _describe_formats(extensions: Iterable[str]) -> str:
    names = sorted(ext.lstrip(".").upper() for ext in extensions)
    if len(names) == 1:
        return names[0]
    return "{} or {}".format(", ".join(names[:-1]), names[-1])


FORMATS_LABEL = _describe_formats(ACCEPTED_EXTENSIONS)

GREETING_TEXT = (
    "Hi! Send me a book in {} format and I will convert it to MOBI.".format(FORMATS_LABEL)
)
REJECTION_TEXT = "Please send a file in {} format.".format(FORMATS_LABEL)
STARTED_TEXT = "Starting the conversion..."
FAILURE_TEXT = "Something went wrong while processing the file. Please try again."
UPLOAD_CAPTION = "Here is your book in MOBI format"


def build_download_url(host: str, slug: str) -> str:
    """Return the public retrieval URL for *slug* on *host* (host[:port])."""
    return "http://{}/{}".format(host, slug)


def build_success_text(download_url: str) -> str:
    return "Conversion finished. You can download the file here:\n{}".format(download_url)
