"""Exception types raised by the conversion pipeline and its collaborators.

WHY: The pipeline reduces every stage failure to one generic user
message, but the operator log needs to know what actually broke. Typed
exceptions let each stage boundary catch exactly what it expects and
log the right detail.

RULES:
- Every exception derives from BridgeError
- ExternalToolError always carries the tool's captured output
- SlugNotFoundError is also a LookupError so callers can treat it as a miss
"""

from __future__ import annotations

from typing import Optional


class BridgeError(Exception):
    """Base class for all mobi_bridge errors."""


class ValidationRejection(BridgeError):
    """Raised when a document is declined before any work is done.

    WHY: A wrong extension is not a failure of the bridge. It is kept
    apart from the other errors so it never reaches the failure path.
    """

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__("Unsupported document: {}".format(filename))


class RandomSourceError(BridgeError):
    """Raised when the operating system entropy source is unavailable."""


class ExternalToolError(BridgeError):
    """Raised when the downloader or converter exits unsuccessfully.

    HOW: Wraps the tool name, its exit status (None if it never started),
    and the combined stdout/stderr it produced.

    RULES:
    - output is always a str (empty when nothing was captured)
    """

    def __init__(
        self,
        tool: str,
        returncode: Optional[int],
        output: str = "",
    ) -> None:
        self.tool = tool
        self.returncode = returncode
        self.output = output
        if returncode is None:
            message = "{} could not be started".format(tool)
        else:
            message = "{} exited with status {}".format(tool, returncode)
        if output:
            message = "{}, output: {}".format(message, output.strip())
        super().__init__(message)


class StorageError(BridgeError):
    """Raised when an artifact cannot be read from or written to disk."""


class SlugNotFoundError(BridgeError, LookupError):
    """Raised when a slug is not present in the registry."""

    def __init__(self, slug: str) -> None:
        self.slug = slug
        super().__init__("Unknown slug: {!r}".format(slug))


class NotificationError(BridgeError):
    """Raised when a message could not be delivered to the chat."""
