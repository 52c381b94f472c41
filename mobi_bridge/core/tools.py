"""Blocking wrappers around the external downloader and converter.

WHY: The bridge does no byte-level work itself. Fetching the document
is delegated to wget and the FB2/TXT → MOBI conversion to calibre's
ebook-convert. This module is the only place that knows their command
lines, so the pipeline can be tested with plain Python fakes.

HOW: Each function builds an argv list and runs it with subprocess.run,
blocking the calling thread until the process exits. A non-zero exit
status (or a missing binary) becomes an ExternalToolError carrying the
captured output.

RULES:
- No shell is involved; arguments are passed as a list
- No timeout is applied; the caller's thread waits for the tool
- The converter's stdout and stderr are captured together
- Request headers are passed to wget with --header, never in the URL
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from mobi_bridge.config import CONVERT_COMMAND, CONVERT_OPTIONS, DOWNLOAD_COMMAND
from mobi_bridge.core.errors import ExternalToolError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _run(argv: List[str]) -> subprocess.CompletedProcess:
    """Run *argv* with stderr folded into stdout, raising on failure."""
    tool = argv[0]
    try:
        result = subprocess.run(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            check=False,
        )
    except OSError as exc:
        raise ExternalToolError(tool, None, str(exc)) from exc

    output = result.stdout.decode("utf-8", errors="replace") if result.stdout else ""
    if result.returncode != 0:
        raise ExternalToolError(tool, result.returncode, output)
    return result


def download_file(
    url: str,
    destination: PathLike,
    headers: Optional[Dict[str, str]] = None,
    command: str = DOWNLOAD_COMMAND,
) -> Path:
    """Download *url* into *destination* with the external download tool.

    RULES:
    - Success means exit status 0 and the file written at destination
    - Raises ExternalToolError otherwise (destination may be partial)
    """
    destination = Path(destination)
    argv = [command, "-q", "-O", str(destination)]
    for name, value in (headers or {}).items():
        argv.extend(["--header", "{}: {}".format(name, value)])
    argv.append(url)

    logger.debug("Downloading into %s", destination)
    _run(argv)
    return destination


def convert_file(
    input_path: PathLike,
    output_path: PathLike,
    command: str = CONVERT_COMMAND,
) -> Path:
    """Convert *input_path* to MOBI at *output_path* with ebook-convert.

    WHY: ebook-convert picks the output format from the output file's
    extension; the fixed options select the Kindle profile and a MOBI
    that carries both the old and the KF8 formats.

    RULES:
    - Raises ExternalToolError on non-zero exit, with combined output
    - Raises ExternalToolError if the tool reports success but wrote nothing
    """
    output_path = Path(output_path)
    argv = [command, str(input_path), str(output_path)]
    argv.extend(CONVERT_OPTIONS)

    logger.debug("Converting %s -> %s", input_path, output_path)
    result = _run(argv)
    if not output_path.is_file():
        output = result.stdout.decode("utf-8", errors="replace") if result.stdout else ""
        raise ExternalToolError(command, result.returncode, output or "no output file written")
    return output_path
