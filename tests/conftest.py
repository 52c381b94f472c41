"""Shared test fixtures for the mobi_bridge test suite.

WHY: The pipeline, the download server, and the end-to-end tests all
need the same stand-ins for the external tools and the chat platform.
Centralizing them keeps every test honest about what a "successful
download" or a "crashed converter" looks like on disk.

HOW: FakeDownloader and FakeConverter are callables with the same
signatures as tools.download_file and tools.convert_file. They record
their calls and write (or partially write) the files the real tools
would. The chat gateway is a MagicMock constrained to ChatGateway.

RULES:
- No test runs wget or ebook-convert, and no test talks to Slack
- All files live under tmp_path
- The job prefix is fixed so tests can predict file names
- Test modules reach everything here through fixtures, never by import
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple
from unittest.mock import MagicMock

import pytest

from mobi_bridge.core.jobs import DocumentEvent, RemoteFile
from mobi_bridge.core.pipeline import ChatGateway, ConversionPipeline
from mobi_bridge.core.registry import SlugRegistry

FIXED_PREFIX = "1700000000_abc123"
PUBLIC_HOST = "books.example.org:11477"
CHAT_ID = "C12345"
FB2_BYTES = b"<?xml version='1.0'?><FictionBook><body>Hi</body></FictionBook>"
MOBI_BYTES = b"BOOKMOBI" + b"\x00" * 64


class FakeDownloader:
    """Stand-in for tools.download_file."""

    def __init__(
        self,
        content: bytes = FB2_BYTES,
        error: Optional[Exception] = None,
        partial: bool = False,
    ) -> None:
        self.content = content
        self.error = error
        self.partial = partial
        self.calls: List[Tuple[str, Path, Optional[Dict[str, str]]]] = []

    def __call__(self, url: str, destination: Path, headers: Optional[Dict[str, str]] = None) -> Path:
        destination = Path(destination)
        self.calls.append((url, destination, headers))
        if self.partial:
            destination.write_bytes(self.content[:5])
        if self.error is not None:
            raise self.error
        destination.write_bytes(self.content)
        return destination


class FakeConverter:
    """Stand-in for tools.convert_file."""

    def __init__(
        self,
        content: bytes = MOBI_BYTES,
        error: Optional[Exception] = None,
        partial: bool = False,
    ) -> None:
        self.content = content
        self.error = error
        self.partial = partial
        self.calls: List[Tuple[Path, Path]] = []

    def __call__(self, input_path: Path, output_path: Path) -> Path:
        input_path, output_path = Path(input_path), Path(output_path)
        self.calls.append((input_path, output_path))
        assert input_path.is_file(), "converter called before the download finished"
        if self.partial:
            output_path.write_bytes(self.content[:4])
        if self.error is not None:
            raise self.error
        output_path.write_bytes(self.content)
        return output_path


def _document_event(filename: str = "book.fb2", chat_id: str = CHAT_ID) -> DocumentEvent:
    return DocumentEvent(
        chat_id=chat_id,
        filename=filename,
        file_id="F0001",
        url="https://files.example.org/F0001/{}".format(filename),
    )


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def registry():
    return SlugRegistry()


@pytest.fixture
def gateway():
    """MagicMock chat gateway that resolves every event to its own URL."""
    mock = MagicMock(spec=ChatGateway)
    mock.resolve_download.side_effect = lambda event: RemoteFile(
        url=event.url or "https://files.example.org/{}".format(event.file_id),
        headers={"Authorization": "Bearer xoxb-test"},
    )
    return mock


@pytest.fixture
def downloader():
    return FakeDownloader()


@pytest.fixture
def converter():
    return FakeConverter()


@pytest.fixture
def make_pipeline(registry, gateway, upload_dir, downloader, converter):
    """Factory for pipelines wired to the fakes; keyword overrides allowed."""

    def _make(**overrides) -> ConversionPipeline:
        kwargs = dict(
            registry=registry,
            gateway=gateway,
            upload_dir=upload_dir,
            public_host=PUBLIC_HOST,
            downloader=downloader,
            converter=converter,
            slug_factory=lambda: "aB1",
            prefix_factory=lambda: FIXED_PREFIX,
        )
        kwargs.update(overrides)
        return ConversionPipeline(**kwargs)

    return _make


def _sent_texts(gateway) -> List[str]:
    return [c.args[1] for c in gateway.send_text.call_args_list]


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------


@pytest.fixture
def job_prefix():
    """Job prefix every make_pipeline() job gets."""
    return FIXED_PREFIX


@pytest.fixture
def public_host():
    return PUBLIC_HOST


@pytest.fixture
def chat_id():
    return CHAT_ID


@pytest.fixture
def fb2_bytes():
    """Bytes FakeDownloader writes by default."""
    return FB2_BYTES


@pytest.fixture
def mobi_bytes():
    """Bytes FakeConverter writes by default."""
    return MOBI_BYTES


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def make_event():
    """Factory for DocumentEvents: make_event(filename="book.fb2", chat_id=CHAT_ID)."""
    return _document_event


@pytest.fixture
def sent_texts():
    """sent_texts(gateway) returns the texts the pipeline sent, in order."""
    return _sent_texts


@pytest.fixture
def make_downloader():
    """Factory for FakeDownloaders with error/partial/content overrides."""
    return FakeDownloader


@pytest.fixture
def make_converter():
    """Factory for FakeConverters with error/partial/content overrides."""
    return FakeConverter
