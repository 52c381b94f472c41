"""Tests for the FastAPI download server.

WHY: The download link is what users bookmark and open on their
e-readers. The headers decide whether the device saves a .mobi or shows
garbage, and a miss must be a clean 404 rather than a stack trace.

HOW: Each test builds a fresh app around its own SlugRegistry and uses
the FastAPI TestClient (synchronous, in-process). Files are real files
under tmp_path.

RULES:
- Each test gets its own registry and app (no shared state)
- Tests cover: hit, miss, empty slug, nested path, vanished file,
  non-ASCII and spaced file names, health
"""

from __future__ import annotations

from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from mobi_bridge import __version__
from mobi_bridge.core.registry import SlugRegistry
from mobi_bridge.server.app import create_app

MOBI_TYPE = "application/x-mobipocket-ebook"


@pytest.fixture
def registry():
    return SlugRegistry()


@pytest.fixture
def client(registry):
    return TestClient(create_app(registry))


@pytest.fixture
def stored_book(tmp_path, registry):
    path = tmp_path / "1700000000_abc123_book.mobi"
    path.write_bytes(b"BOOKMOBI" + b"\x01" * 100)
    registry.insert("aB1", path)
    return path


class TestDownload:
    """GET /{slug} streams registered files."""

    def test_returns_file_bytes(self, client, stored_book):
        resp = client.get("/aB1")
        assert resp.status_code == 200
        assert resp.content == stored_book.read_bytes()

    def test_content_type_is_mobi(self, client, stored_book):
        resp = client.get("/aB1")
        assert resp.headers["content-type"] == MOBI_TYPE

    def test_content_disposition_names_file(self, client, stored_book):
        resp = client.get("/aB1")
        assert resp.headers["content-disposition"] == (
            "attachment; filename=1700000000_abc123_book.mobi"
        )

    def test_cyrillic_name_uses_rfc5987_form(self, client, registry, tmp_path):
        path = tmp_path / "1700000000_abc123_Война и мир.mobi"
        path.write_bytes(b"BOOKMOBI")
        registry.insert("aB1", path)

        resp = client.get("/aB1")

        assert resp.status_code == 200
        assert resp.content == b"BOOKMOBI"
        assert resp.headers["content-disposition"] == (
            "attachment; filename*=utf-8''{}".format(quote(path.name))
        )

    def test_name_with_spaces_is_quoted(self, client, registry, tmp_path):
        path = tmp_path / "1700000000_abc123_War and Peace.mobi"
        path.write_bytes(b"BOOKMOBI")
        registry.insert("aB1", path)

        resp = client.get("/aB1")

        assert resp.status_code == 200
        assert resp.headers["content-disposition"] == (
            'attachment; filename="1700000000_abc123_War and Peace.mobi"'
        )

    def test_name_with_semicolon_is_quoted(self, client, registry, tmp_path):
        path = tmp_path / "1700000000_abc123_a;b.mobi"
        path.write_bytes(b"BOOKMOBI")
        registry.insert("aB1", path)

        resp = client.get("/aB1")
        assert resp.headers["content-disposition"] == 'attachment; filename="1700000000_abc123_a;b.mobi"'

    def test_content_length(self, client, stored_book):
        resp = client.get("/aB1")
        assert int(resp.headers["content-length"]) == stored_book.stat().st_size

    def test_url_safe_slug_characters(self, client, registry, stored_book):
        registry.insert("-_x", stored_book)
        resp = client.get("/-_x")
        assert resp.status_code == 200

    def test_sees_entries_added_after_startup(self, client, registry, tmp_path):
        assert client.get("/zZ9").status_code == 404
        path = tmp_path / "late.mobi"
        path.write_bytes(b"late")
        registry.insert("zZ9", path)
        assert client.get("/zZ9").content == b"late"


class TestNotFound:
    """Misses are plain-text 404s."""

    def test_unknown_slug(self, client):
        resp = client.get("/nop")
        assert resp.status_code == 404
        assert resp.text == "Not Found"
        assert resp.headers["content-type"].startswith("text/plain")

    def test_empty_slug(self, client, stored_book):
        resp = client.get("/")
        assert resp.status_code == 404
        assert resp.text == "Not Found"

    @pytest.mark.parametrize("url", ["/a/b", "/aB1/extra", "/a/b/c.mobi"])
    def test_nested_path_is_plain_text_miss(self, client, stored_book, url):
        resp = client.get(url)
        assert resp.status_code == 404
        assert resp.text == "Not Found"
        assert resp.headers["content-type"].startswith("text/plain")

    def test_registered_but_missing_on_disk(self, client, registry, tmp_path):
        registry.insert("gon", tmp_path / "deleted.mobi")
        resp = client.get("/gon")
        assert resp.status_code == 404
        assert resp.text == "Not Found"

    def test_registered_directory_is_not_served(self, client, registry, tmp_path):
        registry.insert("dir", tmp_path)
        assert client.get("/dir").status_code == 404

    def test_other_registry_not_visible(self, stored_book):
        other = TestClient(create_app(SlugRegistry()))
        assert other.get("/aB1").status_code == 404


class TestHealth:
    """GET /health reports liveness."""

    def test_health_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["version"] == __version__
        assert body["registered"] == 0

    def test_health_counts_registered(self, client, stored_book):
        assert client.get("/health").json()["registered"] == 1
