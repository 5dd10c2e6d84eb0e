"""Tests for the Google Drive backend: service-account JWT, queries and file reading."""

import json
from urllib.parse import parse_qs, unquote, urlparse

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from helpers import FakeHttp, json_response
from storage.base import HttpResponse, StorageError, StorageNotConfiguredError, TokenCache
from storage.google_drive import (
    DRIVE_SCOPE,
    GoogleDriveBackend,
    escape_query_literal,
    export_mimes_for,
    load_service_account,
)

TOKEN_URL = "https://oauth2.googleapis.com/token"


@pytest.fixture(scope="module")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture
def service_account(rsa_key):
    pem = rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")
    return {
        "type": "service_account",
        "client_email": "reader@project.iam.gserviceaccount.com",
        "private_key": pem,
        "token_uri": TOKEN_URL,
    }


@pytest.fixture
def http():
    return FakeHttp().add("POST", TOKEN_URL, json_response({"access_token": "ya29.token", "expires_in": 3600}))


@pytest.fixture
def backend(service_account, http):
    return GoogleDriveBackend(service_account=service_account, default_folder_id="ROOT123", http=http)


def query_of(url):
    return parse_qs(urlparse(url).query)["q"][0]


class TestHelpers:
    def test_export_order(self):
        assert export_mimes_for("application/vnd.google-apps.spreadsheet", False) == ["text/csv", "text/plain"]
        assert export_mimes_for("application/vnd.google-apps.document", False) == ["text/plain"]
        assert export_mimes_for("application/pdf", False) == []
        assert export_mimes_for("application/pdf", True) == ["text/plain"]

    def test_escape_query_literal(self):
        assert escape_query_literal("Bob's") == "Bob\\'s"

    def test_load_service_account(self, tmp_path):
        good = tmp_path / "sa.json"
        good.write_text(json.dumps({"client_email": "x"}), encoding="utf-8")
        bad = tmp_path / "bad.json"
        bad.write_text("[]", encoding="utf-8")

        assert load_service_account(good) == {"client_email": "x"}
        assert load_service_account(bad) is None
        assert load_service_account(tmp_path / "missing.json") is None
        assert load_service_account(None) is None

    def test_from_paths(self, tmp_paths, service_account):
        (tmp_paths.config_dir / "apertureai-sa.json").write_text(json.dumps(service_account), encoding="utf-8")
        env = tmp_paths.config_dir / "apertureai.env"
        env.write_text(
            env.read_text(encoding="utf-8") + "GOOGLE_SERVICE_ACCOUNT_FILE=apertureai-sa.json\nGOOGLE_DRIVE_FOLDER_ID=F1\n",
            encoding="utf-8",
        )
        tmp_paths.load_config()

        backend = GoogleDriveBackend.from_paths(tmp_paths)

        assert backend.is_configured()
        assert backend.default_folder_id == "F1"


class TestAccessToken:
    def test_assertion_is_signed_rs256(self, backend, rsa_key):
        assertion = backend.create_assertion(now=1_700_000_000)

        assert jwt.get_unverified_header(assertion)["alg"] == "RS256"
        claims = jwt.decode(assertion, rsa_key.public_key(), algorithms=["RS256"], audience=TOKEN_URL,
                            options={"verify_exp": False, "verify_iat": False})
        assert claims["iss"] == "reader@project.iam.gserviceaccount.com"
        assert claims["scope"] == DRIVE_SCOPE
        assert claims["exp"] - claims["iat"] == 3600

    def test_invalid_service_account(self, http):
        backend = GoogleDriveBackend(service_account={"client_email": "x"}, http=http)
        with pytest.raises(StorageError, match="Invalid service account JSON."):
            backend.create_assertion()

    async def test_token_exchange_and_caching(self, backend, http, rsa_key):
        assert await backend.ensure_access_token() == "ya29.token"
        assert await backend.ensure_access_token() == "ya29.token"

        token_requests = [r for r in http.requests if r["method"] == "POST"]
        assert len(token_requests) == 1
        form = token_requests[0]["data"]
        assert form["grant_type"] == "urn:ietf:params:oauth:grant-type:jwt-bearer"
        jwt.decode(form["assertion"], rsa_key.public_key(), algorithms=["RS256"], audience=TOKEN_URL)
        assert token_requests[0]["timeout"] == 15

    async def test_expired_token_is_refreshed(self, service_account, http):
        clock = [1000.0]
        backend = GoogleDriveBackend(
            service_account=service_account,
            http=http,
            token_cache=TokenCache(clock=lambda: clock[0]),
        )
        await backend.ensure_access_token()
        clock[0] += 3600 - 30
        await backend.ensure_access_token()

        assert len(http.urls("POST")) == 2

    async def test_token_error_description(self, service_account):
        http = FakeHttp().add("POST", TOKEN_URL, json_response({"error_description": "Invalid JWT Signature."}, 400))
        backend = GoogleDriveBackend(service_account=service_account, http=http)

        with pytest.raises(StorageError, match="Invalid JWT Signature."):
            await backend.ensure_access_token()

    async def test_not_configured(self, http):
        with pytest.raises(StorageNotConfiguredError):
            await GoogleDriveBackend(http=http).list_files()


class TestListAndSearch:
    async def test_list_default_folder(self, backend, http):
        http.add("GET", "/files?", json_response({"files": [{"id": "a"}]}))

        result = await backend.list_files()

        assert json.loads(result) == {"files": [{"id": "a"}]}
        url = http.urls("GET")[0]
        assert query_of(url) == "'ROOT123' in parents and trashed=false"
        params = parse_qs(urlparse(url).query)
        assert params["pageSize"] == ["100"]
        assert params["orderBy"] == ["modifiedTime desc"]
        assert params["corpora"] == ["allDrives"]
        assert http.requests[-1]["headers"]["Authorization"] == "Bearer ya29.token"

    async def test_root_maps_to_default_folder(self, backend, http):
        http.add("GET", "/files?", json_response({"files": []}))
        await backend.list_files("root")
        assert query_of(http.urls("GET")[0]) == "'ROOT123' in parents and trashed=false"

    async def test_list_everything_without_folder(self, service_account, http):
        http.add("GET", "/files?", json_response({"files": []}))
        backend = GoogleDriveBackend(service_account=service_account, http=http)

        await backend.list_files()

        assert query_of(http.urls("GET")[0]) == "trashed=false"

    async def test_search_escapes_quotes(self, backend, http):
        http.add("GET", "/files?", json_response({"files": []}))

        await backend.search_files("Bob's plan")

        url = http.urls("GET")[0]
        assert "%20" in url and "+" not in url
        assert query_of(url) == "trashed=false and name contains 'Bob\\'s plan'"

    async def test_http_error(self, backend, http):
        http.add("GET", "/files?", HttpResponse(status=403, body=b"forbidden"))
        with pytest.raises(StorageError, match="HTTP 403: forbidden"):
            await backend.search_files("x")


class TestReadFile:
    async def test_spreadsheet_export_falls_back_to_plain_text(self, backend, http):
        http.add("GET", "/files/S1?fields", json_response({
            "id": "S1", "name": "Budget", "mimeType": "application/vnd.google-apps.spreadsheet",
            "webViewLink": "https://docs.google.com/spreadsheets/d/S1",
        }))
        http.add("GET", "mimeType=text%2Fcsv", HttpResponse(status=403, body=b"export not allowed"))
        http.add("GET", "mimeType=text%2Fplain", HttpResponse(status=200, body=b"col1 col2"))

        result = json.loads(await backend.read_file("S1"))

        assert result == {
            "file": {
                "id": "S1",
                "name": "Budget",
                "mimeType": "application/vnd.google-apps.spreadsheet",
                "webViewLink": "https://docs.google.com/spreadsheets/d/S1",
            },
            "content": "col1 col2",
        }
        export_urls = [u for u in http.urls("GET") if "/export" in u]
        assert len(export_urls) == 2
        assert "alt=media" not in "".join(http.urls("GET"))

    async def test_all_exports_rejected_falls_back_to_download(self, backend, http):
        http.add("GET", "/files/D1?fields", json_response({"id": "D1", "name": "Doc", "mimeType": "application/vnd.google-apps.document"}))
        http.add("GET", "/export", HttpResponse(status=415, body=b"unsupported"))
        http.add("GET", "alt=media", HttpResponse(status=200, body=b"raw text"))

        result = json.loads(await backend.read_file("D1"))

        assert result["content"] == "raw text"
        assert result["file"]["webViewLink"] == "https://drive.google.com/open?id=D1"

    async def test_export_server_error_is_raised(self, backend, http):
        http.add("GET", "/files/D1?fields", json_response({"id": "D1", "name": "Doc", "mimeType": "application/vnd.google-apps.document"}))
        http.add("GET", "/export", HttpResponse(status=500, body=b"backend error"))

        with pytest.raises(StorageError, match="HTTP 500"):
            await backend.read_file("D1")

    async def test_binary_file_downloads_and_truncates(self, backend, http):
        http.add("GET", "/files/T1?fields", json_response({"id": "T1", "name": "log.txt", "mimeType": "text/plain"}))
        http.add("GET", "alt=media", HttpResponse(status=200, body=b"y" * 20000))

        result = json.loads(await backend.read_file("T1"))

        assert "/export" not in "".join(http.urls("GET"))
        assert result["content"].endswith("[...truncated, file too large to show in full]")
        assert result["content"].startswith("y" * 15000)
        download = [r for r in http.requests if "alt=media" in r["url"]][0]
        assert download["timeout"] == 30

    async def test_export_hint_forces_export_first(self, backend, http):
        http.add("GET", "/files/P1?fields", json_response({"id": "P1", "name": "notes.txt", "mimeType": "text/plain"}))
        http.add("GET", "/export", HttpResponse(status=400, body=b"bad"))
        http.add("GET", "alt=media", HttpResponse(status=200, body=b"notes"))

        await backend.read_file("P1", export=True)

        urls = http.urls("GET")
        assert "/export" in urls[1]
        assert "alt=media" in urls[2]

    async def test_unreadable_file(self, backend, http):
        http.add("GET", "/files/B1?fields", json_response({"id": "B1", "name": "image.bin", "mimeType": "application/octet-stream"}))
        http.add("GET", "alt=media", HttpResponse(status=200, body=b""))

        with pytest.raises(StorageError, match="Could not extract readable text from file."):
            await backend.read_file("B1")

    async def test_item_id_is_path_encoded(self, backend, http):
        http.add("GET", "/files/a%2Fb?fields", json_response({"id": "a/b", "name": "x.txt", "mimeType": "text/plain"}))
        http.add("GET", "a%2Fb?alt=media", HttpResponse(status=200, body=b"ok"))

        result = json.loads(await backend.read_file("a/b"))

        assert result["file"]["id"] == "a/b"
        assert unquote(http.urls("GET")[0]).startswith("https://www.googleapis.com/drive/v3/files/a/b?")
