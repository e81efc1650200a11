"""
Unit tests for termguard/deepl/client.py and language_codes.py.
"""

import json

import httpx
import pytest

from termguard.deepl.client import (
    DEEPL_API_URL_FREE,
    DEEPL_API_URL_PRO,
    DeepLGlossaryClient,
    resolve_base_url,
)
from termguard.deepl.language_codes import to_deepl_code, to_deepl_source_code
from termguard.glossary.exceptions import RemoteErrorKind, RemoteGlossaryError


def _client(handler, api_key="secret:fx"):
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DeepLGlossaryClient(api_key=api_key, http_client=http_client)


# ---------------------------------------------------------------------------
# Language codes
# ---------------------------------------------------------------------------

class TestLanguageCodes:
    @pytest.mark.parametrize("code,expected", [
        ("en", "EN"),
        ("en-GB", "EN-GB"),
        ("pt", "PT-BR"),
        ("pt-pt", "PT-PT"),
        ("zh-hans", "ZH"),
        ("zh_Hans", "ZH"),
        ("ja", "JA"),
        ("xx", "XX"),
    ])
    def test_to_deepl_code(self, code, expected):
        assert to_deepl_code(code) == expected

    @pytest.mark.parametrize("code,expected", [
        ("en", "EN"),
        ("en-gb", "EN"),
        ("pt", "PT"),
        ("pt_BR", "PT"),
        ("zh-hans", "ZH"),
    ])
    def test_source_code_drops_region(self, code, expected):
        assert to_deepl_source_code(code) == expected


# ---------------------------------------------------------------------------
# Base URL
# ---------------------------------------------------------------------------

class TestBaseUrl:
    def test_free_key(self):
        assert resolve_base_url("abc:fx") == DEEPL_API_URL_FREE

    def test_pro_key(self):
        assert resolve_base_url("abc") == DEEPL_API_URL_PRO

    def test_override(self):
        assert resolve_base_url("abc:fx", "http://localhost:9000/v2/") == "http://localhost:9000/v2"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class TestCreateGlossary:
    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json={"glossary_id": "remote-42"})

        client = _client(handler)
        remote_id = await client.create_glossary("Lore_en_fr", "EN", "FR", "Empire\tEmpire\n")

        assert remote_id == "remote-42"
        assert seen["url"] == f"{DEEPL_API_URL_FREE}/glossaries"
        assert seen["auth"] == "DeepL-Auth-Key secret:fx"
        assert seen["body"] == {
            "name": "Lore_en_fr",
            "source_lang": "EN",
            "target_lang": "FR",
            "entries": "Empire\tEmpire\n",
            "entries_format": "tsv",
        }

    @pytest.mark.asyncio
    async def test_missing_glossary_id(self):
        client = _client(lambda request: httpx.Response(201, json={}))
        with pytest.raises(RemoteGlossaryError) as exc:
            await client.create_glossary("n", "EN", "FR", "a\tb\n")
        assert exc.value.kind == RemoteErrorKind.SERVER

    @pytest.mark.asyncio
    async def test_missing_api_key_sends_nothing(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(201, json={"glossary_id": "x"})

        client = _client(handler, api_key="  ")
        with pytest.raises(RemoteGlossaryError) as exc:
            await client.create_glossary("n", "EN", "FR", "a\tb\n")
        assert exc.value.kind == RemoteErrorKind.AUTH
        assert exc.value.requires_user_action is True
        assert calls == []


class TestDeleteAndList:
    @pytest.mark.asyncio
    async def test_delete(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(204)

        await _client(handler).delete_glossary("remote-1")
        assert seen == {"method": "DELETE", "path": "/v2/glossaries/remote-1"}

    @pytest.mark.asyncio
    async def test_list(self):
        glossaries = [{"glossary_id": "a", "name": "Lore_en_fr"}]
        client = _client(lambda request: httpx.Response(200, json={"glossaries": glossaries}))
        assert await client.list_glossaries() == glossaries


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,kind", [
        (400, RemoteErrorKind.BAD_REQUEST),
        (401, RemoteErrorKind.AUTH),
        (403, RemoteErrorKind.AUTH),
        (404, RemoteErrorKind.NOT_FOUND),
        (413, RemoteErrorKind.BAD_REQUEST),
        (429, RemoteErrorKind.RATE_LIMIT),
        (456, RemoteErrorKind.QUOTA),
        (500, RemoteErrorKind.SERVER),
        (503, RemoteErrorKind.SERVER),
    ])
    async def test_status_codes(self, status, kind):
        client = _client(lambda request: httpx.Response(status, json={"message": "nope"}))
        with pytest.raises(RemoteGlossaryError) as exc:
            await client.delete_glossary("remote-1")
        assert exc.value.kind == kind
        assert exc.value.status_code == status
        assert "nope" in exc.value.message

    @pytest.mark.asyncio
    async def test_raw_body_message(self):
        client = _client(lambda request: httpx.Response(400, text="bad tsv"))
        with pytest.raises(RemoteGlossaryError) as exc:
            await client.delete_glossary("remote-1")
        assert "bad tsv" in exc.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error,kind", [
        (httpx.ReadTimeout("slow"), RemoteErrorKind.TIMEOUT),
        (httpx.ConnectError("refused"), RemoteErrorKind.CONNECTION),
        (httpx.RemoteProtocolError("broken"), RemoteErrorKind.NETWORK),
    ])
    async def test_transport_errors(self, error, kind):
        def handler(request):
            raise error

        with pytest.raises(RemoteGlossaryError) as exc:
            await _client(handler).list_glossaries()
        assert exc.value.kind == kind
        assert exc.value.status_code is None

    def test_retryable(self):
        assert RemoteGlossaryError("x", RemoteErrorKind.RATE_LIMIT).is_retryable is True
        assert RemoteGlossaryError("x", RemoteErrorKind.AUTH).is_retryable is False
        assert RemoteGlossaryError("x", RemoteErrorKind.QUOTA).requires_user_action is True
