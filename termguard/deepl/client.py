"""
DeepL Glossary Client
Thin async wrapper over the DeepL v2 glossary endpoints.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

from termguard.glossary.exceptions import RemoteErrorKind, RemoteGlossaryError

logger = logging.getLogger(__name__)

DEEPL_API_URL_PRO = "https://api.deepl.com/v2"
DEEPL_API_URL_FREE = "https://api-free.deepl.com/v2"


def resolve_base_url(api_key: str, override: Optional[str] = None) -> str:
    """Free-plan keys end with ":fx" and must use the free endpoint."""
    if override:
        return override.rstrip("/")
    if api_key.endswith(":fx"):
        return DEEPL_API_URL_FREE
    return DEEPL_API_URL_PRO


def _extract_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text or f"HTTP {response.status_code}"


def error_from_response(response: httpx.Response) -> RemoteGlossaryError:
    """Map a failed DeepL response to a RemoteGlossaryError."""
    status = response.status_code
    message = _extract_message(response)

    if status in (401, 403):
        kind, text = RemoteErrorKind.AUTH, "Invalid DeepL API key"
    elif status == 456:
        kind, text = RemoteErrorKind.QUOTA, "DeepL quota exceeded"
    elif status == 429:
        kind, text = RemoteErrorKind.RATE_LIMIT, "DeepL rate limit exceeded"
    elif status == 404:
        kind, text = RemoteErrorKind.NOT_FOUND, "DeepL glossary not found"
    elif 400 <= status < 500:
        kind, text = RemoteErrorKind.BAD_REQUEST, "DeepL rejected the request"
    elif status >= 500:
        kind, text = RemoteErrorKind.SERVER, "DeepL server error"
    else:
        kind, text = RemoteErrorKind.NETWORK, "Unexpected DeepL response"

    return RemoteGlossaryError(f"{text}: {message}", kind=kind, status_code=status)


class DeepLGlossaryClient:
    """
    DeepL glossary API client.

    Args:
        api_key: DeepL authentication key (settings value when omitted)
        base_url: Endpoint override, otherwise chosen from the key type
        http_client: Shared httpx.AsyncClient; a short-lived client is
            opened per request when omitted
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        from termguard.config.settings import settings

        self.api_key = (settings.get_deepl_api_key() if api_key is None else api_key).strip()
        self.base_url = resolve_base_url(self.api_key, base_url or settings.deepl_api_url)
        self.timeout = httpx.Timeout(
            settings.deepl_read_timeout, connect=settings.deepl_connect_timeout
        )
        self._http_client = http_client

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"DeepL-Auth-Key {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        if not self.api_key:
            raise RemoteGlossaryError(
                "DeepL API key is not configured", kind=RemoteErrorKind.AUTH
            )

        url = f"{self.base_url}{path}"
        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, headers=self.headers, timeout=self.timeout, **kwargs
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(method, url, headers=self.headers, **kwargs)
        except httpx.TimeoutException as e:
            raise RemoteGlossaryError(
                f"Request timeout: {e}", kind=RemoteErrorKind.TIMEOUT
            ) from e
        except httpx.ConnectError as e:
            raise RemoteGlossaryError(
                f"Connection failed: {e}", kind=RemoteErrorKind.CONNECTION
            ) from e
        except httpx.HTTPError as e:
            raise RemoteGlossaryError(
                f"Network error: {e}", kind=RemoteErrorKind.NETWORK
            ) from e

        if response.status_code >= 400:
            error = error_from_response(response)
            logger.warning(f"DeepL {method} {path} failed ({error.kind.value}): {error.message}")
            raise error
        return response

    async def create_glossary(
        self,
        name: str,
        source_lang: str,
        target_lang: str,
        entries_tsv: str,
    ) -> str:
        """
        Create a glossary on DeepL.

        Returns:
            DeepL glossary ID
        """
        response = await self._request(
            "POST",
            "/glossaries",
            json={
                "name": name,
                "source_lang": source_lang,
                "target_lang": target_lang,
                "entries": entries_tsv,
                "entries_format": "tsv",
            },
        )
        data = response.json()
        glossary_id = data.get("glossary_id")
        if not glossary_id:
            raise RemoteGlossaryError(
                "DeepL response did not contain a glossary_id",
                kind=RemoteErrorKind.SERVER,
                status_code=response.status_code,
            )
        logger.info(f"Created DeepL glossary {name} ({glossary_id})")
        return glossary_id

    async def delete_glossary(self, glossary_id: str) -> None:
        await self._request("DELETE", f"/glossaries/{glossary_id}")
        logger.info(f"Deleted DeepL glossary {glossary_id}")

    async def list_glossaries(self) -> List[Dict[str, Any]]:
        response = await self._request("GET", "/glossaries")
        return response.json().get("glossaries", [])
