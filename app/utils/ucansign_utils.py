# app/utils/ucansign_utils.py

from typing import Any, Dict, Optional, Tuple

import aiohttp

from app.core.config import Settings, settings
from app.utils.logger import get_logger

logger = get_logger(__name__)


class UCanSignAPIError(Exception):
    """Raised when UCanSign answers with an HTTP error or a non-zero result code."""
    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = status
        super().__init__(message)


class UCanSignAuthError(UCanSignAPIError):
    """Raised when an access token cannot be obtained."""


def extract_file_url(result: Any) -> Optional[str]:
    """
    Document endpoints return either {"url": ...}, {"file": ...} or a bare string.
    """
    if isinstance(result, dict):
        return result.get("url") or result.get("file")
    if isinstance(result, str) and result:
        return result
    return None


class UCanSignClient:
    """
    Minimal client for the UCanSign Open API.
    Every document call obtains a fresh access token first.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        test_mode: bool = False,
        timeout_seconds: float = 30.0,
        user_agent: str = "StaffManager/1.0",
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.test_mode = test_mode
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "UCanSignClient":
        return cls(
            base_url=config.ucansign_base_url,
            api_key=config.ucansign_api_key,
            test_mode=config.ucansign_test_mode,
            timeout_seconds=config.ucansign_timeout_seconds,
            user_agent=config.ucansign_user_agent,
        )

    def _url(self, endpoint: str) -> str:
        if endpoint.startswith("http"):
            return endpoint
        return f"{self.base_url}{endpoint}"

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        if self.test_mode:
            headers["x-ucansign-test"] = "true"
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Tuple[int, Any]:
        """Perform one HTTP call and return (status, decoded body)."""
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(method, url, headers=headers, json=json_body) as response:
                try:
                    body = await response.json(content_type=None)
                except ValueError:
                    body = {"msg": await response.text()}
                return response.status, body

    async def get_access_token(self) -> str:
        """Exchange the API key for a short-lived access token."""
        if not self.api_key:
            raise UCanSignAuthError("UCANSIGN_API_KEY is not configured")

        logger.info("Requesting UCanSign access token")
        status, body = await self._send(
            "POST", self._url("/user/token"), self._headers(), {"apiKey": self.api_key}
        )
        if status >= 400:
            raise UCanSignAuthError(f"Token request failed: {status} - {body}", status)
        if not isinstance(body, dict) or body.get("code") != 0 or body.get("msg") != "success":
            msg = body.get("msg") if isinstance(body, dict) else None
            raise UCanSignAuthError(f"Token API error: {msg or 'unknown error'}", status)

        access_token = (body.get("result") or {}).get("accessToken")
        if not access_token:
            raise UCanSignAuthError("Token API returned no access token", status)
        return access_token

    async def request(self, method: str, endpoint: str) -> Dict[str, Any]:
        """Authenticated call returning the decoded envelope `{code, msg, result}`."""
        access_token = await self.get_access_token()
        status, body = await self._send(method, self._url(endpoint), self._headers(access_token))
        if status >= 400 or not isinstance(body, dict) or body.get("code") != 0:
            msg = body.get("msg") if isinstance(body, dict) else None
            raise UCanSignAPIError(f"UCanSign API error on {endpoint}: {msg or status}", status)
        return body

    async def get_signed_document_url(self, document_id: str) -> Optional[str]:
        """Transient download URL of the signed PDF."""
        body = await self.request("GET", f"/documents/{document_id}/file")
        return extract_file_url(body.get("result"))

    async def get_audit_trail_url(self, document_id: str) -> Optional[str]:
        """Transient download URL of the audit-trail certificate."""
        body = await self.request("GET", f"/documents/{document_id}/audit-trail")
        return extract_file_url(body.get("result"))
