"""
Upstream issuer (LCP server) client for the License Provider.
"""

from typing import Optional
from urllib.parse import quote

import httpx

from shared.logging import get_logger
from shared.errors import ExternalServiceError
from ..domain.models import (
    LICENSE_MEDIA_TYPE,
    BasicAuthCredentials,
    DecryptionKeyPayload,
    UpstreamResponse,
)


class IssuerUnavailableError(ExternalServiceError):
    """The issuer could not be reached; no HTTP response was received."""

    def __init__(self, detail: str):
        super().__init__("issuer", "Upstream fetch failed", detail)


class UpstreamIssuerClient:
    """Client that asks the issuer to mint a fresh license for an id.

    One request per call: no retries, no caching. Redirects from the issuer
    are followed. Whatever final status it answers with is handed back
    untouched.
    """

    def __init__(self, issuer_url: str, timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = issuer_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport
        self.logger = get_logger("licenses.issuer_client")

    def license_url(self, license_id: str) -> str:
        return f"{self.base_url}/licenses/{quote(license_id, safe='')}"

    async def fetch_fresh(self, license_id: str, key_payload: DecryptionKeyPayload,
                          credentials: BasicAuthCredentials) -> UpstreamResponse:
        """POST the key payload to the issuer and return its answer verbatim."""
        url = self.license_url(license_id)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport,
                                         follow_redirects=True) as client:
                response = await client.post(
                    url,
                    json=key_payload.to_request_body(),
                    auth=httpx.BasicAuth(credentials.username, credentials.password),
                    headers={"Accept": LICENSE_MEDIA_TYPE},
                )
        except httpx.RequestError as exc:
            detail = f"{exc.__class__.__name__}: {exc}"
            self.logger.error("Issuer request failed", url=url, license_id=license_id, error=detail)
            raise IssuerUnavailableError(detail) from exc

        if response.is_success:
            self.logger.debug("Fresh license issued", license_id=license_id, status_code=response.status_code)
        else:
            self.logger.warning(
                "Issuer returned an error status",
                license_id=license_id,
                status_code=response.status_code,
            )

        return UpstreamResponse(
            status_code=response.status_code,
            content_type=response.headers.get("content-type"),
            body=response.content,
        )
