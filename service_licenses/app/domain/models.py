"""
Data models for the License Provider service.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr

LICENSE_MEDIA_TYPE = "application/vnd.readium.lcp.license+json"
NO_STORE = "no-store"


class LicenseDocument(BaseModel):
    """A license as accepted by admin ingest.

    Only ``id`` is checked; every other field is carried along untouched.
    """

    model_config = ConfigDict(extra="allow")

    id: StrictStr = Field(..., min_length=1, description="License identifier")


class DecryptionKeyPayload(BaseModel):
    """User-key section sent to the issuer when minting a fresh license.

    A single static value is used for every fallback fetch; it is not a
    per-user credential.
    """

    model_config = ConfigDict(frozen=True)

    hex_value: str
    text_hint: str

    def to_request_body(self) -> Dict[str, Any]:
        return {
            "encryption": {
                "user_key": {
                    "text_hint": self.text_hint,
                    "hex_value": self.hex_value,
                }
            }
        }


@dataclass(frozen=True)
class BasicAuthCredentials:
    """HTTP Basic credentials for the issuer."""
    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class LicenseFound:
    """Store hit: the exact bytes that were written."""
    body: bytes


@dataclass(frozen=True)
class LicenseNotFound:
    """Store miss."""
    license_id: str


LookupResult = Union[LicenseFound, LicenseNotFound]


@dataclass(frozen=True)
class UpstreamResponse:
    """Issuer answer, kept verbatim."""
    status_code: int
    content_type: Optional[str]
    body: bytes


@dataclass(frozen=True)
class ResponseEnvelope:
    """What the retrieval path hands back to the HTTP layer."""
    status_code: int
    content_type: str
    body: bytes
    source: str

    @property
    def headers(self) -> Dict[str, str]:
        # Licenses must never be cached by intermediaries.
        return {"Cache-Control": NO_STORE}


@dataclass(frozen=True)
class IngestResult:
    """Outcome of a successful admin ingest."""
    saved_key: str
