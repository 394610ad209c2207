"""
Admin ingest: lets a trusted minter push licenses into the lookaside store.
"""

import hmac
import json
from typing import Any, AsyncIterator, Optional

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError as PydanticValidationError

from shared.errors import (
    AuthenticationError,
    LicenseServiceException,
    PayloadTooLargeError,
    ValidationError,
)
from shared.logging import get_logger, set_license_context
from shared.metrics import MetricsCollector
from ..storage.lookaside_store import InvalidStorageKeyError, LookasideStore
from .models import IngestResult, LicenseDocument

MISSING_ID_MESSAGE = "License JSON must include .id"


class AdminIngestGate:
    """Bearer-token gate in front of ``LookasideStore.put``.

    With no admin token configured the gate is closed: every call is
    unauthorized, whatever header is presented.
    """

    def __init__(self, store: LookasideStore, admin_token: str,
                 max_body_bytes: int = 2 * 1024 * 1024,
                 metrics: Optional[MetricsCollector] = None):
        self.store = store
        self._expected_header = f"Bearer {admin_token}".encode("utf-8") if admin_token else None
        self.max_body_bytes = max_body_bytes
        self.metrics = metrics
        self.logger = get_logger("licenses.admin_ingest")

    @property
    def enabled(self) -> bool:
        return self._expected_header is not None

    def authorize(self, auth_header: Optional[str]) -> None:
        """Raise ``AuthenticationError`` unless the header matches exactly."""
        if self._expected_header is None:
            raise AuthenticationError()
        presented = (auth_header or "").encode("utf-8")
        if not hmac.compare_digest(presented, self._expected_header):
            raise AuthenticationError()

    @staticmethod
    def validate(payload: Any) -> LicenseDocument:
        if not isinstance(payload, dict):
            raise ValidationError(MISSING_ID_MESSAGE)
        try:
            document = LicenseDocument.model_validate(payload)
        except PydanticValidationError as exc:
            raise ValidationError(MISSING_ID_MESSAGE) from exc
        if not LookasideStore.is_valid_key(document.id):
            raise InvalidStorageKeyError(document.id)
        return document

    async def ingest(self, auth_header: Optional[str], payload: Any) -> IngestResult:
        """Authorize, validate and store an already-parsed license document."""
        try:
            self.authorize(auth_header)
            return await self._store(payload)
        except LicenseServiceException as exc:
            self._record(exc.code.lower())
            raise

    async def ingest_stream(self, auth_header: Optional[str], chunks: AsyncIterator[bytes],
                            content_length: Optional[str] = None) -> IngestResult:
        """Same as ``ingest`` but starting from the raw request body.

        The token is checked before any of the body is read, and reading
        stops as soon as the body is known to exceed ``max_body_bytes``.
        """
        try:
            self.authorize(auth_header)
            raw_body = await self.read_limited(chunks, content_length)
            payload = None
            if raw_body.strip():
                try:
                    payload = json.loads(raw_body)
                except ValueError as exc:
                    raise ValidationError("Invalid JSON body") from exc
            return await self._store(payload)
        except LicenseServiceException as exc:
            self._record(exc.code.lower())
            raise

    async def read_limited(self, chunks: AsyncIterator[bytes], content_length: Optional[str] = None) -> bytes:
        """Collect ``chunks`` into one body, raising ``PayloadTooLargeError`` past the limit."""
        if content_length and content_length.strip().isdigit() and int(content_length) > self.max_body_bytes:
            raise self._too_large()

        received = bytearray()
        async for chunk in chunks:
            received.extend(chunk)
            if len(received) > self.max_body_bytes:
                raise self._too_large()
        return bytes(received)

    def _too_large(self) -> PayloadTooLargeError:
        return PayloadTooLargeError(detail=f"limit is {self.max_body_bytes} bytes")

    async def _store(self, payload: Any) -> IngestResult:
        document = self.validate(payload)
        set_license_context(document.id)

        serialized = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        saved_key = await run_in_threadpool(self.store.put, document.id, serialized)

        self._record("created")
        self.logger.info("License ingested", license_id=document.id, size=len(serialized))
        return IngestResult(saved_key=saved_key)

    def _record(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("license_ingests_total", outcome=outcome)
