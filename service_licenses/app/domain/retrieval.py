"""
License retrieval: lookaside store first, fresh license from the issuer otherwise.
"""

import json
import time
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from shared.logging import get_logger, set_license_context
from shared.metrics import MetricsCollector
from shared.tracing import trace_operation
from ..adapters.issuer_client import IssuerUnavailableError, UpstreamIssuerClient
from ..storage.lookaside_store import LookasideStore
from .models import (
    LICENSE_MEDIA_TYPE,
    BasicAuthCredentials,
    DecryptionKeyPayload,
    LicenseFound,
    ResponseEnvelope,
)

SOURCE_STORED = "stored"
SOURCE_PROXIED = "proxied"
SOURCE_GATEWAY_ERROR = "gateway_error"


class RetrievalOrchestrator:
    """Decides where a license comes from and shapes the response.

    Store hit: 200 with the stored bytes. Store miss: one issuer call whose
    status and body are passed through. Issuer unreachable: a synthesized 502.
    Nothing fetched from the issuer is kept.
    """

    def __init__(self, store: LookasideStore, issuer: UpstreamIssuerClient,
                 key_payload: DecryptionKeyPayload, credentials: BasicAuthCredentials,
                 metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.issuer = issuer
        self.key_payload = key_payload
        self.credentials = credentials
        self.metrics = metrics
        self.logger = get_logger("licenses.retrieval")

    async def retrieve(self, license_id: str) -> ResponseEnvelope:
        set_license_context(license_id)

        lookup = await run_in_threadpool(self.store.get, license_id)
        if isinstance(lookup, LicenseFound):
            return self._respond(ResponseEnvelope(
                status_code=200,
                content_type=LICENSE_MEDIA_TYPE,
                body=lookup.body,
                source=SOURCE_STORED,
            ))

        start_time = time.time()
        try:
            with trace_operation("issuer.fetch_fresh", license_id=license_id):
                upstream = await self.issuer.fetch_fresh(license_id, self.key_payload, self.credentials)
        except IssuerUnavailableError as exc:
            self._observe_issuer(start_time, "network_error")
            body = json.dumps({"error": exc.error, "detail": exc.detail}).encode("utf-8")
            return self._respond(ResponseEnvelope(
                status_code=502,
                content_type="application/json",
                body=body,
                source=SOURCE_GATEWAY_ERROR,
            ))

        self._observe_issuer(start_time, str(upstream.status_code))
        return self._respond(ResponseEnvelope(
            status_code=upstream.status_code,
            content_type=LICENSE_MEDIA_TYPE,
            body=upstream.body,
            source=SOURCE_PROXIED,
        ))

    def _observe_issuer(self, start_time: float, outcome: str) -> None:
        if self.metrics:
            self.metrics.observe_histogram(
                "issuer_request_duration_seconds", time.time() - start_time, outcome=outcome
            )

    def _respond(self, envelope: ResponseEnvelope) -> ResponseEnvelope:
        if self.metrics:
            self.metrics.increment_counter("license_retrievals_total", source=envelope.source)
        self.logger.info(
            "License served",
            source=envelope.source,
            status_code=envelope.status_code,
            size=len(envelope.body),
        )
        return envelope
