"""
License Provider service.

Serves stored licenses from the lookaside store, or proxies a fresh license
from the upstream issuer when none is stored.
"""

from typing import Dict, Optional

from fastapi import Header, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse

from shared.base_service import BaseService
from .adapters.issuer_client import UpstreamIssuerClient
from .config import LicenseServiceConfig, get_config
from .domain.admin_ingest import AdminIngestGate
from .domain.models import BasicAuthCredentials, DecryptionKeyPayload
from .domain.retrieval import RetrievalOrchestrator
from .storage.lookaside_store import LookasideStore


class LicenseService(BaseService):
    """License Provider service implementation."""

    def __init__(self, config: Optional[LicenseServiceConfig] = None,
                 issuer_client: Optional[UpstreamIssuerClient] = None):
        config = config or get_config()
        super().__init__("licenses", config)

        self.store = LookasideStore(config.store_dir)
        self.store.ensure_directory()

        self.issuer_client = issuer_client or UpstreamIssuerClient(
            config.issuer_url,
            timeout=config.issuer_timeout_seconds,
        )
        self.orchestrator = RetrievalOrchestrator(
            store=self.store,
            issuer=self.issuer_client,
            key_payload=DecryptionKeyPayload(
                hex_value=config.static_user_key_hex,
                text_hint=config.static_user_key_hint,
            ),
            credentials=BasicAuthCredentials(
                username=config.issuer_username,
                password=config.issuer_password.get_secret_value(),
            ),
            metrics=self.metrics,
        )
        self.admin_gate = AdminIngestGate(
            store=self.store,
            admin_token=config.admin_token.get_secret_value(),
            max_body_bytes=config.max_ingest_bytes,
            metrics=self.metrics,
        )
        if not self.admin_gate.enabled:
            self.logger.warning("No admin token configured; admin ingest is disabled")

        self._setup_license_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.license_service = self

    def _setup_license_routes(self):
        """Set up license routes."""

        @self.app.get("/healthz", response_class=PlainTextResponse)
        async def healthz():
            """Liveness check."""
            return "ok"

        @self.app.get("/api/v1/licenses/{license_id}")
        async def get_license(license_id: str):
            """Stored license if present, otherwise a fresh one from the issuer."""
            envelope = await self.orchestrator.retrieve(license_id)
            return Response(
                content=envelope.body,
                status_code=envelope.status_code,
                media_type=envelope.content_type,
                headers=envelope.headers,
            )

        @self.app.post("/api/v1/admin/licenses", status_code=201)
        async def ingest_license(request: Request, authorization: Optional[str] = Header(default=None)):
            """Store a freshly minted license so it is served locally."""
            result = await self.admin_gate.ingest_stream(
                authorization,
                request.stream(),
                content_length=request.headers.get("content-length"),
            )
            return JSONResponse(status_code=201, content={"saved": result.saved_key})

    async def _check_dependencies(self) -> Dict[str, str]:
        """The store must be writable for admin ingest to succeed."""
        writable = await run_in_threadpool(self.store.is_writable)
        return {"store": "ok" if writable else "error"}


def create_app(config: Optional[LicenseServiceConfig] = None):
    """Create FastAPI application."""
    service = LicenseService(config)
    return service.app


if __name__ == "__main__":
    service = LicenseService()
    service.run()
