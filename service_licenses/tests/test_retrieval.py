"""
Unit tests for license retrieval.
"""

import json
import pytest
from unittest.mock import AsyncMock, MagicMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_licenses.app.adapters.issuer_client import IssuerUnavailableError, UpstreamIssuerClient
from service_licenses.app.domain.models import (
    LICENSE_MEDIA_TYPE,
    BasicAuthCredentials,
    DecryptionKeyPayload,
    UpstreamResponse,
)
from service_licenses.app.domain.retrieval import RetrievalOrchestrator
from service_licenses.app.storage.lookaside_store import LookasideStore
from shared.errors import StorageError
from shared.metrics import MetricsCollector


class TestRetrievalOrchestrator:
    """Test cases for RetrievalOrchestrator."""

    @pytest.fixture
    def store(self, tmp_path):
        return LookasideStore(str(tmp_path / "licenses"))

    @pytest.fixture
    def issuer(self):
        issuer = MagicMock(spec=UpstreamIssuerClient)
        issuer.fetch_fresh = AsyncMock(return_value=UpstreamResponse(
            status_code=200,
            content_type="application/json",
            body=b'{"id":"missing-1","fresh":true}',
        ))
        return issuer

    @pytest.fixture
    def key_payload(self):
        return DecryptionKeyPayload(hex_value="2ED0", text_hint="Your site password")

    @pytest.fixture
    def credentials(self):
        return BasicAuthCredentials(username="admin", password="adminPass!!")

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("licenses")

    @pytest.fixture
    def orchestrator(self, store, issuer, key_payload, credentials, metrics):
        return RetrievalOrchestrator(store, issuer, key_payload, credentials, metrics=metrics)

    @pytest.mark.asyncio
    async def test_store_hit_serves_stored_bytes(self, orchestrator, store, issuer):
        document = b'{"id":"abc123","encryption":{"profile":"basic"}}'
        store.put("abc123", document)

        envelope = await orchestrator.retrieve("abc123")

        assert envelope.status_code == 200
        assert envelope.content_type == LICENSE_MEDIA_TYPE
        assert envelope.body == document
        assert envelope.headers["Cache-Control"] == "no-store"
        assert envelope.source == "stored"
        issuer.fetch_fresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_hit_is_stable(self, orchestrator, store, issuer):
        store.put("abc123", b'{"id":"abc123"}')

        bodies = [(await orchestrator.retrieve("abc123")).body for _ in range(3)]

        assert bodies == [b'{"id":"abc123"}'] * 3
        issuer.fetch_fresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_miss_proxies_issuer(self, orchestrator, issuer, key_payload, credentials):
        envelope = await orchestrator.retrieve("missing-1")

        assert envelope.status_code == 200
        assert envelope.body == b'{"id":"missing-1","fresh":true}'
        # Media type is fixed regardless of what the issuer said
        assert envelope.content_type == LICENSE_MEDIA_TYPE
        assert envelope.headers["Cache-Control"] == "no-store"
        assert envelope.source == "proxied"
        issuer.fetch_fresh.assert_awaited_once_with("missing-1", key_payload, credentials)

    @pytest.mark.asyncio
    async def test_issuer_error_status_passed_through(self, orchestrator, issuer):
        issuer.fetch_fresh.return_value = UpstreamResponse(
            status_code=404, content_type="text/plain", body=b"content not found"
        )

        envelope = await orchestrator.retrieve("unknown-content")

        assert envelope.status_code == 404
        assert envelope.body == b"content not found"
        assert envelope.content_type == LICENSE_MEDIA_TYPE
        assert envelope.headers["Cache-Control"] == "no-store"

    @pytest.mark.asyncio
    async def test_every_miss_calls_issuer(self, orchestrator, issuer):
        for _ in range(3):
            await orchestrator.retrieve("missing-1")

        assert issuer.fetch_fresh.await_count == 3

    @pytest.mark.asyncio
    async def test_proxied_result_is_not_stored(self, orchestrator, store):
        await orchestrator.retrieve("missing-1")

        assert not store.path_for("missing-1").exists()

    @pytest.mark.asyncio
    async def test_network_failure_synthesizes_502(self, orchestrator, issuer):
        issuer.fetch_fresh.side_effect = IssuerUnavailableError("ConnectError: Connection refused")

        envelope = await orchestrator.retrieve("missing-2")

        assert envelope.status_code == 502
        assert envelope.content_type == "application/json"
        assert envelope.headers["Cache-Control"] == "no-store"
        assert envelope.source == "gateway_error"
        assert json.loads(envelope.body) == {
            "error": "Upstream fetch failed",
            "detail": "ConnectError: Connection refused",
        }
        assert issuer.fetch_fresh.await_count == 1

    @pytest.mark.asyncio
    async def test_store_read_error_propagates(self, orchestrator, store, issuer, tmp_path):
        store.ensure_directory()
        store.path_for("abc123").mkdir()

        with pytest.raises(StorageError):
            await orchestrator.retrieve("abc123")
        issuer.fetch_fresh.assert_not_called()

    @pytest.mark.asyncio
    async def test_metrics_count_sources(self, orchestrator, store, issuer, metrics):
        store.put("abc123", b'{"id":"abc123"}')
        await orchestrator.retrieve("abc123")
        await orchestrator.retrieve("missing-1")
        issuer.fetch_fresh.side_effect = IssuerUnavailableError("ConnectError: boom")
        await orchestrator.retrieve("missing-2")

        def count(source):
            return metrics.registry.get_sample_value("license_retrievals_total", {"source": source})

        assert count("stored") == 1.0
        assert count("proxied") == 1.0
        assert count("gateway_error") == 1.0
