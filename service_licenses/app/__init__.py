"""
License Provider Service package.

The service hands reading applications their LCP licenses by identifier:

- Stored licenses: served straight from the local lookaside store.
- Everything else: minted fresh by the upstream issuer and passed through.
- Admin ingest: a trusted minter pushes new licenses into the store.

Structure:
- app.main: FastAPI app, routes, and wiring.
- app.config: Service configuration.
- app.storage: File-backed lookaside store.
- app.adapters: HTTP client for the upstream issuer.
- app.domain: Retrieval and admin ingest logic, plus their models.
"""
