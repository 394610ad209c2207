"""
Domain logic for the License Provider: retrieval with issuer fallback, and
admin ingest into the lookaside store.
"""
