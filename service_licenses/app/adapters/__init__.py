"""
Adapters package for the License Provider service.

Contains the HTTP client wrapper for the upstream license issuer. Adapters
encapsulate base URLs, request shapes and the mapping of transport failures
to shared errors. Keep them thin and side-effect free outside of explicit calls.
"""

from .issuer_client import IssuerUnavailableError, UpstreamIssuerClient

__all__ = [
    "IssuerUnavailableError",
    "UpstreamIssuerClient",
]
