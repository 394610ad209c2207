"""
Configuration for the License Provider service.
"""

from pydantic import AliasChoices, Field, SecretStr

from shared.config import ServiceConfig

# Shared by every fallback fetch until keys are looked up per license.
DEFAULT_USER_KEY_HEX = "2ED06766795D58A4F22D511A672F20A6B096D3FE5B56AF3A744678A9A356FD82"
DEFAULT_USER_KEY_HINT = "Your site password"


class LicenseServiceConfig(ServiceConfig):
    """License Provider settings, read from the environment once at startup."""

    service_name: str = "licenses"

    # Lookaside store
    store_dir: str = Field(
        default="./licenses",
        validation_alias=AliasChoices("LICENSES_STORE_DIR", "STORE_DIR", "store_dir"),
    )

    # Upstream issuer (LCP server)
    issuer_url: str = Field(
        default="https://lcpserver.onrender.com",
        validation_alias=AliasChoices("LICENSES_ISSUER_URL", "LCP_URL", "issuer_url"),
    )
    issuer_username: str = Field(
        default="admin",
        validation_alias=AliasChoices("LICENSES_ISSUER_USERNAME", "LCP_ADMIN_USER", "issuer_username"),
    )
    issuer_password: SecretStr = Field(
        default=SecretStr("adminPass!!"),
        validation_alias=AliasChoices("LICENSES_ISSUER_PASSWORD", "LCP_ADMIN_PASS", "issuer_password"),
    )
    issuer_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias=AliasChoices("LICENSES_ISSUER_TIMEOUT_SECONDS", "issuer_timeout_seconds"),
    )

    # Decryption-key payload embedded in every fallback request
    static_user_key_hex: str = Field(
        default=DEFAULT_USER_KEY_HEX,
        validation_alias=AliasChoices("LICENSES_STATIC_USER_KEY_HEX", "STATIC_USER_KEY_HEX", "static_user_key_hex"),
    )
    static_user_key_hint: str = Field(
        default=DEFAULT_USER_KEY_HINT,
        validation_alias=AliasChoices("LICENSES_STATIC_USER_KEY_HINT", "static_user_key_hint"),
    )

    # Admin ingest; an empty token disables the endpoint
    admin_token: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("LICENSES_ADMIN_TOKEN", "PROVIDER_ADMIN_TOKEN", "admin_token"),
    )
    max_ingest_bytes: int = Field(
        default=2 * 1024 * 1024,
        gt=0,
        validation_alias=AliasChoices("LICENSES_MAX_INGEST_BYTES", "max_ingest_bytes"),
    )


def get_config(**overrides) -> LicenseServiceConfig:
    """Build the service configuration; keyword overrides win over the environment."""
    return LicenseServiceConfig(**overrides)
