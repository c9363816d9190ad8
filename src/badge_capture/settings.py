"""
badge_capture.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for every collaborator the service talks to.
- Hide secrets (provider API keys, webhook secret, KV token) from repr/logging.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    One explicit configuration object passed into the app factory.
    Optional collaborators are enabled by setting their options; anything left unset
    makes the corresponding step report `skipped_missing_config`.
    """

    model_config = SettingsConfigDict(env_prefix="BADGE_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "badge-capture"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080
    route_prefix: str = ""

    # Cosmetic: mail subject and sender display name.
    site_name: str = "ReadyToRelate"

    # Validation
    require_consent: bool = False

    # Notification
    capture_to: str | None = None
    sender_from: str | None = None
    reply_to: str | None = None
    confirm_submitter: bool = False
    mail_provider: Literal["mailchannels", "resend"] = "mailchannels"
    mailchannels_url: str = "https://api.mailchannels.net/tx/v1/send"
    mailchannels_api_key: str | None = Field(default=None, repr=False)
    resend_url: str = "https://api.resend.com/emails"
    resend_api_key: str | None = Field(default=None, repr=False)

    # Spreadsheet logging relay (Apps Script web app)
    app_script_url: str | None = None
    app_script_secret: str | None = Field(default=None, repr=False)

    # Key-value collaborator (rate limit counters + stored submissions)
    kv_backend: Literal["none", "memory", "cloudflare"] = "none"
    cloudflare_api_base_url: str = "https://api.cloudflare.com/client/v4"
    cloudflare_account_id: str | None = None
    cloudflare_namespace_id: str | None = None
    cloudflare_api_token: str | None = Field(default=None, repr=False)

    rate_limit_max: int = 2
    rate_limit_window_seconds: int = 3600
    record_ttl_seconds: int = 365 * 24 * 3600

    # Every outbound call is bounded by this timeout.
    http_timeout_seconds: float = 10.0

    client_ip_header: str = "cf-connecting-ip"
    # Empty list means wildcard fallback (echo the caller's origin).
    cors_allowed_origins: list[str] = Field(default_factory=list)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Builders in `collaborators` and `services` read only from this object; nothing else
# in the package looks at the environment directly.
