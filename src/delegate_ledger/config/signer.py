"""Signing collaborator configuration values."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

SIGNER_TIMEOUT_SECONDS = 20.0


@dataclass(frozen=True, slots=True)
class SignerConfig:
    endpoint: str
    resilience: ResilienceConfig


def get_signer_config() -> SignerConfig:
    values = require_env_vars(("SIGNER_URL",))
    token = os.getenv("SIGNER_TOKEN")
    headers = {"Authorization": f"Bearer {token}"} if token else None
    return SignerConfig(
        endpoint=values["SIGNER_URL"],
        resilience=ResilienceConfig(
            name="signer",
            timeout_seconds=SIGNER_TIMEOUT_SECONDS,
            # authorisation requests are not idempotent from our side
            retry=RetryPolicy(total=0),
            ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
            cache=None,
            default_headers=headers,
        ),
    )
