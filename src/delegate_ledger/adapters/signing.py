"""HTTP client for the external signing collaborator."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from delegate_ledger.adapters.http_resilience import ResilientClient
from delegate_ledger.config.signer import SignerConfig, get_signer_config
from delegate_ledger.domain.errors import AuthorizationError
from delegate_ledger.domain.ports import IntentSigner

if TYPE_CHECKING:
    from collections.abc import Callable

    from delegate_ledger.config.http_resilience import ResilienceConfig
    from delegate_ledger.domain.model import SignatureScope

log = getLogger(__name__)


class SignerResponse(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    psbt: str | None = None
    error: str | None = None


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class HttpIntentSigner:
    """Sends a proposal to the key holder and returns the authorized copy.

    Only input 0 is ever requested; the scope travels as its wire name so the
    signer can refuse scopes it does not support.
    """

    config: SignerConfig = field(default_factory=get_signer_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    def __call__(self, proposal: str, *, owner: str | None, scope: SignatureScope) -> str:
        return asyncio.run(self._authorize(proposal, owner=owner, scope=scope))

    async def _authorize(self, proposal: str, *, owner: str | None, scope: SignatureScope) -> str:
        body = {"psbt": proposal, "address": owner, "sighash": str(scope), "inputs": [0]}
        async with self.client_factory(self.config.resilience) as client:
            try:
                response = await client.post(self.config.endpoint, json=body)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise AuthorizationError(f"Signer request failed: {exc}") from exc

        try:
            payload = SignerResponse.model_validate(response.json())
        except (ValueError, PydanticValidationError) as exc:
            raise AuthorizationError("Signer returned an unexpected payload") from exc
        if payload.error:
            log.error(f"Signer refused authorization: {payload.error}")
            raise AuthorizationError(payload.error)
        if not payload.psbt:
            raise AuthorizationError("Signer returned no authorized proposal")
        return payload.psbt


if TYPE_CHECKING:
    _signer_check: IntentSigner = HttpIntentSigner()
