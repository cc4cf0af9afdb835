"""Identity broker client (Keycloak) issuing OIDC tokens and SAML assertions."""

import base64
import binascii
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Protocol

import httpx
from pydantic import BaseModel

from ..config import settings
from ..core.errors import BrokerError
from ..utils.logger import get_logger

logger = get_logger(__name__)

TOKEN_EXCHANGE_GRANT = "urn:ietf:params:oauth:grant-type:token-exchange"
ACCESS_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:access_token"
SAML2_TOKEN_TYPE = "urn:ietf:params:oauth:token-type:saml2"


class TokenResponse(BaseModel):
    access_token: str
    id_token: Optional[str] = None
    token_type: str = "Bearer"
    expires_in: Optional[int] = None

    @property
    def web_identity_token(self) -> str:
        """Token presented to the CSP: the ID token when issued, else the access token."""
        return self.id_token or self.access_token


class SamlAssertion(BaseModel):
    """Base64 (standard alphabet) encoded SAML assertion."""

    assertion: str
    expires_at: Optional[datetime] = None


class IdentityBroker(Protocol):
    async def get_client_credentials_token(self) -> TokenResponse: ...

    async def get_saml_assertion(self) -> SamlAssertion: ...


def _to_standard_base64(value: str) -> str:
    # Keycloak returns the assertion base64url encoded without padding
    padded = value + "=" * (-len(value) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as exc:
        raise BrokerError(
            "SAML assertion is not base64 encoded", provider="keycloak", code="InvalidAssertion"
        ) from exc
    return base64.b64encode(raw).decode("ascii")


class KeycloakIdentityBroker:
    """Client-credentials and token-exchange calls against a Keycloak realm."""

    def __init__(
        self,
        token_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        saml_audience: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.token_url = token_url or settings.keycloak_token_url
        self.client_id = client_id or settings.keycloak_client_id
        self.client_secret = client_secret if client_secret is not None else settings.keycloak_client_secret
        self.saml_audience = saml_audience or settings.keycloak_saml_audience
        self.timeout = timeout if timeout is not None else settings.broker_timeout_seconds
        self._transport = transport

    async def _post_token(self, payload: Dict[str, str], purpose: str) -> Dict[str, Any]:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.token_url, data=payload)
        except httpx.TimeoutException as exc:
            raise BrokerError(
                f"identity broker timed out during {purpose}", provider="keycloak", code="Timeout"
            ) from exc
        except httpx.HTTPError as exc:
            raise BrokerError(
                f"identity broker unreachable during {purpose}: {exc}",
                provider="keycloak",
                code="Unavailable",
            ) from exc

        if response.status_code >= 400:
            logger.warning(
                "Identity broker rejected request", purpose=purpose, status=response.status_code
            )
            raise BrokerError(
                f"identity broker rejected {purpose} with status {response.status_code}",
                provider="keycloak",
                code=str(response.status_code),
            )
        try:
            return response.json()
        except ValueError as exc:
            raise BrokerError(
                f"identity broker returned a malformed {purpose} response",
                provider="keycloak",
                code="MalformedResponse",
            ) from exc

    async def get_client_credentials_token(self) -> TokenResponse:
        body = await self._post_token(
            {
                "grant_type": "client_credentials",
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "scope": "openid",
            },
            purpose="client credentials grant",
        )
        if not body.get("access_token"):
            raise BrokerError(
                "identity broker response is missing access_token",
                provider="keycloak",
                code="MissingToken",
            )
        logger.info("Obtained broker token", client_id=self.client_id)
        return TokenResponse(
            access_token=body["access_token"],
            id_token=body.get("id_token"),
            token_type=body.get("token_type", "Bearer"),
            expires_in=body.get("expires_in"),
        )

    async def get_saml_assertion(self) -> SamlAssertion:
        """Exchange a client-credentials token for a SAML 2.0 assertion."""
        token = await self.get_client_credentials_token()
        payload = {
            "grant_type": TOKEN_EXCHANGE_GRANT,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "subject_token": token.access_token,
            "subject_token_type": ACCESS_TOKEN_TYPE,
            "requested_token_type": SAML2_TOKEN_TYPE,
        }
        if self.saml_audience:
            payload["audience"] = self.saml_audience
        body = await self._post_token(payload, purpose="SAML token exchange")
        assertion = body.get("access_token")
        if not assertion:
            raise BrokerError(
                "identity broker response is missing the SAML assertion",
                provider="keycloak",
                code="MissingAssertion",
            )
        expires_at = None
        if body.get("expires_in"):
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(body["expires_in"]))
        logger.info("Obtained broker SAML assertion", client_id=self.client_id)
        return SamlAssertion(assertion=_to_standard_base64(assertion), expires_at=expires_at)
