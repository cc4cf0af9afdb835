"""
CSP IdP configuration schemas.

The stored config is a flat string map whose required keys depend on the
(auth method, CSP type) pair. ``parse_idp_config`` turns it into one of the
typed variants below and validates the required keys in one place.

Example configs:
    OIDC/aws:       oidc_provider_arn, audience, sts_endpoint, role_arn
    SAML/aws:       saml_provider_arn, sso_service_location, issuer_url, signin_url
    SAML/gcp:       saml_provider_resource_name, sso_service_location, audience
    SAML/azure:     application_id, tenant_id, sso_service_location, reply_url
    SECRET_KEY/aws: access_key_id, secret_access_key, encrypted
"""

from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    model_validator,
)

from ..core.errors import InvalidArgumentError
from ..utils.constants import AuthMethod, CspType


REQUIRED_CONFIG_FIELDS: Dict[tuple, tuple] = {
    (AuthMethod.OIDC, CspType.AWS): ("oidc_provider_arn",),
    (AuthMethod.OIDC, CspType.GCP): ("workload_identity_provider",),
    (AuthMethod.OIDC, CspType.AZURE): ("tenant_id", "client_id"),
    (AuthMethod.SAML, CspType.AWS): ("saml_provider_arn", "sso_service_location"),
    (AuthMethod.SAML, CspType.GCP): ("saml_provider_resource_name", "sso_service_location"),
    (AuthMethod.SAML, CspType.AZURE): ("application_id", "tenant_id", "sso_service_location"),
    (AuthMethod.SECRET_KEY, CspType.AWS): ("access_key_id", "secret_access_key"),
    (AuthMethod.SECRET_KEY, CspType.GCP): ("service_account_key",),
    (AuthMethod.SECRET_KEY, CspType.AZURE): ("tenant_id", "client_id", "client_secret"),
}

SECRET_CONFIG_FIELDS = ("secret_access_key", "client_secret", "service_account_key")

MASKED_VALUE = "********"


class _IdpConfigVariant(BaseModel):
    """Common behaviour of the per-method config variants."""

    model_config = ConfigDict(extra="allow", str_strip_whitespace=True)

    role_arn: Optional[str] = None

    @model_validator(mode="after")
    def _check_required_fields(self, info: ValidationInfo):
        csp_type = (info.context or {}).get("csp_type")
        if csp_type is None:
            return self
        method = AuthMethod(self.auth_method)
        required = REQUIRED_CONFIG_FIELDS.get((method, CspType(csp_type)), ())
        missing = [name for name in required if not self._value(name)]
        if missing:
            raise ValueError(
                f"{method.value} config for {CspType(csp_type).value} "
                f"requires: {', '.join(missing)}"
            )
        return self

    def _value(self, name: str) -> Optional[str]:
        value = getattr(self, name, None)
        if value is None and self.model_extra:
            value = self.model_extra.get(name)
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        return value or None

    def to_config_dict(self) -> Dict[str, str]:
        """Flatten back to the stored string map (secrets revealed)."""
        data: Dict[str, str] = {}
        for key, value in self.model_dump(exclude={"auth_method"}, exclude_none=True).items():
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            if isinstance(value, bool):
                value = "true" if value else "false"
            data[key] = str(value)
        return data


class OidcIdpConfig(_IdpConfigVariant):
    auth_method: Literal["OIDC"] = "OIDC"
    oidc_provider_arn: Optional[str] = None
    audience: Optional[str] = None
    sts_endpoint: Optional[str] = None
    # gcp workload identity federation
    workload_identity_provider: Optional[str] = None
    # azure workload identity
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None


class SamlIdpConfig(_IdpConfigVariant):
    auth_method: Literal["SAML"] = "SAML"
    sso_service_location: Optional[str] = None
    issuer_url: Optional[str] = None
    metadata_url: Optional[str] = None
    # aws
    saml_provider_arn: Optional[str] = None
    signin_url: Optional[str] = None
    valid_until: Optional[str] = None
    # gcp
    saml_provider_resource_name: Optional[str] = None
    audience: Optional[str] = None
    # azure
    application_id: Optional[str] = None
    tenant_id: Optional[str] = None
    reply_url: Optional[str] = None
    federated_credential_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _legacy_assertion_endpoint(cls, data: Any) -> Any:
        # older configs name the SSO location assertion_endpoint
        if isinstance(data, dict) and not data.get("sso_service_location"):
            if data.get("assertion_endpoint"):
                data = {**data, "sso_service_location": data["assertion_endpoint"]}
        return data


class SecretKeyIdpConfig(_IdpConfigVariant):
    auth_method: Literal["SECRET_KEY"] = "SECRET_KEY"
    access_key_id: Optional[str] = None
    secret_access_key: Optional[SecretStr] = None
    encrypted: bool = False
    # gcp
    service_account_key: Optional[SecretStr] = None
    # azure
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[SecretStr] = None


IdpConfigVariant = Annotated[
    Union[OidcIdpConfig, SamlIdpConfig, SecretKeyIdpConfig],
    Field(discriminator="auth_method"),
]

_variant_adapter: TypeAdapter = TypeAdapter(IdpConfigVariant)


def parse_idp_config(
    auth_method: AuthMethod,
    csp_type: Optional[CspType],
    config: Optional[Dict[str, Any]],
) -> Union[OidcIdpConfig, SamlIdpConfig, SecretKeyIdpConfig]:
    """
    Build the typed config variant for an auth method.
    When csp_type is given the keys it requires are checked as well.
    Raises InvalidArgumentError on any missing or malformed field.
    """
    payload = {**(config or {}), "auth_method": AuthMethod(auth_method).value}
    context = {"csp_type": CspType(csp_type)} if csp_type is not None else None
    try:
        return _variant_adapter.validate_python(payload, context=context)
    except ValidationError as exc:
        details = "; ".join(
            err["msg"].removeprefix("Value error, ") for err in exc.errors()
        )
        raise InvalidArgumentError(
            f"invalid IdP config: {details}", entity="CspIdpConfig"
        ) from exc


def mask_config(config: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Copy of a stored config with secret values hidden."""
    masked = dict(config or {})
    for key in SECRET_CONFIG_FIELDS:
        if masked.get(key):
            masked[key] = MASKED_VALUE
    return masked


class CspIdpConfigCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    csp_account_id: int
    auth_method: AuthMethod
    config: Dict[str, str]
    description: Optional[str] = Field(None, max_length=500)


class CspIdpConfigUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    config: Optional[Dict[str, str]] = None
    is_active: Optional[bool] = None
    description: Optional[str] = Field(None, max_length=500)


class CspIdpConfigFilter(BaseModel):
    """List filter; unset fields are not constrained."""

    csp_account_id: Optional[int] = None
    auth_method: Optional[AuthMethod] = None
    is_active: Optional[bool] = None
    name: Optional[str] = None


class CspIdpConfigResponse(BaseModel):
    id: int
    name: str
    csp_account_id: int
    auth_method: AuthMethod
    config: Dict[str, Any]
    is_active: bool
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @model_validator(mode="after")
    def _mask_secrets(self):
        self.config = mask_config(self.config)
        return self


class ConnectionTestResult(BaseModel):
    idp_config_id: int
    success: bool
    detail: str
