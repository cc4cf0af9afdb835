"""Application constants and enums."""

from enum import Enum


class CspType(str, Enum):
    """Cloud service provider type."""

    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"


class AuthMethod(str, Enum):
    """Trust method used to federate into a CSP role."""

    OIDC = "OIDC"
    SAML = "SAML"
    SECRET_KEY = "SECRET_KEY"

    @property
    def auth_type(self) -> str:
        """Lower-case label reported on issued credentials."""
        return self.value.lower()


class PolicyType(str, Enum):
    """CSP policy type."""

    INLINE = "inline"
    MANAGED = "managed"
    CUSTOM = "custom"


class PolicyScope(str, Enum):
    """Provider policy listing scope."""

    ALL = "All"
    AWS = "AWS"
    LOCAL = "Local"


class RoleType(str, Enum):
    """Scope tag carried by a RoleSub row."""

    PLATFORM = "platform"
    WORKSPACE = "workspace"
    CSP = "csp"


# STS rejects sessions shorter than this
MIN_SESSION_DURATION_SECONDS = 900

# IAM keeps at most this many versions per managed policy
MAX_POLICY_VERSIONS = 5
