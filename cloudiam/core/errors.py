"""Typed errors raised by the trust and role-mapping core."""

from typing import Any, Optional


class CloudIamError(Exception):
    """Base error carrying the entity kind and identifier it concerns."""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        identifier: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.entity = entity
        self.identifier = identifier

    def __str__(self) -> str:
        return self.message


class NotFoundError(CloudIamError):
    """Requested entity does not exist."""

    def __init__(self, entity: str, identifier: Any = None, message: Optional[str] = None):
        super().__init__(
            message or f"{entity} not found with ID: {identifier}",
            entity=entity,
            identifier=identifier,
        )


class AlreadyExistsError(CloudIamError):
    """Uniqueness invariant would be violated by the write."""


class InvalidArgumentError(CloudIamError):
    """Missing or malformed required input or configuration."""


class InvalidStateError(CloudIamError):
    """Entity exists but is not usable for the operation (e.g. inactive)."""


class DependentsExistError(CloudIamError):
    """Delete blocked because other entities still reference the target."""

    def __init__(self, entity: str, identifier: Any, dependents: str, count: int):
        super().__init__(
            f"cannot delete {entity} {identifier}: {count} {dependents} are associated",
            entity=entity,
            identifier=identifier,
        )
        self.dependents = dependents
        self.count = count


class UnimplementedError(CloudIamError):
    """Capability is not backed for the given CSP type."""


class ProviderError(CloudIamError):
    """Failure reported by a cloud provider or identity broker."""

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        code: Optional[str] = None,
        entity: Optional[str] = None,
        identifier: Any = None,
    ):
        super().__init__(message, entity=entity, identifier=identifier)
        self.provider = provider
        self.code = code


class PermissionDeniedError(ProviderError):
    """Provider refused the call for the calling identity."""


class ProviderUnavailableError(ProviderError):
    """Provider could not be reached or the call deadline elapsed."""


class BrokerError(ProviderError):
    """Identity broker failed to issue a token or assertion."""
