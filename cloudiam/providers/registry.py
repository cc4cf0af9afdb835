"""CSP type to provider adapter registry."""

from typing import Any, Callable, Dict, Optional

from .aws import AwsProvider
from .azure import AzureProvider
from .base import CspProvider, StaticCredentials
from .gcp import GcpProvider
from ..core.errors import UnimplementedError
from ..utils.constants import CspType

ProviderFactory = Callable[..., CspProvider]

_PROVIDERS: Dict[CspType, ProviderFactory] = {
    CspType.AWS: AwsProvider,
    CspType.GCP: GcpProvider,
    CspType.AZURE: AzureProvider,
}


class ProviderRegistry:
    """Builds the adapter for a CSP type, bound to a region and caller keys."""

    def __init__(
        self,
        providers: Optional[Dict[CspType, ProviderFactory]] = None,
        client_factory: Any = None,
        timeout: Optional[float] = None,
    ):
        self._providers = dict(_PROVIDERS if providers is None else providers)
        self._client_factory = client_factory
        self._timeout = timeout

    def register(self, csp_type: CspType, factory: ProviderFactory) -> None:
        self._providers[CspType(csp_type)] = factory

    def supports(self, csp_type: CspType) -> bool:
        return CspType(csp_type) in self._providers

    def get(
        self,
        csp_type: CspType,
        region: Optional[str] = None,
        credentials: Optional[StaticCredentials] = None,
    ) -> CspProvider:
        factory = self._providers.get(CspType(csp_type))
        if factory is None:
            raise UnimplementedError(
                f"no provider registered for {CspType(csp_type).value}",
                entity="CspProvider",
                identifier=CspType(csp_type).value,
            )
        return factory(
            region=region,
            credentials=credentials,
            timeout=self._timeout,
            client_factory=self._client_factory,
        )

