"""Azure adapter. Role, policy and credential operations are not backed yet."""

from .base import UnsupportedProvider
from ..utils.constants import CspType


class AzureProvider(UnsupportedProvider):
    csp_type = CspType.AZURE
