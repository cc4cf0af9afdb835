"""GCP adapter. Role, policy and credential operations are not backed yet."""

from .base import UnsupportedProvider
from ..utils.constants import CspType


class GcpProvider(UnsupportedProvider):
    csp_type = CspType.GCP
