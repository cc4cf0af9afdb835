"""Rate limiting middleware using slowapi."""

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from ..config import settings

# Initialize rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
)

# Rate limit exceeded handler
rate_limit_exceeded_handler = _rate_limit_exceeded_handler

# Issuance endpoints reach out to the broker and the provider
credential_rate_limit = settings.credential_rate_limit
