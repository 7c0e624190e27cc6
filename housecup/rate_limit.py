"""
Shared slowapi limiter for write endpoints.

Reads stay unlimited; every POST/PUT route decorates itself with
`@limiter.limit(settings.WRITE_RATE_LIMIT)` and takes `request: Request`.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from housecup.config import settings

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
