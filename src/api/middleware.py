"""Rate limiting shared by the public booking and quote endpoints.

Limits are declared per route with ``@limiter.limit(settings.rate_limit)``;
no global default applies.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
