"""
api/limiter.py -- Shared slowapi rate limiter instance.

Imported by api/main.py (stored on app.state for SlowAPIMiddleware) and by
api/routes/auth.py (per-route limits via @limiter.limit()).

One shared instance means one in-memory counter store. Separate instances
per module would each count on their own and the limits would never trigger.
Tests switch it off with limiter.enabled = False.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
