"""
api/limiter.py -- The one slowapi Limiter shared by every rate-limited route.

api/main.py mounts it (app.state.limiter + SlowAPIMiddleware); route modules
decorate handlers with @limiter.limit(...). Counters live in process memory,
so limits are per worker.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Password guessing budget per client address on the JSON login route.
LOGIN_LIMIT = "10/minute"

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
