"""
api/limiter.py -- The process-wide slowapi limiter.

POST /login is the only limited route (LOGIN_RATE_LIMIT, keyed by client
address). api/main.py mounts SlowAPIMiddleware and registers this instance on
app.state; api/routes/auth.py decorates the login handler with it.

Counters live in memory, so they reset on restart and are not shared between
worker processes. Tests call limiter.reset() between cases.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
