from slowapi import Limiter
from slowapi.util import get_remote_address

# Per-client-IP limiter; applied to the ticket assignment endpoint
limiter = Limiter(key_func=get_remote_address)
