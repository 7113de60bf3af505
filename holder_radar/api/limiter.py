from slowapi import Limiter
from slowapi.util import get_remote_address

# Per-client limit for endpoints that spend the shared RPC budget
limiter = Limiter(key_func=get_remote_address)
