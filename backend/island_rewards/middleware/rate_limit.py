from slowapi import Limiter
from starlette.requests import Request


def get_real_client_ip(request: Request) -> str:
    """Client IP for rate limiting.

    Behind the reverse proxy the original client is the first entry of
    X-Forwarded-For. Direct connections fall back to the socket peer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


# Per-IP limits guard the endpoints; per-pubkey claim rates live in the claim ledger
limiter = Limiter(key_func=get_real_client_ip, headers_enabled=False)
