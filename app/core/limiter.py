from slowapi import Limiter
from slowapi.util import get_remote_address


def build_limiter() -> Limiter:
    """
    Per-client moving window limiter backed by in-process memory.
    Applied by RateLimitingMiddleware to the API prefix only, so routes
    carry no decorators and docs/health stay unthrottled.
    """
    return Limiter(
        key_func=get_remote_address,
        strategy="moving-window",
        storage_uri="memory://",
        headers_enabled=False,
    )
