from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

limiter = Limiter(key_func=get_remote_address)

_SEPARATOR = "|"


def receipt_rate_key(request: Request) -> str:
    """Bucket key carrying the app's configured limit ahead of the client address."""
    return f"{request.app.state.settings.rate_limit}{_SEPARATOR}{get_remote_address(request)}"


def receipt_limit(key: str) -> str:
    """Limit for the receipt endpoint, taken from the key built by receipt_rate_key."""
    return key.split(_SEPARATOR, 1)[0]
