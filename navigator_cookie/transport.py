"""Cookie transports.

A transport is the key-value side channel carrying envelopes to and from
the client. It never looks inside an envelope.
"""
from typing import Any, Optional
from email.utils import formatdate
from aiohttp import web
from .conf import CookieOptions


class AbstractTransport:
    """Transport contract.

    ``get`` returns whatever the channel holds for a name, or None.
    """
    name: str = 'base'

    def get(self, name: str) -> Optional[Any]:
        raise NotImplementedError

    def set(self, name: str, value: str, options: CookieOptions) -> bool:
        raise NotImplementedError

    def delete(self, name: str, options: CookieOptions) -> bool:
        raise NotImplementedError


class MemoryTransport(AbstractTransport):
    """Dict-backed transport, for tests and non-HTTP contexts."""
    name: str = 'memory'

    def __init__(self, cookies: Optional[dict[str, Any]] = None):
        self.cookies: dict[str, Any] = dict(cookies or {})
        self.options: dict[str, CookieOptions] = {}

    def get(self, name: str) -> Optional[Any]:
        return self.cookies.get(name)

    def set(self, name: str, value: str, options: CookieOptions) -> bool:
        self.cookies[name] = value
        self.options[name] = options
        return True

    def delete(self, name: str, options: CookieOptions) -> bool:
        self.options.pop(name, None)
        return self.cookies.pop(name, None) is not None


class AiohttpTransport(AbstractTransport):
    """Reads cookies from an aiohttp request, writes them on a response.

    Args:
        request: incoming request (source of cookies).
        response: outgoing response receiving Set-Cookie headers.
    """
    name: str = 'aiohttp'

    def __init__(
        self,
        request: web.Request,
        response: Optional[web.StreamResponse] = None
    ):
        self.request = request
        self.response = response

    def _get_response(self) -> web.StreamResponse:
        if self.response is None:
            raise RuntimeError(
                "AiohttpTransport has no response to write cookies to"
            )
        return self.response

    def get(self, name: str) -> Optional[Any]:
        return self.request.cookies.get(name)

    def set(self, name: str, value: str, options: CookieOptions) -> bool:
        response = self._get_response()
        response.set_cookie(
            name,
            value,
            expires=formatdate(options.expire, usegmt=True) if options.expire else None,
            domain=options.domain or None,
            path=options.path,
            secure=options.secure,
            httponly=options.httponly,
        )
        return True

    def delete(self, name: str, options: CookieOptions) -> bool:
        response = self._get_response()
        response.del_cookie(
            name,
            domain=options.domain or None,
            path=options.path
        )
        return True
