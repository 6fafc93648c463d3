"""
Organization Context Middleware

Copies the claimed organization id from the request header onto
request.state. It does not authorize anything: the raw value is validated
and checked against the caller's memberships by the `get_org_context`
dependency, which every tenant-scoped route depends on.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from orderdesk.config import settings

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)


class OrgContextMiddleware(BaseHTTPMiddleware):
    """
    Attach the claimed organization id to request.state.

    Attributes set on request.state:
        claimed_org_id (str | None): raw header value, unvalidated
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Always initialise state so downstream code can safely read without AttributeError
        request.state.claimed_org_id = request.headers.get(settings.org_header_name)
        if request.state.claimed_org_id is not None:
            logger.debug("OrgContextMiddleware: claimed org %s", request.state.claimed_org_id)
        return await call_next(request)
