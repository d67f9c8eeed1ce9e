"""Shared HTTP helpers used by registry clients.

Encapsulates common request/timeout error handling so modules avoid
duplicating try/except blocks. A single ``HttpClient`` is built per process
and handed to the clients that need it.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

import requests

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer

logger = logging.getLogger(__name__)


class HttpClient:
    """Process-scoped HTTP client: one ``requests.Session`` with a fixed timeout."""

    def __init__(self, timeout: Optional[float] = None, session: Optional[requests.Session] = None):
        self.timeout = timeout if timeout is not None else Constants.REQUEST_TIMEOUT
        self.session = session if session is not None else requests.Session()

    def safe_get(self, url: str, *, context: str, **kwargs: Any) -> Optional[requests.Response]:
        """Perform a GET request with consistent error handling and DEBUG traces.

        Returns:
            The response, or None when the request timed out or failed to connect.
        """
        safe_target = safe_url(url)
        with Timer() as t:
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP request",
                    extra=extra_context(
                        event="http_request",
                        component="http_client",
                        action="GET",
                        target=safe_target,
                        context=context,
                    ),
                )
            try:
                res = self.session.get(url, timeout=self.timeout, **kwargs)
            except requests.Timeout:
                logger.warning(
                    "%s request timed out after %s seconds",
                    context,
                    self.timeout,
                    extra=extra_context(event="http_exception", outcome="timeout", target=safe_target),
                )
                return None
            except requests.RequestException as exc:  # includes ConnectionError
                logger.warning(
                    "%s connection error: %s",
                    context,
                    exc,
                    extra=extra_context(event="http_exception", outcome="request_exception", target=safe_target),
                )
                return None
            if is_debug_enabled(logger):
                logger.debug(
                    "HTTP response",
                    extra=extra_context(
                        event="http_response",
                        component="http_client",
                        action="GET",
                        status_code=res.status_code,
                        duration_ms=t.duration_ms(),
                        target=safe_target,
                        context=context,
                    ),
                )
            return res

    def get_json(
        self,
        url: str,
        *,
        context: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> Tuple[int, Dict[str, str], Optional[Any]]:
        """Perform GET request and parse JSON response.

        Returns:
            Tuple of (status_code, headers_dict, parsed_json_or_none); status
            code 0 means the request never completed.
        """
        res = self.safe_get(url, context=context, headers=headers)
        if res is None:
            return 0, {}, None

        if res.status_code == 200 and res.text:
            try:
                return res.status_code, dict(res.headers), json.loads(res.text)
            except json.JSONDecodeError:
                if is_debug_enabled(logger):
                    logger.debug(
                        "JSON decode error",
                        extra=extra_context(
                            event="parse",
                            component="http_client",
                            action="get_json",
                            outcome="json_decode_error",
                            status_code=res.status_code,
                            target=safe_url(url),
                        ),
                    )
                return res.status_code, dict(res.headers), None

        return res.status_code, dict(res.headers), None

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()
