# plate_palette/config/supabase.py
"""
Supabase client wrapper and lightweight health check.

This module intentionally:
  - Keeps initialization synchronous (main runs health_check in an executor).
  - Performs early validation of configuration. The wrapper is constructed
    once in the application lifespan and handed to services explicitly;
    there is no module-level instance.
  - Avoids logging secrets; diagnostics return structural info only.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from supabase import Client, create_client  # supabase-py

from plate_palette.config.settings import Settings

logger = logging.getLogger(__name__)

# Simple strict supabase domain check (https + project ref + .supabase.co)
_SUPABASE_URL_RE = re.compile(r"^https://[A-Za-z0-9\-]+\.supabase\.co/?$")


class SupabaseClient:
    """
    Lightweight wrapper around the supabase-py `Client`.

    Use:
        wrapper = SupabaseClient(settings)
        client = wrapper.client  # may be None if not configured

    Tests may pass an already-built client (or a fake) via `client=`.
    """

    def __init__(self, settings: Settings, client: Optional[Any] = None) -> None:
        self._settings = settings
        self._client: Optional[Client] = client
        self._initialized: bool = client is not None
        if client is None:
            self._initialize_client()

    def _validate_url(self, url: Optional[str]) -> bool:
        return bool(url and _SUPABASE_URL_RE.match(url))

    def _initialize_client(self) -> None:
        if self._initialized and self._client is not None:
            return

        supabase_url = (self._settings.supabase_url or "").strip()
        supabase_key = self._settings.supabase_service_role_key or ""

        if not supabase_url or not supabase_key:
            logger.debug(
                "Supabase credentials not present at init: url=%r key_present=%s",
                supabase_url,
                bool(supabase_key),
            )
            self._client = None
            self._initialized = True
            return

        if not self._validate_url(supabase_url):
            logger.error(
                "Supabase URL format invalid: %r. Expected https://<project>.supabase.co",
                supabase_url,
            )
            self._client = None
            self._initialized = True
            return

        try:
            self._client = create_client(supabase_url, supabase_key)
            logger.info(
                "Initialized Supabase client for host=%s", urlparse(supabase_url).netloc
            )
        except Exception as exc:
            logger.exception("Failed to initialize Supabase client: %s", exc)
            self._client = None
        self._initialized = True

    @property
    def client(self) -> Optional[Client]:
        """
        Return the underlying supabase client or None when not configured.

        Note: callers should not assume network connectivity; call `health_check()`
        to verify runtime connectivity.
        """
        return self._client

    def diagnostics(self) -> Dict[str, Any]:
        """
        Return non-sensitive diagnostics about the client configuration.
        Safe to include in logs or in API responses.
        """
        diag: Dict[str, Any] = {
            "configured": bool(
                self._settings.supabase_url and self._settings.supabase_service_role_key
            ),
            "client_present": self._client is not None,
            "host": None,
        }
        if self._settings.supabase_url:
            diag["host"] = urlparse(self._settings.supabase_url).netloc or None
        return diag

    def health_check(self) -> bool:
        """
        Synchronous health check.

        Strategy:
          1. If no client configured -> False
          2. Execute a very small query against the users table.
          3. Any exception -> False.
        """
        client = self.client
        if client is None:
            logger.debug("Supabase health_check: no client configured")
            return False

        try:
            res = client.table("users").select("id").limit(1).execute()
            return getattr(res, "data", None) is not None
        except Exception as exc:
            logger.exception("Exception during Supabase health_check: %s", exc)
            return False
