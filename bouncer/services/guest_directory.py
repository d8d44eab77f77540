"""
Guest list providers.

The roster is loaded on every plea; nothing is cached between requests.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Protocol

import httpx
from pydantic import TypeAdapter, ValidationError

from bouncer.core.config import Settings, get_settings
from bouncer.core.errors import DirectoryFetchError
from bouncer.models.guest import Guest

logger = logging.getLogger(__name__)

_roster_adapter = TypeAdapter(List[Guest])


class GuestDirectory(Protocol):
    async def fetch_guests(self) -> List[Guest]:
        ...


def parse_roster(data: Any) -> List[Guest]:
    """Accept a bare list or an object with a `guests` list."""
    if isinstance(data, dict) and "guests" in data:
        data = data["guests"]
    try:
        return _roster_adapter.validate_python(data)
    except ValidationError as e:
        raise DirectoryFetchError(f"Guest list is malformed: {e.error_count()} error(s)") from e


class LocalGuestDirectory:
    """Static JSON file, used in development."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def fetch_guests(self) -> List[Guest]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise DirectoryFetchError(f"Guest list file unreadable: {self.path}") from e
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise DirectoryFetchError(f"Guest list file is not JSON: {self.path}") from e
        guests = parse_roster(data)
        logger.debug(f"[roster] Loaded {len(guests)} guests from {self.path}")
        return guests


class RemoteGuestDirectory:
    """Guest list stored as a JSON blob behind a URL."""

    def __init__(
        self,
        url: Optional[str],
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    async def fetch_guests(self) -> List[Guest]:
        if not self.url:
            raise DirectoryFetchError("BLOB_URL environment variable not set in production")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.url)
        except httpx.HTTPError as e:
            raise DirectoryFetchError(f"Guest list fetch failed: {e}") from e

        if response.status_code >= 400:
            raise DirectoryFetchError(f"Guest list fetch returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise DirectoryFetchError("Guest list response is not JSON") from e

        guests = parse_roster(data)
        logger.debug(f"[roster] Fetched {len(guests)} guests from remote blob")
        return guests


def build_guest_directory(settings: Settings) -> GuestDirectory:
    if settings.is_development:
        return LocalGuestDirectory(settings.guest_list_path)
    return RemoteGuestDirectory(settings.guest_list_url, timeout=settings.guest_list_timeout_s)


def get_guest_directory() -> GuestDirectory:
    return build_guest_directory(get_settings())
