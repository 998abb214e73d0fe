"""HTTP client for the Connect attendance API."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from typing import Any

import aiohttp
from pydantic import ValidationError

from attendance_importer.cancellation import CancellationToken
from attendance_importer.config import ConnectConfig
from attendance_importer.exceptions import MalformedResponseError, TransportError
from attendance_importer.models import ConnectAttendanceEvent

_logger = logging.getLogger(__name__)

ATTENDANCE_ENDPOINT = "api/attendance"


def format_sync_time(value: datetime, offset: str) -> str:
    """Render a last-sync watermark the way the Connect API expects.

    Naive timestamps are local to the devices and get *offset* appended;
    aware timestamps carry their own offset.
    """
    if value.tzinfo is None:
        return f"{value.strftime('%Y-%m-%dT%H:%M:%S')}{offset}"
    return value.isoformat(timespec="seconds")


class ConnectApiClient:
    """Fetches raw attendance events for a Connect location."""

    def __init__(self, config: ConnectConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def _build_url(self) -> str:
        base = self._config.base_url
        if not base.endswith("/"):
            base += "/"
        return f"{base}{ATTENDANCE_ENDPOINT}"

    async def get_attendance_events(
        self,
        location: str,
        last_sync_time: datetime | None,
        token: CancellationToken,
    ) -> list[ConnectAttendanceEvent]:
        """Return events recorded at *location* since *last_sync_time*.

        All events are returned when *last_sync_time* is ``None``.

        Raises
        ------
        TransportError
            Network failure, timeout or non-2xx status.
        MalformedResponseError
            Body is not UTF-8 encoded JSON listing attendance events.
        """
        params: dict[str, str] = {"Location": location}
        if last_sync_time is not None:
            params["LastSyncTime"] = format_sync_time(last_sync_time, self._config.sync_time_offset)

        headers = {
            "Accept": "application/json",
            "X-API-Key": self._config.api_key,
        }
        url = self._build_url()

        token.raise_if_cancelled()
        _logger.debug("GET %s location=%s since=%s", url, location, params.get("LastSyncTime"))

        try:
            async with self._http.get(url, params=params, headers=headers, timeout=self._timeout) as resp:
                payload = await resp.read()
                if resp.status < 200 or resp.status >= 300:
                    snippet = payload[:200].decode("utf-8", errors="replace")
                    raise TransportError(
                        f"HTTP {resp.status} from {ATTENDANCE_ENDPOINT} for location {location!r}: {snippet}",
                        status_code=resp.status,
                        endpoint=ATTENDANCE_ENDPOINT,
                    )
        except TransportError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(
                f"Request to {ATTENDANCE_ENDPOINT} for location {location!r} failed: {exc!r}",
                endpoint=ATTENDANCE_ENDPOINT,
            ) from exc

        return parse_attendance_events(payload)


def parse_attendance_events(payload: bytes | str) -> list[ConnectAttendanceEvent]:
    """Decode a Connect attendance response body, preserving source order."""
    if isinstance(payload, bytes):
        try:
            text = payload.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedResponseError(
                f"Response from {ATTENDANCE_ENDPOINT} is not valid UTF-8: {exc}",
                endpoint=ATTENDANCE_ENDPOINT,
            ) from exc
    else:
        text = payload
    if not text.strip():
        return []
    try:
        body: Any = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(
            f"Invalid JSON from {ATTENDANCE_ENDPOINT}: {text[:200]}",
            endpoint=ATTENDANCE_ENDPOINT,
        ) from exc

    if body is None:
        return []
    if not isinstance(body, list):
        raise MalformedResponseError(
            f"Expected a list from {ATTENDANCE_ENDPOINT}, got {type(body).__name__}",
            endpoint=ATTENDANCE_ENDPOINT,
        )

    try:
        return [ConnectAttendanceEvent.model_validate(item) for item in body]
    except ValidationError as exc:
        raise MalformedResponseError(
            f"Unexpected attendance event shape from {ATTENDANCE_ENDPOINT}: {exc.error_count()} error(s)",
            endpoint=ATTENDANCE_ENDPOINT,
        ) from exc
