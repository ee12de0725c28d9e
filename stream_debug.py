"""
Utilities to capture raw streaming chunks for troubleshooting.

The tracer writes upstream SSE payloads and the frames relayed downstream
to disk when stream tracing is enabled via configuration.
"""

from __future__ import annotations

import datetime
import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class StreamTracer:
    """Captures one request's streaming traffic into its own log file."""

    def __init__(self, request_id: str, route: str, base_dir: str, max_bytes: Optional[int]):
        safe_route = route.strip("/").replace("/", "-").replace(" ", "-") or "root"
        timestamp = _utcnow().strftime("%Y%m%dT%H%M%SZ")

        self.request_id = request_id
        self.route = safe_route
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

        self.path = self.base_dir / f"{timestamp}_{safe_route}_{request_id}.log"
        self._file = self.path.open("w", encoding="utf-8")

        self._max_bytes = max_bytes if isinstance(max_bytes, int) and max_bytes > 0 else None
        self._written = 0
        self._truncated = False
        self._disabled = False

        self.log_note("stream tracer initialized")

    def log_source_chunk(self, chunk: str) -> None:
        """Record a raw upstream ``data:`` payload."""
        self._write("UPSTREAM", chunk)

    def log_converted_chunk(self, chunk: str) -> None:
        """Record the frame sent to the downstream client."""
        self._write("DOWNSTREAM", chunk)

    def log_note(self, note: str) -> None:
        self._write("NOTE", note)

    def log_error(self, message: str) -> None:
        self._write("ERROR", message)

    @property
    def truncated(self) -> bool:
        return self._truncated

    @property
    def disabled(self) -> bool:
        """True once a write has failed; later entries are dropped."""
        return self._disabled

    def close(self) -> None:
        if self._file.closed:
            return
        try:
            self.log_note("stream tracer closed")
        finally:
            try:
                self._file.close()
            except OSError as e:
                logger.warning(f"Failed to close stream trace {self.path}: {e}")

    def _write(self, label: str, payload: str) -> None:
        if self._disabled or self._file.closed:
            return
        try:
            self._append(label, payload)
        except OSError as e:
            self._disabled = True
            logger.warning(f"Stream trace {self.path} disabled after write failure: {e}")

    def _append(self, label: str, payload: str) -> None:
        if not isinstance(payload, str):
            payload = repr(payload)

        timestamp = _utcnow().isoformat(timespec="milliseconds")
        entry = f"[{timestamp}] [{label}] len={len(payload)}\n{payload}\n"
        encoded = entry.encode("utf-8", "replace")

        if self._max_bytes is not None:
            remaining = self._max_bytes - self._written
            if remaining <= 0:
                self._mark_truncated()
                return
            if len(encoded) > remaining:
                self._file.write(encoded[:remaining].decode("utf-8", "ignore"))
                self._written = self._max_bytes
                self._file.write("\n")
                self._mark_truncated()
                return

        self._file.write(entry)
        self._file.flush()
        self._written += len(encoded)

    def _mark_truncated(self) -> None:
        if not self._truncated:
            self._file.write("[stream trace truncated]\n")
            self._file.flush()
            self._truncated = True


def maybe_create_stream_tracer(
    enabled: bool,
    request_id: str,
    route: str,
    base_dir: str,
    max_bytes: Optional[int],
) -> Optional[StreamTracer]:
    """Factory helper that respects the global enable flag."""
    if not enabled:
        return None
    return StreamTracer(request_id=request_id, route=route, base_dir=base_dir, max_bytes=max_bytes)
