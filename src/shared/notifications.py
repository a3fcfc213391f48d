"""
Push notifications for processing progress.

Sinks deliver events keyed by session id. `Notifier` fans out to every sink
and swallows delivery errors: a failed notification never fails the
pipeline step that triggered it.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from loguru import logger

from .config import Settings, get_settings
from .models import utc_now


class NotificationSink(ABC):
    """Fire-and-forget event transport."""

    @abstractmethod
    async def progress(self, session_id: str, percent: int, message: Optional[str] = None) -> None:
        pass

    @abstractmethod
    async def document_result(
        self,
        session_id: str,
        document_id: str,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        pass

    @abstractmethod
    async def analysis_complete(self, session_id: str, results: dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def processing_error(self, session_id: str, message: str) -> None:
        pass

    @abstractmethod
    async def status_changed(
        self, session_id: str, status: str, message: Optional[str] = None
    ) -> None:
        pass


class LoggingNotificationSink(NotificationSink):
    """Writes events to the log."""

    async def progress(self, session_id: str, percent: int, message: Optional[str] = None) -> None:
        logger.info(f"[{session_id}] progress {percent}% {message or ''}".rstrip())

    async def document_result(
        self,
        session_id: str,
        document_id: str,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        outcome = "ok" if success else f"not ok ({error})"
        logger.info(f"[{session_id}] document {document_id}: {outcome}")

    async def analysis_complete(self, session_id: str, results: dict[str, Any]) -> None:
        logger.info(f"[{session_id}] analysis complete: {sorted(results)}")

    async def processing_error(self, session_id: str, message: str) -> None:
        logger.warning(f"[{session_id}] processing error: {message}")

    async def status_changed(
        self, session_id: str, status: str, message: Optional[str] = None
    ) -> None:
        logger.info(f"[{session_id}] status -> {status} {message or ''}".rstrip())


class WebhookNotificationSink(NotificationSink):
    """Posts events as JSON to an HTTP endpoint."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _send(self, event: str, session_id: str, **payload: Any) -> None:
        client = await self._get_client()
        body = {
            "event": event,
            "sessionId": session_id,
            **payload,
            "timestamp": utc_now().isoformat(),
        }
        response = await client.post(self.url, json=body)
        response.raise_for_status()

    async def progress(self, session_id: str, percent: int, message: Optional[str] = None) -> None:
        await self._send("ProcessingProgress", session_id, progress=percent, message=message)

    async def document_result(
        self,
        session_id: str,
        document_id: str,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        await self._send(
            "DocumentProcessed", session_id, documentId=document_id, success=success, error=error
        )

    async def analysis_complete(self, session_id: str, results: dict[str, Any]) -> None:
        await self._send("AnalysisComplete", session_id, result=results)

    async def processing_error(self, session_id: str, message: str) -> None:
        await self._send("ProcessingError", session_id, error=message)

    async def status_changed(
        self, session_id: str, status: str, message: Optional[str] = None
    ) -> None:
        await self._send("SessionStatusChanged", session_id, status=status, message=message)


class Notifier:
    """Best-effort fan-out over notification sinks."""

    def __init__(self, sinks: list[NotificationSink]):
        self.sinks = sinks

    async def _dispatch(self, method: str, *args: Any) -> None:
        for sink in self.sinks:
            try:
                await getattr(sink, method)(*args)
            except Exception as e:
                logger.warning(f"{type(sink).__name__}.{method} failed: {e}")

    async def progress(self, session_id: str, percent: int, message: Optional[str] = None) -> None:
        await self._dispatch("progress", session_id, percent, message)

    async def document_result(
        self,
        session_id: str,
        document_id: str,
        success: bool,
        error: Optional[str] = None,
    ) -> None:
        await self._dispatch("document_result", session_id, document_id, success, error)

    async def analysis_complete(self, session_id: str, results: dict[str, Any]) -> None:
        await self._dispatch("analysis_complete", session_id, results)

    async def processing_error(self, session_id: str, message: str) -> None:
        await self._dispatch("processing_error", session_id, message)

    async def status_changed(
        self, session_id: str, status: str, message: Optional[str] = None
    ) -> None:
        await self._dispatch("status_changed", session_id, status, message)

    async def close(self) -> None:
        for sink in self.sinks:
            if isinstance(sink, WebhookNotificationSink):
                await sink.close()


def create_notifier(settings: Optional[Settings] = None) -> Notifier:
    """Logging sink always, webhook sink when a URL is configured."""
    settings = settings or get_settings()
    sinks: list[NotificationSink] = [LoggingNotificationSink()]
    if settings.notification_webhook_url:
        sinks.append(
            WebhookNotificationSink(
                settings.notification_webhook_url,
                timeout=settings.notification_timeout_seconds,
            )
        )
        logger.info(f"Webhook notifications enabled: {settings.notification_webhook_url}")
    return Notifier(sinks)
