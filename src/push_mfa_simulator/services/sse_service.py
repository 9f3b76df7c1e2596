"""
Server-sent events registry for the mock FCM endpoint.

Every connected browser gets an SseListener; messages accepted by
``/fcm/messages:send`` are broadcast to all of them as ``fcm-message`` events.
"""

import asyncio
import logging
import signal
from typing import AsyncIterator, Dict, List, Optional

from push_mfa_simulator.schemas.fcm_schemas import FcmMessage

logger = logging.getLogger(__name__)

FCM_MESSAGE_EVENT = "fcm-message"

EXIT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SseListener:
    """
    One connected SSE client. Frames are queued until its stream reads them;
    a ``None`` frame closes the stream.
    """

    def __init__(self):
        self.queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self.closed = False

    def send(self, event: str, data: str) -> None:
        if self.closed:
            return
        self.queue.put_nowait(format_event(event, data))

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.queue.put_nowait(None)


def format_event(event: str, data: str) -> str:
    lines = "".join(f"data: {line}\n" for line in data.splitlines() or [""])
    return f"event: {event}\n{lines}\n"


class SseService:
    """
    Registry of connected listeners. Only accepts listeners while running;
    shutdown closes every listener so open streams end.
    """

    def __init__(self):
        self._listeners: List[SseListener] = []
        self._lock = asyncio.Lock()
        self._previous_handlers: Dict[signal.Signals, object] = {}
        self._shutdown_task: Optional[asyncio.Task] = None
        self.running = False

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def start(self) -> None:
        self.running = True
        logger.debug("SseService started")

    async def register(self) -> Optional[SseListener]:
        if not self.running:
            logger.warning("SSE registration rejected, service not running")
            return None
        listener = SseListener()
        async with self._lock:
            self._listeners.append(listener)
        logger.debug(f"SSE listener registered ({self.listener_count} connected)")
        return listener

    async def unregister(self, listener: SseListener) -> None:
        async with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)
        listener.close()
        logger.debug(f"SSE listener removed ({self.listener_count} connected)")

    async def broadcast(self, message: FcmMessage) -> int:
        """
        Send the message to every registered listener.

        Returns:
            int: Number of listeners the message was delivered to
        """
        payload = message.model_dump_json(exclude_none=True)
        delivered = 0
        async with self._lock:
            for listener in self._listeners:
                if not self.running:
                    break
                listener.send(FCM_MESSAGE_EVENT, payload)
                delivered += 1
        logger.info(f"Broadcast FCM message to {delivered} listener(s)")
        return delivered

    async def shutdown(self) -> None:
        self.running = False
        async with self._lock:
            for listener in self._listeners:
                listener.close()
            self._listeners.clear()
        logger.debug("SseService terminated")

    def watch_exit_signals(self) -> None:
        """
        Close every listener as soon as SIGINT or SIGTERM arrives.

        The server only finishes its graceful shutdown once all connections
        are closed, and open event streams never close on their own. The
        handler that was installed before (normally the server's own) is
        still called after the listeners are scheduled for closing.
        """
        loop = asyncio.get_running_loop()
        for sig in EXIT_SIGNALS:
            previous = signal.getsignal(sig)
            try:
                loop.add_signal_handler(sig, self._handle_exit_signal, sig, previous)
            except (NotImplementedError, RuntimeError, ValueError) as e:
                # Windows loops and non-main threads cannot install handlers
                logger.warning(f"Cannot watch {sig.name} for SSE shutdown: {e}")
                continue
            self._previous_handlers[sig] = previous

    def unwatch_exit_signals(self) -> None:
        """Put back the signal handlers replaced by watch_exit_signals."""
        loop = asyncio.get_running_loop()
        for sig, previous in self._previous_handlers.items():
            loop.remove_signal_handler(sig)
            if previous is not None:
                signal.signal(sig, previous)
        self._previous_handlers.clear()

    def _handle_exit_signal(self, sig: signal.Signals, previous) -> None:
        logger.info(f"Received {sig.name}, closing {self.listener_count} SSE stream(s)")
        self._shutdown_task = asyncio.get_running_loop().create_task(self.shutdown())
        if callable(previous):
            previous(sig, None)

    async def stream(self, listener: SseListener) -> AsyncIterator[str]:
        """
        Yield the listener's frames until it is closed or the client goes away.
        """
        try:
            while True:
                frame = await listener.queue.get()
                if frame is None:
                    break
                yield frame
        except asyncio.CancelledError:
            logger.info("SSE stream cancelled by client")
            raise
        finally:
            await self.unregister(listener)


# Shared registry used by the FCM router and the application lifespan
sse_service = SseService()
