"""
In-process event bus for Server-Sent Events fan-out.

A single process-wide emitter. Each open SSE stream subscribes a listener
for the events it cares about and unsubscribes when the client goes away.
Events are not persisted or replayed: a client that is not connected when
an event fires never sees it.

Only events emitted in the same process reach the streams, so a
multi-process deployment needs sticky clients or a broker in front.
"""
import queue
import threading

from apps.core.observability.logging import get_sanitized_logger

logger = get_sanitized_logger(__name__)

NEW_ALERT = 'new-alert'
NEW_ORDER = 'new-order'


class EventBus:
    """Thread-safe publish/subscribe registry keyed by event name."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners = {}

    def subscribe(self, event_name, listener):
        with self._lock:
            self._listeners.setdefault(event_name, []).append(listener)

    def unsubscribe(self, event_name, listener):
        with self._lock:
            listeners = self._listeners.get(event_name, [])
            if listener in listeners:
                listeners.remove(listener)
            if not listeners:
                self._listeners.pop(event_name, None)

    def listener_count(self, event_name):
        with self._lock:
            return len(self._listeners.get(event_name, []))

    def emit(self, event_name, payload):
        """
        Call every listener of event_name with payload.

        A failing listener is logged and skipped; the others still run.
        """
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception(
                    'Event listener failed',
                    extra={'event': 'event_bus_listener_failed', 'event_name': event_name}
                )
        return len(listeners)


class QueueSubscription:
    """
    Bridges the bus to one SSE stream.

    Listeners run on the emitting thread; the stream thread drains the
    queue. The filter decides which payloads belong to this client.
    """

    def __init__(self, bus, event_name, accept):
        self.bus = bus
        self.event_name = event_name
        self.accept = accept
        self.queue = queue.Queue()

    def _listener(self, payload):
        if self.accept(payload):
            self.queue.put(payload)

    def __enter__(self):
        self.bus.subscribe(self.event_name, self._listener)
        return self

    def __exit__(self, exc_type, exc, tb):
        self.bus.unsubscribe(self.event_name, self._listener)
        return False

    def get(self, timeout):
        """Next payload, or None when nothing arrived within timeout seconds."""
        try:
            return self.queue.get(timeout=timeout)
        except queue.Empty:
            return None


event_bus = EventBus()
