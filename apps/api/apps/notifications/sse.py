"""
Server-Sent Events plumbing: wire format, DRF renderer and the stream
generator shared by the alert and order streams.
"""
import json

from django.conf import settings
from django.http import StreamingHttpResponse
from rest_framework.renderers import BaseRenderer

from apps.core.observability.logging import get_sanitized_logger
from apps.notifications.event_bus import QueueSubscription, event_bus

logger = get_sanitized_logger(__name__)


class EventStreamRenderer(BaseRenderer):
    """
    Lets DRF content negotiation accept 'Accept: text/event-stream'.

    Only the negotiation uses it; streams bypass rendering entirely.
    """
    media_type = 'text/event-stream'
    format = 'sse'
    charset = 'utf-8'

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if data is None:
            return b''
        return format_event('error', data).encode('utf-8')


def format_event(event_name, data):
    """event: <name>\\ndata: <json>\\n\\n"""
    return f'event: {event_name}\ndata: {json.dumps(data, default=str)}\n\n'


def stream_events(event_name, accept, connected_payload, keepalive_seconds=None, max_idle_cycles=None):
    """
    Generator yielding SSE frames for one client.

    Yields a 'connected' frame first, then every accepted payload of
    event_name, with a comment line when the stream has been idle for
    keepalive_seconds. The subscription is dropped when the client
    disconnects (the server closes the generator).

    max_idle_cycles bounds the stream; None streams until disconnect.
    """
    keepalive = keepalive_seconds or settings.SSE_KEEPALIVE_SECONDS
    try:
        with QueueSubscription(event_bus, event_name, accept) as subscription:
            yield format_event('connected', connected_payload)
            idle_cycles = 0
            while max_idle_cycles is None or idle_cycles < max_idle_cycles:
                payload = subscription.get(timeout=keepalive)
                if payload is None:
                    idle_cycles += 1
                    yield ': keep-alive\n\n'
                    continue
                idle_cycles = 0
                yield format_event(event_name, payload)
    finally:
        logger.debug('SSE stream closed', extra={'event': 'sse_closed', 'event_name': event_name})


def event_stream_response(generator):
    response = StreamingHttpResponse(generator, content_type='text/event-stream')
    response['Cache-Control'] = 'no-cache'
    # Disable proxy buffering (nginx)
    response['X-Accel-Buffering'] = 'no'
    return response
