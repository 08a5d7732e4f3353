"""
Event Delivery

CoachingCallbacks is the presentation-layer hook set the orchestrator
reports into. EventChannel fans those callbacks out to any number of
async consumers (the SSE endpoint) through bounded queues.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set
import asyncio
import inspect
import json
import logging
import time

logger = logging.getLogger(__name__)

Callback = Optional[Callable[..., Any]]


@dataclass
class CoachingCallbacks:
    """Optional handlers; plain functions or coroutine functions."""
    on_transcript_update: Callback = None
    on_moment_detected: Callback = None
    on_nudge_triggered: Callback = None
    on_coaching_generated: Callback = None
    on_voice_feedback: Callback = None

    async def emit(self, name: str, *args):
        """Invoke a callback by name. A raising callback is logged and ignored."""
        handler = getattr(self, name, None)
        if handler is None:
            return
        try:
            result = handler(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Callback {name} failed: {e}")


class EventChannel:
    """
    Broadcasts events to subscribers.

    Each subscriber gets its own queue of at most `max_queue` events; when a
    slow consumer's queue is full the oldest event is dropped.
    """

    def __init__(self, max_queue: int = 100):
        self.max_queue = max_queue
        self._subscribers: Set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        self._subscribers.discard(queue)

    def publish(self, event_type: str, data: Any):
        event = {"type": event_type, "data": data, "ts": time.time()}
        for queue in list(self._subscribers):
            if queue.full():
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(event)

    def callbacks(self) -> CoachingCallbacks:
        """Callbacks that publish each orchestrator event onto this channel."""
        return CoachingCallbacks(
            on_transcript_update=lambda entries: self.publish(
                "transcript", [e.to_dict() for e in entries]),
            on_moment_detected=lambda moment: self.publish("moment", moment.to_dict()),
            on_nudge_triggered=lambda nudge: self.publish("nudge", nudge.to_dict()),
            on_coaching_generated=lambda tip: self.publish("coaching", tip.to_dict()),
            on_voice_feedback=lambda event: self.publish("voice_feedback", event.to_dict()),
        )


def format_sse(event: Dict[str, Any]) -> str:
    return f"event: {event['type']}\ndata: {json.dumps(event)}\n\n"
