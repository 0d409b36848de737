"""Fan-out of normalized chat events to overlay subscribers.

The hub has no platform-specific logic: adapters push ``ChatEvent``s in,
every currently connected subscriber gets a copy. Delivery is
fire-and-forget; nothing is queued for subscribers that are not connected.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, Set, Union

from multichat.services.chat_adapters.base import ChatEvent, now_ms
from multichat.utils.metrics import counter, gauge


logger = logging.getLogger(__name__)

CHAT_MESSAGE = "chat_message"
STATUS = "status"


class Subscriber(Protocol):
    """Anything that can receive a JSON-ready frame."""

    async def send(self, frame: Dict[str, Any]) -> None:
        ...


StatusProvider = Callable[[], Dict[str, bool]]


class EventHub:
    """Broadcasts chat events to every connected subscriber."""

    def __init__(
        self,
        status_provider: Optional[StatusProvider] = None,
        send_timeout: float = 5.0,
    ):
        """Initialize the hub.

        Args:
            status_provider: Returns the enabled-platform snapshot sent to new subscribers
            send_timeout: Seconds a subscriber gets to accept one frame before it is dropped
        """
        self.status_provider = status_provider
        self.send_timeout = send_timeout

        self._subscribers: Set[Subscriber] = set()
        self._lock = asyncio.Lock()

        self._published = counter("event_hub_published_total", "Total chat events published")
        self._dropped = counter("event_hub_dropped_subscribers_total", "Subscribers dropped after a failed send")
        self._subscriber_gauge = gauge("event_hub_subscribers", "Currently connected subscribers")

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def subscribe(self, subscriber: Subscriber) -> None:
        async with self._lock:
            self._subscribers.add(subscriber)
            self._subscriber_gauge.set(len(self._subscribers))

    async def unsubscribe(self, subscriber: Subscriber) -> None:
        async with self._lock:
            self._subscribers.discard(subscriber)
            self._subscriber_gauge.set(len(self._subscribers))

    async def subscriber_connected(self, subscriber: Subscriber) -> None:
        """Register a new subscriber and push the platform status snapshot to it."""
        await self.subscribe(subscriber)
        logger.info("[WS] Overlay subscriber connected")
        if self.status_provider is not None:
            await self._deliver(subscriber, {"type": STATUS, "data": self.status_provider()})

    async def publish(self, event: Union[ChatEvent, Dict[str, Any]]) -> int:
        """Broadcast one chat event.

        Returns:
            int: Number of subscribers the event was delivered to
        """
        payload = event.to_wire() if isinstance(event, ChatEvent) else dict(event)
        if not payload.get("ts"):
            payload["ts"] = now_ms()

        logger.info(f"[{payload['platform']}] {payload['username']}: {payload['message']}")
        self._published.increment(labels={"platform": str(payload["platform"])})

        async with self._lock:
            subscribers: List[Subscriber] = list(self._subscribers)
        if not subscribers:
            return 0

        frame = {"type": CHAT_MESSAGE, "data": payload}
        results = await asyncio.gather(
            *(self._deliver(subscriber, frame) for subscriber in subscribers)
        )
        return sum(1 for delivered in results if delivered)

    async def _deliver(self, subscriber: Subscriber, frame: Dict[str, Any]) -> bool:
        try:
            await asyncio.wait_for(subscriber.send(frame), timeout=self.send_timeout)
            return True
        except Exception as e:
            logger.warning(f"[WS] Dropping subscriber after failed send: {e}")
            self._dropped.increment()
            await self.unsubscribe(subscriber)
            return False
