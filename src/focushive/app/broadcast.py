"""Dual-transport broadcast gateway.

Every state change is published as one canonical envelope over two
independent transports:

- ``SocketIOTransport``: the live Socket.IO connection, using the
  ``room:<room_id>`` rooms and the ``overview:public`` room for the
  global feed.
- ``RedisRelayTransport``: Redis pub/sub channels that hosted subscribers
  listen on with a subscribe-only token (see ``relay_auth``).

Both transports run in parallel on a thread pool. A failing or slow
transport is logged and counted, and never blocks the other one or fails
the operation that triggered the broadcast. Delivery is at-least-once:
clients keep the envelope with the highest ``version`` per room and drop
the rest.
"""

import datetime as dt
import itertools
import json
import logging
import threading
import time
import typing as t
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, wait

from focushive.analytics import broadcast_failures, broadcasts_suppressed

from .constants import Channels, SocketRooms

log = logging.getLogger(__name__)


class Transport(ABC):
    """A push mechanism able to deliver an envelope to a room or the global feed."""

    name: str = "transport"

    @abstractmethod
    def publish(self, event: str, envelope: dict, room_id: str | None) -> None:
        """Deliver ``envelope`` as ``event``.

        Parameters
        ----------
        event : str
            Event name (e.g. ``user-list-updated``)
        envelope : dict
            Versioned payload wrapper
        room_id : str | None
            Room subscribers to reach, or None for the global feed
        """


class SocketIOTransport(Transport):
    """Publishes through Flask-SocketIO rooms."""

    name = "socketio"

    def __init__(self, socketio: t.Any, namespace: str = "/"):
        self.socketio = socketio
        self.namespace = namespace

    def publish(self, event: str, envelope: dict, room_id: str | None) -> None:
        to = SocketRooms.OVERVIEW if room_id is None else SocketRooms.for_room(room_id)
        self.socketio.emit(event, envelope, to=to, namespace=self.namespace)


class RedisRelayTransport(Transport):
    """Publishes to Redis pub/sub channels."""

    name = "relay"

    def __init__(self, redis_client: t.Any):
        self.r = redis_client

    def publish(self, event: str, envelope: dict, room_id: str | None) -> None:
        channel = Channels.for_event(event, room_id)
        message = json.dumps({"name": event, "data": envelope}, default=str)
        receivers = self.r.publish(channel, message)
        log.debug(f"Relayed {event} to {channel} ({receivers} subscribers)")


class BroadcastGateway:
    """Fans out state changes to all transports with deduplication.

    Parameters
    ----------
    transports : list[Transport]
        Transports to publish through
    dedup_window : float
        Seconds during which a publication identical to the last one of the
        same event to the same target (same version and payload) is
        suppressed. Best-effort, not an exactly-once guarantee.
    timeout : float
        Maximum seconds to wait for each transport
    clock : Callable[[], float]
        Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        transports: list[Transport],
        dedup_window: float = 3.0,
        timeout: float = 5.0,
        clock: t.Callable[[], float] = time.monotonic,
    ):
        self.transports = list(transports)
        self.dedup_window = dedup_window
        self.timeout = timeout
        self._clock = clock
        # (room_id, event) -> (version, payload, published_at) of the last publication
        self._last: dict[tuple, tuple[int | None, str, float]] = {}
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._executor = ThreadPoolExecutor(
            max_workers=max(2, 4 * len(self.transports)),
            thread_name_prefix="focushive-broadcast",
        )

    def _is_duplicate(
        self, event: str, payload: t.Any, room_id: str | None, version: int | None
    ) -> bool:
        """Check the publication against the last one of ``event`` to ``room_id``.

        Only an exact repeat of the most recent publication is a duplicate,
        so returning to an earlier state (start, reset, start, reset) is
        always delivered.
        """
        key = (room_id, event)
        body = json.dumps(payload, sort_keys=True, default=str)
        now = self._clock()
        with self._lock:
            expired = [
                k
                for k, (_, _, seen_at) in self._last.items()
                if now - seen_at >= self.dedup_window
            ]
            for k in expired:
                del self._last[k]
            last = self._last.get(key)
            if last is not None and last[0] == version and last[1] == body:
                return True
            self._last[key] = (version, body, now)
            return False

    def publish(
        self,
        event: str,
        payload: t.Any,
        room_id: str | None = None,
        version: int | None = None,
    ) -> bool:
        """Publish ``payload`` to a room's subscribers or the global feed.

        Parameters
        ----------
        event : str
            Event name
        payload : Any
            JSON-serializable public view
        room_id : str | None
            Target room, or None for the global feed
        version : int | None
            Room version the payload was derived from. Global payloads
            without a room version get a gateway sequence number.

        Returns
        -------
        bool
            False if the publication was suppressed as a duplicate
        """
        if self._is_duplicate(event, payload, room_id, version):
            broadcasts_suppressed.inc()
            log.debug(f"Suppressed duplicate {event} (room={room_id})")
            return False

        envelope = {
            "event": event,
            "roomId": room_id,
            "version": version if version is not None else next(self._sequence),
            "emittedAt": dt.datetime.now(dt.timezone.utc).isoformat(),
            "data": payload,
        }

        futures = {
            self._executor.submit(transport.publish, event, envelope, room_id): transport
            for transport in self.transports
        }
        done, not_done = wait(futures, timeout=self.timeout)
        for future in done:
            exc = future.exception()
            if exc is not None:
                transport = futures[future]
                broadcast_failures.labels(transport=transport.name).inc()
                log.warning(
                    f"Transport '{transport.name}' failed to publish {event} "
                    f"(room={room_id}): {exc}"
                )
        for future in not_done:
            transport = futures[future]
            broadcast_failures.labels(transport=transport.name).inc()
            log.warning(
                f"Transport '{transport.name}' timed out publishing {event} "
                f"(room={room_id}) after {self.timeout}s"
            )
        log.debug(f"Published {event} (room={room_id}, version={envelope['version']})")
        return True

    def close(self) -> None:
        self._executor.shutdown(wait=False)
