"""Relay pool: concurrent, time-boxed queries over WebSocket.

Only the read side of NIP-01 is spoken here (REQ, EVENT, EOSE, CLOSED,
NOTICE, CLOSE). Every query is attempted once against every relay; relays
that fail or miss the deadline contribute no events. A query that no relay
answers raises RelayConnectionError.
"""

import asyncio
import json
import logging
import uuid
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Protocol

import websockets
from pydantic import ValidationError
from websockets.exceptions import WebSocketException

from nostrcast.nostr.models import Filter, NostrEvent
from nostrcast.utils.errors import RelayConnectionError, RelayError

logger = logging.getLogger(__name__)

DEFAULT_OPEN_TIMEOUT = 10.0


class Connection(Protocol):
    """The subset of a websockets client connection the pool relies on."""

    async def send(self, message: str) -> None: ...

    async def recv(self) -> str | bytes: ...

    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[Connection]]


class RelayClient(Protocol):
    """Anything that can answer filtered queries. RelayPool is the real one."""

    async def query(self, filters: list[Filter], timeout: float) -> list[NostrEvent]: ...

    async def close(self) -> None: ...


async def _websocket_connect(url: str) -> Connection:
    return await websockets.connect(
        url,
        open_timeout=DEFAULT_OPEN_TIMEOUT,
        max_size=2**22,
    )


class RelayPool:
    """Pool of relay connections, opened lazily and closed together.

    Use as an async context manager so connections are released whether
    the run succeeds or not:

        >>> async with RelayPool(["wss://nos.lol"]) as pool:
        ...     events = await pool.query([Filter(kinds=[54])], timeout=15)
    """

    def __init__(self, relays: Iterable[str], connect: Connector | None = None) -> None:
        """Initialize the pool.

        Args:
            relays: Relay URLs to query
            connect: Coroutine opening a connection (defaults to websockets.connect)
        """
        self.relays = list(dict.fromkeys(relays))
        self._connect = connect or _websocket_connect
        self._connections: dict[str, Connection] = {}
        # Connections abandoned mid-subscription; their stream state is unknown
        self._stale: list[Connection] = []
        self._closed = False

    async def __aenter__(self) -> "RelayPool":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def query(self, filters: list[Filter], timeout: float) -> list[NostrEvent]:
        """Query every relay concurrently and merge the results.

        Args:
            filters: Filters sent in a single REQ
            timeout: Seconds to wait for relays to reach EOSE

        Returns:
            Events de-duplicated by id

        Raises:
            RelayConnectionError: If every relay failed or timed out
        """
        if self._closed:
            raise RelayError("Relay pool is closed")
        if not self.relays:
            logger.warning("No relays configured; query returns nothing")
            return []

        wire_filters = [f.to_wire() for f in filters]
        tasks = {
            asyncio.create_task(self._query_relay(url, wire_filters)): url
            for url in self.relays
        }

        done, pending = await asyncio.wait(tasks, timeout=timeout)

        for task in pending:
            url = tasks[task]
            logger.warning(f"Relay {url} timed out after {timeout:g}s, abandoning query")
            task.cancel()
            self._discard(url)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        events: dict[str, NostrEvent] = {}
        answered = 0
        for task in done:
            url = tasks[task]
            error = task.exception()
            if error is not None:
                logger.warning(f"Relay {url} failed: {error}")
                self._discard(url)
                continue
            answered += 1
            relay_events = task.result()
            logger.debug(f"Relay {url} returned {len(relay_events)} events")
            for event in relay_events:
                events.setdefault(event.id, event)

        if not answered:
            raise RelayConnectionError(
                f"No relay answered within {timeout:g}s ({len(self.relays)} tried)"
            )
        return list(events.values())

    async def close(self) -> None:
        """Close every connection. Errors while closing are logged, not raised."""
        self._closed = True
        connections = list(self._connections.items())
        connections += [("<stale>", conn) for conn in self._stale]
        self._connections.clear()
        self._stale.clear()

        for url, conn in connections:
            try:
                await conn.close()
            except (OSError, WebSocketException, RuntimeError) as e:
                logger.debug(f"Error closing relay {url}: {e}")

    async def _get_connection(self, url: str) -> Connection:
        conn = self._connections.get(url)
        if conn is None:
            logger.debug(f"Connecting to {url}")
            conn = await self._connect(url)
            self._connections[url] = conn
        return conn

    def _discard(self, url: str) -> None:
        conn = self._connections.pop(url, None)
        if conn is not None:
            self._stale.append(conn)

    async def _query_relay(self, url: str, filters: list[dict[str, Any]]) -> list[NostrEvent]:
        subscription_id = uuid.uuid4().hex[:16]
        events: list[NostrEvent] = []

        try:
            conn = await self._get_connection(url)
            await conn.send(json.dumps(["REQ", subscription_id, *filters]))

            while True:
                message = self._parse_message(await conn.recv(), url)
                if message is None or message[1:2] != [subscription_id]:
                    if message and message[0] == "NOTICE":
                        logger.info(f"Relay {url} notice: {message[1:]}")
                    continue

                message_type = message[0]
                if message_type == "EVENT" and len(message) >= 3:
                    event = self._parse_event(message[2], url)
                    if event is not None:
                        events.append(event)
                elif message_type == "EOSE":
                    break
                elif message_type == "CLOSED":
                    logger.warning(f"Relay {url} closed subscription: {message[2:]}")
                    return events

            await conn.send(json.dumps(["CLOSE", subscription_id]))

        except (OSError, WebSocketException) as e:
            raise RelayConnectionError(f"{type(e).__name__}: {e}", relay_url=url) from e

        return events

    @staticmethod
    def _parse_message(raw: str | bytes, url: str) -> list[Any] | None:
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.debug(f"Ignoring non-JSON message from {url}")
            return None
        if not isinstance(message, list) or not message or not isinstance(message[0], str):
            return None
        return message

    @staticmethod
    def _parse_event(payload: Any, url: str) -> NostrEvent | None:
        try:
            return NostrEvent.model_validate(payload)
        except ValidationError:
            logger.debug(f"Dropping malformed event from {url}")
            return None


async def paginate(
    client: RelayClient,
    base_filter: Filter,
    timeout: float,
    max_pages: int = 1,
) -> list[NostrEvent]:
    """Walk backwards through history with ``until``.

    Each page asks for events older than the oldest one seen so far. Stops
    on an empty page, a page shorter than the filter limit, or after
    ``max_pages`` queries. If no relay answers a later page, the pages
    already collected are returned.

    Args:
        client: Any RelayClient
        base_filter: Filter for the first (newest) page
        timeout: Per-page timeout in seconds
        max_pages: Upper bound on queries sent

    Returns:
        Events de-duplicated by id across pages

    Raises:
        RelayConnectionError: If no relay answers the first page
    """
    collected: dict[str, NostrEvent] = {}
    current = base_filter

    for page in range(max_pages):
        try:
            events = await client.query([current], timeout=timeout)
        except RelayConnectionError as e:
            if not page:
                raise
            logger.warning(f"Stopping pagination after {page} pages: {e}")
            break
        new_events = [event for event in events if event.id not in collected]
        for event in new_events:
            collected[event.id] = event

        logger.debug(f"Page {page + 1}: {len(events)} events ({len(new_events)} new)")

        if not new_events or base_filter.limit is None or len(events) < base_filter.limit:
            break

        oldest = min(event.created_at for event in events)
        current = current.model_copy(update={"until": oldest - 1})

    return list(collected.values())
