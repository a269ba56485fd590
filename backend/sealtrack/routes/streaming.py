# Overview: Server-Sent Events plumbing for live snapshot endpoints.

import json
import queue
from typing import Any, Callable, Iterator

from flask import Response, current_app, stream_with_context

HEARTBEAT_SECONDS = 15


def sse_event(payload: Any, event: str | None = None) -> str:
    lines = []
    if event:
        lines.append(f"event: {event}")
    lines.append(f"data: {json.dumps(payload)}")
    return "\n".join(lines) + "\n\n"


def snapshot_events(
    next_item: Callable[[float], Any],
    render: Callable[[Any], Any],
    close: Callable[[], None],
    event: str,
    max_events: int | None = None,
) -> Iterator[str]:
    """
    Yield one SSE event per snapshot, and a comment line on idle timeouts
    so proxies keep the connection open. Always releases the subscription
    when the client goes away.
    """
    sent = 0
    try:
        while max_events is None or sent < max_events:
            item = next_item(HEARTBEAT_SECONDS)
            if item is None:
                yield ": keep-alive\n\n"
                continue
            yield sse_event(render(item), event=event)
            sent += 1
    finally:
        close()


def queue_reader(q: "queue.Queue") -> Callable[[float], Any]:
    def _next(timeout: float):
        try:
            return q.get(timeout=timeout)
        except queue.Empty:
            return None
    return _next


def sse_response(events: Iterator[str]) -> Response:
    response = Response(stream_with_context(events), mimetype="text/event-stream")
    response.headers["Cache-Control"] = "no-cache"
    response.headers["X-Accel-Buffering"] = "no"
    return response


def max_events_arg(request) -> int | None:
    """`?max_events=N` closes the stream after N snapshots (used by tests and polling clients)."""
    value = request.args.get("max_events", type=int)
    if value is None and current_app.config.get("TESTING"):
        return 1
    return value
