"""
Server-Sent Events (SSE) for real-time push to the role dashboards.
The store calls publish() after every mutation; /api/events streams them.
"""

import queue
import threading

# Slow dashboards drop events instead of growing without bound
CLIENT_QUEUE_SIZE = 256

_clients: list[queue.Queue] = []
_lock = threading.Lock()


def subscribe() -> queue.Queue:
    """Register a new dashboard connection. Returns the queue it will read events from."""
    q = queue.Queue(maxsize=CLIENT_QUEUE_SIZE)
    with _lock:
        _clients.append(q)
    return q


def unsubscribe(q: queue.Queue) -> None:
    with _lock:
        try:
            _clients.remove(q)
        except ValueError:
            pass


def broadcast(event: dict) -> None:
    """Send event to all connected dashboards. Event must be JSON-serializable."""
    with _lock:
        clients = list(_clients)
    for q in clients:
        try:
            q.put_nowait(event)
        except queue.Full:
            pass


def publish(event_type: str, **payload) -> None:
    """broadcast() with the conventional {"type": ..., ...} envelope."""
    broadcast({"type": event_type, **payload})
