"""
Live notification fanout to connected client sessions (Server-Sent Events)
"""
import json
import queue
import threading
import time
from typing import Any, Dict, Iterator, Optional


class LiveSession:
    """One open client stream; events are buffered in a bounded queue"""

    def __init__(self, user_id: int, max_size: int = 100):
        self.user_id = user_id
        self.queue = queue.Queue(maxsize=max_size)
        self.connected_at = time.time()
        self.closed = False

    def offer(self, event: Dict[str, Any]) -> bool:
        """Enqueue without blocking; a full or closed session drops the event"""
        if self.closed:
            return False
        try:
            self.queue.put_nowait(event)
            return True
        except queue.Full:
            return False

    def next_event(self, timeout: float) -> Optional[Dict[str, Any]]:
        try:
            return self.queue.get(timeout=timeout)
        except queue.Empty:
            return None


class NotificationDispatcher:
    """
    Thread-safe registry user_id -> live sessions.

    Delivery is best-effort and at-most-once: users without live sessions
    simply miss the event. Callers invoke it after their transaction commits.
    """

    def __init__(self, queue_size: int = 100):
        self._lock = threading.Lock()
        self._sessions = {}
        self.queue_size = queue_size

    def register(self, user_id: int) -> LiveSession:
        session = LiveSession(user_id, self.queue_size)
        with self._lock:
            self._sessions.setdefault(user_id, set()).add(session)
        print(f"[Notifications] Session opened for user {user_id}")
        return session

    def unregister(self, session: LiveSession) -> None:
        session.closed = True
        with self._lock:
            user_sessions = self._sessions.get(session.user_id)
            if user_sessions:
                user_sessions.discard(session)
                if not user_sessions:
                    del self._sessions[session.user_id]
        print(f"[Notifications] Session closed for user {session.user_id}")

    def notify_user(self, user_id: int, event: Dict[str, Any]) -> int:
        """
        Push an event to every live session of a user

        Returns:
            Number of sessions that accepted the event (0 when none are connected)
        """
        try:
            with self._lock:
                sessions = list(self._sessions.get(user_id, ()))
            delivered = 0
            for session in sessions:
                if session.offer(event):
                    delivered += 1
                else:
                    print(f"[Notifications] Dropped {event.get('type')} for user {user_id} (queue full)")
            return delivered
        except Exception as e:
            print(f"[Notifications] Error notifying user {user_id}: {e}")
            return 0

    def broadcast(self, event: Dict[str, Any]) -> int:
        with self._lock:
            user_ids = list(self._sessions.keys())
        return sum(self.notify_user(user_id, event) for user_id in user_ids)

    def get_connected_count(self) -> int:
        """Number of users with at least one live session"""
        with self._lock:
            return len(self._sessions)

    def is_connected(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._sessions.get(user_id))

    def stream(self, session: LiveSession, heartbeat: float = 15.0) -> Iterator[str]:
        """SSE frames for a session until the client goes away"""
        try:
            yield self.format_sse({'type': 'CONNECTED', 'message': 'Connection established'})
            while not session.closed:
                event = session.next_event(timeout=heartbeat)
                if event is None:
                    yield ': keep-alive\n\n'
                    continue
                yield self.format_sse(event)
        finally:
            self.unregister(session)

    @staticmethod
    def format_sse(event: Dict[str, Any]) -> str:
        return f"event: {event.get('type', 'message')}\ndata: {json.dumps(event, default=str)}\n\n"


# Process wide registry
notification_dispatcher = NotificationDispatcher()
