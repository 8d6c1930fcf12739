"""
Live connection registry: subscribers eligible for refresh notifications.

A registration is created on connect, refreshed on every inbound message,
and removed on disconnect or when a push to it fails. Registrations past
expires_at count as dead and are dropped lazily.

Storage: output/connections.json
"""

import json
import os
import tempfile
import threading
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path

from config import CONNECTIONS_PATH, CONNECTION_TTL_SECONDS
from models import LiveConnection


class ConnectionRegistry:

    def __init__(self, path=None, ttl_seconds=CONNECTION_TTL_SECONDS, clock=time.time):
        self.path = Path(path) if path is not None else CONNECTIONS_PATH
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._lock = threading.Lock()

    def _load(self):
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        if not isinstance(data, dict):
            return {}
        return {cid: LiveConnection(**c) for cid, c in data.get("connections", {}).items()}

    def _save(self, connections):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({"connections": {cid: c.to_dict() for cid, c in connections.items()}},
                          f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _stamp(self):
        now = self.clock()
        return datetime.fromtimestamp(now, timezone.utc).isoformat(), int(now) + self.ttl_seconds

    def connect(self, connection_id=None, session_id=None):
        stamp, expires = self._stamp()
        conn = LiveConnection(
            connection_id=connection_id or str(uuid.uuid4()),
            session_id=session_id or str(uuid.uuid4()),
            connected_at=stamp, last_seen_at=stamp, expires_at=expires)
        with self._lock:
            connections = self._load()
            connections[conn.connection_id] = conn
            self._save(connections)
        return conn

    def disconnect(self, connection_id):
        return self.remove_many([connection_id]) > 0

    def touch(self, connection_id):
        """Inbound message: bump last_seen_at and expiry, registering if unknown."""
        stamp, expires = self._stamp()
        with self._lock:
            connections = self._load()
            conn = connections.get(connection_id)
            if conn is None:
                conn = LiveConnection(connection_id=connection_id, session_id=str(uuid.uuid4()),
                                      connected_at=stamp)
                connections[connection_id] = conn
            conn.last_seen_at = stamp
            conn.expires_at = expires
            self._save(connections)
        return conn

    def get(self, connection_id):
        return self._load().get(connection_id)

    def live(self):
        now = self.clock()
        return [c for c in self._load().values() if c.is_live(now)]

    def expired(self):
        now = self.clock()
        return [c for c in self._load().values() if not c.is_live(now)]

    def remove_many(self, connection_ids):
        """Drop registrations in one write. Unknown ids are ignored. Returns count removed."""
        with self._lock:
            connections = self._load()
            removed = 0
            for cid in connection_ids:
                if connections.pop(cid, None) is not None:
                    removed += 1
            if removed:
                self._save(connections)
        return removed


def handle_connect(registry, connection_id=None, session_id=None):
    conn = registry.connect(connection_id, session_id)
    print("    connected {} (session {})".format(conn.connection_id, conn.session_id))
    return {"connectionId": conn.connection_id, "sessionId": conn.session_id}


def handle_disconnect(registry, connection_id):
    if connection_id:
        registry.disconnect(connection_id)
    return "disconnected"


def handle_message(registry, connection_id, body=None):
    """Refresh the registration and echo the message back (or ack)."""
    if connection_id:
        registry.touch(connection_id)
    return body if body else "ack"
