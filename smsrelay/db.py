import os
import sqlite3
from pathlib import Path
from typing import Optional

from smsrelay.models import InboundMessage


DB_PATH = Path(os.getenv("DB_PATH", "/app/data/relay.db"))


def init_db():
    """Initialize SQLite database."""
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(DB_PATH)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS relay_state (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            fingerprint TEXT NOT NULL UNIQUE,
            state TEXT NOT NULL,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS messages (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            sender TEXT NOT NULL,
            body TEXT NOT NULL,
            fingerprint TEXT NOT NULL,
            received_at TEXT NOT NULL,
            status TEXT NOT NULL,
            reason TEXT,
            reply TEXT,
            segments_sent INTEGER NOT NULL DEFAULT 0,
            segments_failed INTEGER NOT NULL DEFAULT 0,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    """)
    conn.commit()
    conn.close()


# Relay state (crash-resilient dedup store)

def put_state(fingerprint: str, state: str):
    """Insert or move a fingerprint to the end of the state table."""
    conn = sqlite3.connect(DB_PATH)
    with conn:
        conn.execute("DELETE FROM relay_state WHERE fingerprint = ?", (fingerprint,))
        conn.execute(
            "INSERT INTO relay_state (fingerprint, state) VALUES (?, ?)",
            (fingerprint, state),
        )
    conn.close()


def remove_state(fingerprint: str):
    conn = sqlite3.connect(DB_PATH)
    with conn:
        conn.execute("DELETE FROM relay_state WHERE fingerprint = ?", (fingerprint,))
    conn.close()


def list_states() -> list[tuple[str, str]]:
    """All persisted (fingerprint, state) pairs, oldest first."""
    conn = sqlite3.connect(DB_PATH)
    cursor = conn.execute("SELECT fingerprint, state FROM relay_state ORDER BY id ASC")
    rows = [(r[0], r[1]) for r in cursor.fetchall()]
    conn.close()
    return rows


# Message history

def log_message(msg: InboundMessage, status: str = "received", reason: str = "") -> int:
    """Log inbound message to database, return ID."""
    conn = sqlite3.connect(DB_PATH)
    cursor = conn.execute(
        """
        INSERT INTO messages (sender, body, fingerprint, received_at, status, reason)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        (msg.sender, msg.body, msg.fingerprint, msg.received_at.isoformat(), status, reason),
    )
    message_id = cursor.lastrowid
    conn.commit()
    conn.close()
    return message_id


def update_message(message_id: int, status: str, reason: str):
    """Update message status after the admission decision."""
    conn = sqlite3.connect(DB_PATH)
    conn.execute(
        "UPDATE messages SET status = ?, reason = ? WHERE id = ?",
        (status, reason, message_id),
    )
    conn.commit()
    conn.close()


def finish_message(
    fingerprint: str,
    status: str,
    reason: str,
    reply: Optional[str] = None,
    segments_sent: int = 0,
    segments_failed: int = 0,
):
    """Record the terminal outcome on the newest in-flight row for a fingerprint."""
    conn = sqlite3.connect(DB_PATH)
    conn.execute(
        """
        UPDATE messages
        SET status = ?, reason = ?, reply = ?, segments_sent = ?, segments_failed = ?
        WHERE id = (
            SELECT MAX(id) FROM messages WHERE fingerprint = ? AND status = 'processing'
        )
        """,
        (status, reason, reply, segments_sent, segments_failed, fingerprint),
    )
    conn.commit()
    conn.close()


def check_db() -> bool:
    """Health check for database."""
    try:
        conn = sqlite3.connect(DB_PATH)
        conn.execute("SELECT 1")
        conn.close()
        return True
    except sqlite3.Error:
        return False


def get_recent_messages(limit: int = 50) -> list[dict]:
    """Get recent messages, newest first."""
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    cursor = conn.execute(
        """
        SELECT id, sender, body, fingerprint, received_at, status, reason, reply,
               segments_sent, segments_failed, created_at
        FROM messages
        ORDER BY id DESC
        LIMIT ?
        """,
        (limit,),
    )
    rows = [dict(row) for row in cursor.fetchall()]
    conn.close()
    return rows


def get_stats() -> dict:
    """Get relay statistics."""
    conn = sqlite3.connect(DB_PATH)
    cursor = conn.execute("""
        SELECT
            COUNT(*) as total,
            SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) as completed,
            SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) as failed,
            SUM(CASE WHEN status = 'rejected' THEN 1 ELSE 0 END) as rejected,
            SUM(CASE WHEN status = 'duplicate' THEN 1 ELSE 0 END) as duplicate,
            SUM(CASE WHEN status = 'processing' THEN 1 ELSE 0 END) as processing,
            SUM(segments_sent) as segments_sent,
            SUM(segments_failed) as segments_failed
        FROM messages
    """)
    row = cursor.fetchone()
    conn.close()
    return {
        "received": row[0] or 0,
        "completed": row[1] or 0,
        "failed": row[2] or 0,
        "rejected": row[3] or 0,
        "duplicate": row[4] or 0,
        "processing": row[5] or 0,
        "segments_sent": row[6] or 0,
        "segments_failed": row[7] or 0,
    }
