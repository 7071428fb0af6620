"""SQLite database interface for the lesson records."""

import sqlite3
from datetime import datetime, date
from pathlib import Path
from typing import Dict, Optional, List

from utils.config import DB_PATH


class DBManager:
    """Manages the live SQLite database holding lesson records."""

    def __init__(self, db_path: Optional[Path] = None):
        """
        Initialize database manager.

        Args:
            db_path: Path to SQLite database file (defaults to config DB_PATH)
        """
        self.db_path = Path(db_path or DB_PATH)
        self.connection: Optional[sqlite3.Connection] = None
        self._ensure_db_exists()

    def _ensure_db_exists(self):
        """Ensure database file and directory exist."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._create_tables()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create database connection."""
        if self.connection is None:
            # Backups are requested from worker threads; calls are never concurrent
            self.connection = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self.connection.row_factory = sqlite3.Row
        return self.connection

    def _create_tables(self):
        """Create database tables if they don't exist."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS lessons (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                lesson_date TEXT NOT NULL,
                weekday TEXT NOT NULL,
                name TEXT NOT NULL,
                duration REAL NOT NULL DEFAULT 0,
                value REAL NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'Pending',
                hourly_rate REAL NOT NULL DEFAULT 0,
                category TEXT NOT NULL DEFAULT 'Lesson',
                created_at REAL NOT NULL,
                updated_at REAL NOT NULL
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_lesson_date ON lessons(lesson_date)
        """)

        conn.commit()

    def add_lesson(self, lesson_date: date, name: str, duration: float,
                   hourly_rate: float, status: str = 'Pending',
                   category: str = 'Lesson', value: Optional[float] = None) -> int:
        """
        Insert a lesson record.

        Args:
            lesson_date: Day the lesson took place
            name: Student or lesson name
            duration: Duration in hours
            hourly_rate: Rate applied to this lesson
            status: Billing status ('Pending' or 'Paid')
            category: 'Lesson' or any other billable service
            value: Billed value (defaults to duration * hourly_rate)

        Returns:
            Lesson ID
        """
        conn = self._get_connection()
        cursor = conn.cursor()
        now = datetime.now().timestamp()
        if value is None:
            value = round(duration * hourly_rate, 2)

        cursor.execute("""
            INSERT INTO lessons
            (lesson_date, weekday, name, duration, value, status, hourly_rate,
             category, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (lesson_date.isoformat(), lesson_date.strftime('%A'), name, duration,
              value, status, hourly_rate, category, now, now))

        conn.commit()
        return cursor.lastrowid

    def get_lesson(self, lesson_id: int) -> Optional[Dict]:
        """
        Get a lesson by ID.

        Returns:
            Dict with the lesson fields or None if not found
        """
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM lessons WHERE id = ?", (lesson_id,))

        row = cursor.fetchone()
        return dict(row) if row else None

    def get_all_lessons(self) -> List[Dict]:
        """Get all lessons, most recent first."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM lessons ORDER BY lesson_date DESC, id DESC")

        return [dict(row) for row in cursor.fetchall()]

    def update_lesson_status(self, lesson_id: int, status: str) -> bool:
        """Update the billing status of a lesson. Returns False if it does not exist."""
        conn = self._get_connection()
        cursor = conn.cursor()
        now = datetime.now().timestamp()

        cursor.execute("""
            UPDATE lessons SET status = ?, updated_at = ? WHERE id = ?
        """, (status, now, lesson_id))

        conn.commit()
        return cursor.rowcount > 0

    def delete_lesson(self, lesson_id: int) -> bool:
        """Delete a lesson. Returns False if it does not exist."""
        conn = self._get_connection()
        cursor = conn.cursor()

        cursor.execute("DELETE FROM lessons WHERE id = ?", (lesson_id,))
        conn.commit()
        return cursor.rowcount > 0

    def backup_to(self, destination: Path):
        """
        Write a consistent copy of the database to destination.

        Uses SQLite's online backup API, which copies whole pages under the
        engine's locking and so never captures a torn write, even while the
        database is open and in use.

        Args:
            destination: Path of the copy (must not exist or be an empty file)

        Raises:
            sqlite3.Error: If the engine cannot produce the copy
        """
        source = self._get_connection()
        target = sqlite3.connect(str(destination))
        try:
            source.backup(target)
        finally:
            target.close()

    def close(self):
        """Close database connection."""
        if self.connection:
            self.connection.close()
            self.connection = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
