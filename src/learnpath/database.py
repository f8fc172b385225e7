"""
learnpath/database.py — SQLite persistence layer for courses and progress
=========================================================================
Stores every learner's courses, milestones, per-milestone progress and
certificates so that a returning learner resumes exactly where they left off.

Design decisions
----------------
- **JSON blobs in TEXT columns** — roadmap documents, milestone resources and
  quizzes are stored as serialised JSON rather than normalised tables.  They
  are written once at course creation and never queried by field.
- **One transaction per logical mutation** — course creation (course +
  milestones + progress rows) and the quiz-pass cascade (progress updates +
  course completion + certificate) each run inside ``BEGIN IMMEDIATE``.  A
  failure rolls the whole unit back and surfaces as PersistenceFailure, so a
  reader never sees a half-created course or two active milestones.
- **UNIQUE(user_id, course_id) on certificates** — backs the check-then-create
  in complete_milestone() so a retried completion cannot issue a second
  certificate.
- **WAL journal mode** — readers are not blocked while a cascade commits.

Database file location
----------------------
``learnpath_data.db`` in the workspace root unless LEARNPATH_DB_PATH is set.

Public API
----------
  init_db()                                 create tables if they don't exist
  create_user(name, pin) / upsert_user()    → user id
  get_user(name) / get_user_by_id(id)       → dict | None
  create_course_with_milestones(...)        → (Course, list[Milestone])
  get_course(course_id, user_id)            → Course | None
  list_courses(user_id)                     → list[Course]  (newest first)
  get_milestones(course_id)                 → list[Milestone] by order_index
  get_milestone(milestone_id)               → Milestone | None
  get_progress(user_id, course_id)          → list[ProgressRecord]
  complete_milestone(...)                   → (completed_now, Certificate | None)
  get_certificate(user_id, course_id)       → Certificate | None
  list_certificates(user_id)                → list[Certificate]
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Iterator, Optional

from learnpath.config import get_settings
from learnpath.errors import PersistenceFailure
from learnpath.models import (
    Certificate,
    CertificateData,
    Course,
    CourseStatus,
    Milestone,
    MilestoneResources,
    MilestoneStatus,
    ProgressRecord,
    QuizItem,
    RoadmapSource,
)

logger = logging.getLogger(__name__)

_DB_PATH = Path(get_settings().app.db_path)


def _get_conn() -> sqlite3.Connection:
    """Return a connection with row_factory set."""
    conn = sqlite3.connect(str(_DB_PATH), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


@contextmanager
def _transaction() -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements as one atomic unit."""
    conn = _get_conn()
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.commit()
    except sqlite3.Error as exc:
        conn.rollback()
        logger.error("Transaction rolled back: %s", exc)
        raise PersistenceFailure() from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_db() -> None:
    """Create tables if they don't exist."""
    conn = _get_conn()
    conn.executescript("""
    CREATE TABLE IF NOT EXISTS users (
        id          INTEGER PRIMARY KEY AUTOINCREMENT,
        name        TEXT    UNIQUE NOT NULL,
        pin         TEXT    NOT NULL DEFAULT '1234',
        created_at  TEXT    DEFAULT (datetime('now'))
    );
    CREATE TABLE IF NOT EXISTS courses (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id         INTEGER NOT NULL REFERENCES users(id),
        name            TEXT    NOT NULL,
        duration        TEXT,
        status          TEXT    NOT NULL DEFAULT 'active',
        roadmap_json    TEXT,
        roadmap_source  TEXT    NOT NULL DEFAULT 'llm',
        trace_json      TEXT,
        created_at      TEXT    DEFAULT (datetime('now')),
        updated_at      TEXT    DEFAULT (datetime('now'))
    );
    CREATE TABLE IF NOT EXISTS milestones (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        course_id       INTEGER NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
        title           TEXT    NOT NULL,
        order_index     INTEGER NOT NULL,
        resources_json  TEXT,
        quiz_json       TEXT,
        UNIQUE (course_id, order_index)
    );
    CREATE TABLE IF NOT EXISTS progress (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id         INTEGER NOT NULL REFERENCES users(id),
        course_id       INTEGER NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
        milestone_id    INTEGER NOT NULL REFERENCES milestones(id) ON DELETE CASCADE,
        status          TEXT    NOT NULL
                        CHECK (status IN ('locked', 'active', 'completed')),
        quiz_score      INTEGER,
        updated_at      TEXT    DEFAULT (datetime('now')),
        UNIQUE (user_id, milestone_id)
    );
    CREATE TABLE IF NOT EXISTS certificates (
        id                TEXT    PRIMARY KEY,
        user_id           INTEGER NOT NULL REFERENCES users(id),
        course_id         INTEGER NOT NULL REFERENCES courses(id) ON DELETE CASCADE,
        certificate_json  TEXT    NOT NULL,
        created_at        TEXT    DEFAULT (datetime('now')),
        UNIQUE (user_id, course_id)
    );
    """)
    conn.commit()
    conn.close()


# ─── Row mappers ─────────────────────────────────────────────────────────────

def _row_to_course(row: sqlite3.Row) -> Course:
    return Course(
        id             = row["id"],
        user_id        = row["user_id"],
        name           = row["name"],
        duration       = row["duration"] or "",
        status         = CourseStatus(row["status"]),
        roadmap        = json.loads(row["roadmap_json"] or "{}"),
        roadmap_source = RoadmapSource(row["roadmap_source"]),
        created_at     = row["created_at"] or "",
    )


def _row_to_milestone(row: sqlite3.Row) -> Milestone:
    return Milestone(
        id          = row["id"],
        course_id   = row["course_id"],
        title       = row["title"],
        order_index = row["order_index"],
        resources   = MilestoneResources.model_validate(json.loads(row["resources_json"] or "{}")),
        quiz        = [QuizItem.model_validate(q) for q in json.loads(row["quiz_json"] or "[]")],
    )


def _row_to_progress(row: sqlite3.Row) -> ProgressRecord:
    return ProgressRecord(
        user_id      = row["user_id"],
        course_id    = row["course_id"],
        milestone_id = row["milestone_id"],
        status       = MilestoneStatus(row["status"]),
        quiz_score   = row["quiz_score"],
    )


def _row_to_certificate(row: sqlite3.Row) -> Certificate:
    return Certificate(
        id               = row["id"],
        user_id          = row["user_id"],
        course_id        = row["course_id"],
        certificate_data = CertificateData(**json.loads(row["certificate_json"])),
        created_at       = row["created_at"] or "",
    )


# ─── User CRUD ───────────────────────────────────────────────────────────────

def get_user(name: str) -> Optional[dict]:
    """Fetch a user by name. Returns dict or None."""
    conn = _get_conn()
    row = conn.execute("SELECT * FROM users WHERE name = ?", (name,)).fetchone()
    conn.close()
    return dict(row) if row else None


def get_user_by_id(user_id: int) -> Optional[dict]:
    conn = _get_conn()
    row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
    conn.close()
    return dict(row) if row else None


def create_user(name: str, pin: str = "1234") -> int:
    """Create a new user record, return the id."""
    with _transaction() as conn:
        cur = conn.execute("INSERT INTO users (name, pin) VALUES (?, ?)", (name, pin))
        return cur.lastrowid


def upsert_user(name: str, pin: str = "1234") -> int:
    """Create or get existing user, return id."""
    existing = get_user(name)
    if existing:
        return existing["id"]
    return create_user(name, pin)


# ─── Courses & milestones ────────────────────────────────────────────────────

def create_course_with_milestones(
    user_id: int,
    name: str,
    duration: str,
    roadmap: dict,
    roadmap_source: RoadmapSource,
    milestones: list[tuple[int, str, MilestoneResources, list[QuizItem]]],
    trace_json: str | None = None,
) -> tuple[Course, list[Milestone]]:
    """
    Create a course, its milestones and the learner's progress rows at once.

    *milestones* is a list of ``(order_index, title, resources, quiz)``.  The
    milestone with order_index 1 starts ``active``; all others start ``locked``.
    """
    with _transaction() as conn:
        cur = conn.execute(
            """
            INSERT INTO courses (user_id, name, duration, status, roadmap_json,
                                 roadmap_source, trace_json)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (user_id, name, duration, CourseStatus.ACTIVE.value,
             json.dumps(roadmap), roadmap_source.value, trace_json),
        )
        course_id = cur.lastrowid

        first_order = min(order for order, *_ in milestones) if milestones else None
        for order_index, title, resources, quiz in milestones:
            m_cur = conn.execute(
                """
                INSERT INTO milestones (course_id, title, order_index, resources_json, quiz_json)
                VALUES (?, ?, ?, ?, ?)
                """,
                (course_id, title, order_index,
                 resources.model_dump_json(by_alias=True),
                 json.dumps([q.model_dump(by_alias=True) for q in quiz])),
            )
            status = MilestoneStatus.ACTIVE if order_index == first_order else MilestoneStatus.LOCKED
            conn.execute(
                """
                INSERT INTO progress (user_id, course_id, milestone_id, status)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, course_id, m_cur.lastrowid, status.value),
            )

        course_row = conn.execute("SELECT * FROM courses WHERE id = ?", (course_id,)).fetchone()
        milestone_rows = conn.execute(
            "SELECT * FROM milestones WHERE course_id = ? ORDER BY order_index",
            (course_id,),
        ).fetchall()

    logger.info("Created course %s with %d milestones for user %s",
                course_id, len(milestone_rows), user_id)
    return _row_to_course(course_row), [_row_to_milestone(r) for r in milestone_rows]


def get_course(course_id: int, user_id: int) -> Optional[Course]:
    """Fetch a course owned by *user_id*. Returns None if absent or not owned."""
    conn = _get_conn()
    row = conn.execute(
        "SELECT * FROM courses WHERE id = ? AND user_id = ?", (course_id, user_id)
    ).fetchone()
    conn.close()
    return _row_to_course(row) if row else None


def list_courses(user_id: int) -> list[Course]:
    conn = _get_conn()
    rows = conn.execute(
        "SELECT * FROM courses WHERE user_id = ? ORDER BY created_at DESC, id DESC",
        (user_id,),
    ).fetchall()
    conn.close()
    return [_row_to_course(r) for r in rows]


def get_course_trace(course_id: int) -> Optional[dict]:
    """Return the generation RunTrace stored with a course, if any."""
    conn = _get_conn()
    row = conn.execute("SELECT trace_json FROM courses WHERE id = ?", (course_id,)).fetchone()
    conn.close()
    if row is None or not row["trace_json"]:
        return None
    return json.loads(row["trace_json"])


def get_milestones(course_id: int) -> list[Milestone]:
    """Milestones of a course in ascending order_index."""
    conn = _get_conn()
    rows = conn.execute(
        "SELECT * FROM milestones WHERE course_id = ? ORDER BY order_index",
        (course_id,),
    ).fetchall()
    conn.close()
    return [_row_to_milestone(r) for r in rows]


def get_milestone(milestone_id: int) -> Optional[Milestone]:
    conn = _get_conn()
    row = conn.execute("SELECT * FROM milestones WHERE id = ?", (milestone_id,)).fetchone()
    conn.close()
    return _row_to_milestone(row) if row else None


# ─── Progress ────────────────────────────────────────────────────────────────

def get_progress(user_id: int, course_id: int) -> list[ProgressRecord]:
    conn = _get_conn()
    rows = conn.execute(
        "SELECT * FROM progress WHERE user_id = ? AND course_id = ?",
        (user_id, course_id),
    ).fetchall()
    conn.close()
    return [_row_to_progress(r) for r in rows]


def complete_milestone(
    user_id: int,
    course_id: int,
    milestone_id: int,
    score: int,
    next_milestone_id: Optional[int],
    certificate_data: Optional[CertificateData] = None,
) -> tuple[bool, Optional[Certificate]]:
    """
    Apply the quiz-pass cascade as one transaction.

    1. ``active → completed`` for *milestone_id*. A locked or unknown
       milestone changes nothing and returns ``(False, None)``.
    2. ``locked → active`` for *next_milestone_id* when one exists.
    3. When there is no next milestone and *milestone_id* is completed:
       course ``status = completed`` and a certificate is created unless one
       already exists for (user, course).

    Returns ``(completed_now, certificate)`` where *certificate* is the stored
    certificate for the course (new or pre-existing) on the last milestone.
    """
    certificate: Optional[Certificate] = None
    with _transaction() as conn:
        cur = conn.execute(
            """
            UPDATE progress SET status = ?, quiz_score = ?, updated_at = datetime('now')
            WHERE user_id = ? AND milestone_id = ? AND status = ?
            """,
            (MilestoneStatus.COMPLETED.value, score, user_id, milestone_id,
             MilestoneStatus.ACTIVE.value),
        )
        completed_now = cur.rowcount == 1
        if not completed_now:
            row = conn.execute(
                "SELECT status FROM progress WHERE user_id = ? AND milestone_id = ?",
                (user_id, milestone_id),
            ).fetchone()
            if row is None or row["status"] != MilestoneStatus.COMPLETED.value:
                # Locked or unknown milestone: nothing cascades.
                return False, None

        if next_milestone_id is not None:
            if completed_now:
                conn.execute(
                    """
                    UPDATE progress SET status = ?, updated_at = datetime('now')
                    WHERE user_id = ? AND milestone_id = ? AND status = ?
                    """,
                    (MilestoneStatus.ACTIVE.value, user_id, next_milestone_id,
                     MilestoneStatus.LOCKED.value),
                )
        else:
            conn.execute(
                """
                UPDATE courses SET status = ?, updated_at = datetime('now')
                WHERE id = ? AND user_id = ?
                """,
                (CourseStatus.COMPLETED.value, course_id, user_id),
            )
            row = conn.execute(
                "SELECT * FROM certificates WHERE user_id = ? AND course_id = ?",
                (user_id, course_id),
            ).fetchone()
            if row is None and certificate_data is not None:
                conn.execute(
                    """
                    INSERT INTO certificates (id, user_id, course_id, certificate_json)
                    VALUES (?, ?, ?, ?)
                    """,
                    (certificate_data.certificate_id, user_id, course_id,
                     json.dumps(asdict(certificate_data))),
                )
                row = conn.execute(
                    "SELECT * FROM certificates WHERE user_id = ? AND course_id = ?",
                    (user_id, course_id),
                ).fetchone()
                logger.info("Issued certificate %s for course %s",
                            certificate_data.certificate_id, course_id)
            if row is not None:
                certificate = _row_to_certificate(row)

    return completed_now, certificate


# ─── Certificates ────────────────────────────────────────────────────────────

def get_certificate(user_id: int, course_id: int) -> Optional[Certificate]:
    conn = _get_conn()
    row = conn.execute(
        "SELECT * FROM certificates WHERE user_id = ? AND course_id = ?",
        (user_id, course_id),
    ).fetchone()
    conn.close()
    return _row_to_certificate(row) if row else None


def list_certificates(user_id: int) -> list[Certificate]:
    conn = _get_conn()
    rows = conn.execute(
        "SELECT * FROM certificates WHERE user_id = ? ORDER BY created_at DESC",
        (user_id,),
    ).fetchall()
    conn.close()
    return [_row_to_certificate(r) for r in rows]
