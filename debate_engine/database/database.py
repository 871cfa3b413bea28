"""SQLite database manager for debate rooms."""

import json
import sqlite3
import logging
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterator

from debate_engine.exceptions import ConflictError
from debate_engine.models import (
    Feedback,
    Motion,
    Participant,
    PointOfInformation,
    Room,
    Speech,
    TranscriptSegment,
)
from debate_engine.types import RoomStatus
from .schema import SchemaManager

logger = logging.getLogger(__name__)

_ROOM_COLUMNS = frozenset(
    {
        "status",
        "current_phase",
        "current_speaker_index",
        "motion_id",
        "started_at",
        "ended_at",
    }
)
_SPEECH_COLUMNS = frozenset({"duration", "ended_at", "speaker_user_id"})


def _to_db(value: Any) -> Any:
    """Convert model values to SQLite-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _now() -> str:
    return datetime.now().isoformat()


class RoomDatabaseManager:
    """Manages SQLite database connections and schema for debate rooms."""

    def __init__(self, db_path: str = "debate_rooms.db"):
        self.db_path = Path(db_path)
        self.schema_manager = SchemaManager()
        self._init_database()

    def _init_database(self):
        with self._get_connection() as conn:
            self.schema_manager.apply(conn)
            conn.commit()
        logger.info(f"Database ready at {self.db_path}")

    @contextmanager
    def _get_connection(self) -> Iterator[sqlite3.Connection]:
        """Get a database connection with proper error handling."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path)
            conn.row_factory = sqlite3.Row  # Enable column access by name
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            if not isinstance(e, sqlite3.IntegrityError):
                logger.error(f"Database error: {e}")
            raise
        finally:
            if conn:
                conn.close()

    # Rooms

    def create_room(self, room: Room) -> int:
        """Insert a room and return its ID."""
        now = _now()
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO rooms (
                        room_code, creator_id, format, status, current_phase,
                        current_speaker_index, motion_id, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        room.room_code,
                        room.creator_id,
                        room.format,
                        room.status.value,
                        room.current_phase.value,
                        room.current_speaker_index,
                        room.motion_id,
                        now,
                        now,
                    ),
                )
                room_id = cursor.lastrowid
                if room_id is None:
                    raise RuntimeError("Failed to get room ID from database")
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise ConflictError(f"Room code {room.room_code} is already in use") from e

        logger.info(f"Created room {room_id} with code {room.room_code}")
        return room_id

    def get_room(self, room_id: int) -> Room | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM rooms WHERE id = ?", (room_id,)).fetchone()
            return self._row_to_room(row) if row else None

    def get_room_by_code(self, room_code: str) -> Room | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM rooms WHERE room_code = ?", (room_code.upper(),)
            ).fetchone()
            return self._row_to_room(row) if row else None

    def list_rooms_by_status(
        self, status: RoomStatus, limit: int | None = None, offset: int = 0
    ) -> list[Room]:
        """List rooms in a given status, newest first."""
        query = "SELECT * FROM rooms WHERE status = ? ORDER BY created_at DESC, id DESC"
        params: list[Any] = [status.value]
        if limit:
            query += " LIMIT ? OFFSET ?"
            params.extend([limit, offset])

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._row_to_room(row) for row in rows]

    def update_room(self, room_id: int, **fields: Any) -> bool:
        """Update room columns in a single statement."""
        unknown = set(fields) - _ROOM_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update room fields: {sorted(unknown)}")

        set_clauses = [f"{column} = ?" for column in fields]
        params: list[Any] = [_to_db(value) for value in fields.values()]
        set_clauses.append("updated_at = ?")
        params.append(_now())
        params.append(room_id)

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE rooms SET {', '.join(set_clauses)} WHERE id = ?", params
            )
            updated = cursor.rowcount > 0
            conn.commit()

        if updated:
            logger.debug(f"Updated room {room_id}: {fields}")
        return updated

    def _row_to_room(self, row: sqlite3.Row) -> Room:
        return Room(
            id=row["id"],
            room_code=row["room_code"],
            creator_id=row["creator_id"],
            format=row["format"],
            status=row["status"],
            current_phase=row["current_phase"],
            current_speaker_index=row["current_speaker_index"],
            motion_id=row["motion_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            started_at=row["started_at"],
            ended_at=row["ended_at"],
        )

    # Participants

    def add_participant(self, participant: Participant) -> int:
        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO participants (
                        room_id, user_id, team, speaker_role, is_ready, joined_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        participant.room_id,
                        participant.user_id,
                        participant.team.value,
                        participant.speaker_role.value,
                        int(participant.is_ready),
                        _now(),
                    ),
                )
                participant_id = cursor.lastrowid
                if participant_id is None:
                    raise RuntimeError("Failed to get participant ID from database")
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise ConflictError("This speaker role is already taken") from e

        logger.info(
            f"User {participant.user_id} joined room {participant.room_id} as {participant.speaker_role.value}"
        )
        return participant_id

    def remove_participant(self, participant_id: int) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM participants WHERE id = ?", (participant_id,))
            deleted = cursor.rowcount > 0
            conn.commit()
            return deleted

    def get_participant(self, room_id: int, user_id: int) -> Participant | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM participants WHERE room_id = ? AND user_id = ?",
                (room_id, user_id),
            ).fetchone()
            return self._row_to_participant(row) if row else None

    def list_participants(self, room_id: int) -> list[Participant]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM participants WHERE room_id = ? ORDER BY joined_at, id",
                (room_id,),
            ).fetchall()
            return [self._row_to_participant(row) for row in rows]

    def update_participant_ready(self, participant_id: int, is_ready: bool) -> bool:
        with self._get_connection() as conn:
            cursor = conn.execute(
                "UPDATE participants SET is_ready = ? WHERE id = ?",
                (int(is_ready), participant_id),
            )
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

    def _row_to_participant(self, row: sqlite3.Row) -> Participant:
        return Participant(
            id=row["id"],
            room_id=row["room_id"],
            user_id=row["user_id"],
            team=row["team"],
            speaker_role=row["speaker_role"],
            is_ready=bool(row["is_ready"]),
            joined_at=row["joined_at"],
        )

    # Motions

    def create_motion(self, motion: Motion) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO motions (
                    room_id, motion, background_context, key_stakeholders,
                    topic_area, difficulty, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    motion.room_id,
                    motion.motion,
                    motion.background_context,
                    json.dumps(motion.key_stakeholders),
                    motion.topic_area.value,
                    motion.difficulty.value,
                    _now(),
                ),
            )
            motion_id = cursor.lastrowid
            if motion_id is None:
                raise RuntimeError("Failed to get motion ID from database")
            conn.commit()
            logger.info(f"Saved motion {motion_id} for room {motion.room_id}")
            return motion_id

    def get_motion(self, motion_id: int) -> Motion | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM motions WHERE id = ?", (motion_id,)).fetchone()
            if not row:
                return None
            return Motion(
                id=row["id"],
                room_id=row["room_id"],
                motion=row["motion"],
                background_context=row["background_context"],
                key_stakeholders=json.loads(row["key_stakeholders"] or "[]"),
                topic_area=row["topic_area"],
                difficulty=row["difficulty"],
                created_at=row["created_at"],
            )

    # Speeches

    def create_speech(self, speech: Speech) -> int:
        try:
            with self._get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO speeches (
                        room_id, speaker_role, speech_type, speaker_user_id,
                        transcript, started_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        speech.room_id,
                        speech.speaker_role.value,
                        speech.speech_type.value,
                        speech.speaker_user_id,
                        json.dumps([segment.model_dump() for segment in speech.transcript]),
                        _to_db(speech.started_at) or _now(),
                    ),
                )
                speech_id = cursor.lastrowid
                if speech_id is None:
                    raise RuntimeError("Failed to get speech ID from database")
                conn.commit()
        except sqlite3.IntegrityError as e:
            raise ConflictError("A speech is already in progress") from e

        logger.info(
            f"Opened speech {speech_id} in room {speech.room_id} for {speech.speaker_role.value}"
        )
        return speech_id

    def get_speech(self, speech_id: int) -> Speech | None:
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM speeches WHERE id = ?", (speech_id,)).fetchone()
            return self._row_to_speech(row) if row else None

    def get_open_speech(self, room_id: int) -> Speech | None:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT * FROM speeches WHERE room_id = ? AND ended_at IS NULL",
                (room_id,),
            ).fetchone()
            return self._row_to_speech(row) if row else None

    def update_speech(self, speech_id: int, **fields: Any) -> bool:
        unknown = set(fields) - _SPEECH_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update speech fields: {sorted(unknown)}")
        if not fields:
            return False

        set_clauses = [f"{column} = ?" for column in fields]
        params: list[Any] = [_to_db(value) for value in fields.values()]
        params.append(speech_id)

        with self._get_connection() as conn:
            cursor = conn.execute(
                f"UPDATE speeches SET {', '.join(set_clauses)} WHERE id = ?", params
            )
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

    def append_transcript_segment(self, speech_id: int, segment: TranscriptSegment) -> bool:
        """Append one transcript segment inside a single write transaction."""
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT transcript FROM speeches WHERE id = ?", (speech_id,)
            ).fetchone()
            if not row:
                conn.rollback()
                return False

            segments = json.loads(row["transcript"] or "[]")
            segments.append(segment.model_dump())
            conn.execute(
                "UPDATE speeches SET transcript = ? WHERE id = ?",
                (json.dumps(segments), speech_id),
            )
            conn.commit()
            return True

    def list_speeches(self, room_id: int) -> list[Speech]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM speeches WHERE room_id = ? ORDER BY started_at, id",
                (room_id,),
            ).fetchall()
            return [self._row_to_speech(row) for row in rows]

    def _row_to_speech(self, row: sqlite3.Row) -> Speech:
        return Speech(
            id=row["id"],
            room_id=row["room_id"],
            speaker_role=row["speaker_role"],
            speech_type=row["speech_type"],
            speaker_user_id=row["speaker_user_id"],
            duration=row["duration"],
            transcript=[
                TranscriptSegment(**segment)
                for segment in json.loads(row["transcript"] or "[]")
            ],
            started_at=row["started_at"],
            ended_at=row["ended_at"],
        )

    # Points of information

    def create_poi(self, poi: PointOfInformation) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO pois (room_id, speech_id, offered_by, timestamp, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (poi.room_id, poi.speech_id, poi.offered_by, poi.timestamp, _now()),
            )
            poi_id = cursor.lastrowid
            if poi_id is None:
                raise RuntimeError("Failed to get POI ID from database")
            conn.commit()
            return poi_id

    def list_pois(self, room_id: int, speech_id: int | None = None) -> list[PointOfInformation]:
        query = "SELECT * FROM pois WHERE room_id = ?"
        params: list[Any] = [room_id]
        if speech_id is not None:
            query += " AND speech_id = ?"
            params.append(speech_id)
        query += " ORDER BY id"

        with self._get_connection() as conn:
            rows = conn.execute(query, params).fetchall()
            return [
                PointOfInformation(
                    id=row["id"],
                    room_id=row["room_id"],
                    speech_id=row["speech_id"],
                    offered_by=row["offered_by"],
                    timestamp=row["timestamp"],
                    created_at=row["created_at"],
                )
                for row in rows
            ]

    # Feedback

    def create_feedback(self, feedback: Feedback) -> int:
        with self._get_connection() as conn:
            cursor = conn.execute(
                """
                INSERT INTO feedback (
                    room_id, user_id, speaker_role, score, strengths,
                    improvements, summary, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    feedback.room_id,
                    feedback.user_id,
                    feedback.speaker_role.value,
                    feedback.score,
                    feedback.strengths,
                    feedback.improvements,
                    feedback.summary,
                    _now(),
                ),
            )
            feedback_id = cursor.lastrowid
            if feedback_id is None:
                raise RuntimeError("Failed to get feedback ID from database")
            conn.commit()
            return feedback_id

    def list_feedback(self, room_id: int) -> list[Feedback]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT * FROM feedback WHERE room_id = ? ORDER BY id", (room_id,)
            ).fetchall()
            return [
                Feedback(
                    id=row["id"],
                    room_id=row["room_id"],
                    user_id=row["user_id"],
                    speaker_role=row["speaker_role"],
                    score=row["score"],
                    strengths=row["strengths"],
                    improvements=row["improvements"],
                    summary=row["summary"],
                    created_at=row["created_at"],
                )
                for row in rows
            ]
