"""Speech, transcription and point-of-information endpoints."""

import base64
import binascii
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from debate_engine.exceptions import DebateRoomError, ValidationError
from debate_engine.models import PointOfInformation, Speech, TranscriptSegment
from web.dependencies import get_room_manager, get_user_id, parse_user_id
from web.room_manager import RoomManager
from web.room_requests import (
    EndSpeechRequest,
    PoiRequest,
    StartSpeechRequest,
    TranscribeChunkRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
ws_router = APIRouter()


def decode_audio(audio_base64: str) -> bytes:
    try:
        return base64.b64decode(audio_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError("Audio must be base64 encoded") from e


class WebSocketAudioCapture:
    """Audio frames `{"audio_base64": ..., "timestamp": ...}` read from a WebSocket.

    Recording stops on `{"type": "stop"}` or when the client disconnects.
    """

    def __init__(self, websocket: WebSocket, mime_type: str):
        self.websocket = websocket
        self.mime_type = mime_type
        self.disconnected = False

    async def read_chunk(self) -> tuple[bytes, float] | None:
        try:
            message = await self.websocket.receive_json()
        except WebSocketDisconnect:
            self.disconnected = True
            return None

        if not isinstance(message, dict) or message.get("type") == "stop":
            return None
        try:
            timestamp = float(message["timestamp"])
            audio = decode_audio(message["audio_base64"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError("Audio frames need audio_base64 and timestamp") from e
        return audio, timestamp


@router.post("/rooms/{room_id}/speeches", response_model=Speech)
async def start_speech(
    room_id: int,
    request: StartSpeechRequest,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    return await manager.start_speech(user_id, room_id, request.speaker_role, request.speech_type)


@router.get("/rooms/{room_id}/speeches", response_model=list[Speech])
async def list_speeches(room_id: int, manager: RoomManager = Depends(get_room_manager)):
    return manager.tracker.list_speeches(room_id)


@router.post("/speeches/{speech_id}/end", response_model=Speech)
async def end_speech(
    speech_id: int,
    request: EndSpeechRequest,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    return await manager.end_speech(user_id, speech_id, request.duration)


@router.post("/speeches/{speech_id}/transcribe", response_model=TranscriptSegment | None)
async def transcribe_chunk(
    speech_id: int,
    request: TranscribeChunkRequest,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    """Transcribe a recorded chunk; returns null when nothing usable was heard."""
    audio = decode_audio(request.audio_base64)
    return await manager.transcribe_chunk(
        user_id, speech_id, audio, request.timestamp, request.mime_type, request.language
    )


@router.post("/rooms/{room_id}/pois", response_model=PointOfInformation)
async def offer_poi(
    room_id: int,
    request: PoiRequest,
    user_id: int = Depends(get_user_id),
    manager: RoomManager = Depends(get_room_manager),
):
    return await manager.offer_poi(user_id, room_id, request.speech_id, request.timestamp)


@ws_router.websocket("/ws/speeches/{speech_id}/audio")
async def speech_audio(
    websocket: WebSocket,
    speech_id: int,
    mime_type: str = "audio/webm",
    language: str | None = None,
):
    """Stream the speaker's audio for live transcription of an open speech."""
    await websocket.accept()
    manager: RoomManager = websocket.app.state.room_manager

    user_id = parse_user_id(websocket.headers.get("x-user-id"))
    if user_id is None:
        await websocket.send_json(
            {"type": "error", "payload": {"error": "Missing or invalid X-User-Id header"}}
        )
        await websocket.close(code=1008)
        return

    capture = WebSocketAudioCapture(websocket, mime_type)
    try:
        kept = await manager.record_speech(user_id, speech_id, capture, language)
    except DebateRoomError as e:
        if not capture.disconnected:
            await websocket.send_json({"type": "error", "payload": {"error": e.message}})
            await websocket.close()
        return

    if not capture.disconnected:
        await websocket.send_json(
            {"type": "recording_finished", "payload": {"speech_id": speech_id, "segments": kept}}
        )
        await websocket.close()
