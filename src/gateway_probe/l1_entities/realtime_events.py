"""Realtime event entities — typed inbound events and outbound event builders."""

from __future__ import annotations

import base64
import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from gateway_probe.l1_entities.close_codes import CloseDiagnosis
from gateway_probe.l1_entities.errors import ProtocolDecodeError


class SessionCreated(BaseModel):
    type: Literal['session.created'] = 'session.created'
    session: dict[str, Any] = Field(default_factory=dict)

    @property
    def session_id(self) -> str | None:
        return self.session.get('id')


class SessionUpdated(BaseModel):
    type: Literal['session.updated'] = 'session.updated'
    session: dict[str, Any] = Field(default_factory=dict)


class ResponseCreated(BaseModel):
    type: Literal['response.created'] = 'response.created'
    response: dict[str, Any] = Field(default_factory=dict)


class ResponseDone(BaseModel):
    type: Literal['response.done'] = 'response.done'
    response: dict[str, Any] = Field(default_factory=dict)


class ResponseTextDelta(BaseModel):
    type: Literal['response.text.delta'] = 'response.text.delta'
    delta: str = ''


class ResponseTextDone(BaseModel):
    type: Literal['response.text.done'] = 'response.text.done'
    text: str = ''


class ConversationItemCreated(BaseModel):
    type: Literal['conversation.item.created'] = 'conversation.item.created'
    item: dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str | None:
        """First text part of the item, if any."""
        content = self.item.get('content') or []
        if content and isinstance(content[0], dict):
            return content[0].get('text')
        return None


class ConversationItemCompleted(BaseModel):
    type: Literal['conversation.item.completed'] = 'conversation.item.completed'
    item: dict[str, Any] = Field(default_factory=dict)


class ConversationInterrupted(BaseModel):
    type: Literal['conversation.interrupted'] = 'conversation.interrupted'


class ServerError(BaseModel):
    type: Literal['error'] = 'error'
    error: dict[str, Any] = Field(default_factory=dict)

    @property
    def message(self) -> str:
        return self.error.get('message') or json.dumps(self.error)


class SessionClosed(BaseModel):
    """Synthetic terminal event emitted by the client when the socket closes."""

    type: Literal['session.closed'] = 'session.closed'
    diagnosis: CloseDiagnosis


ServerEvent = Annotated[
    Union[
        SessionCreated,
        SessionUpdated,
        ResponseCreated,
        ResponseDone,
        ResponseTextDelta,
        ResponseTextDone,
        ConversationItemCreated,
        ConversationItemCompleted,
        ConversationInterrupted,
        ServerError,
    ],
    Field(discriminator='type'),
]

RealtimeEvent = Union[ServerEvent, SessionClosed]

_SERVER_EVENT_ADAPTER: TypeAdapter[ServerEvent] = TypeAdapter(ServerEvent)
KNOWN_SERVER_EVENT_TYPES = frozenset(
    {
        'session.created',
        'session.updated',
        'response.created',
        'response.done',
        'response.text.delta',
        'response.text.done',
        'conversation.item.created',
        'conversation.item.completed',
        'conversation.interrupted',
        'error',
    }
)


def parse_server_event(raw: str | bytes) -> ServerEvent | None:
    """Decode one inbound frame.

    Returns None for event types this client does not know about. Raises
    ProtocolDecodeError for frames that are not JSON objects with a known shape.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise ProtocolDecodeError(f'Failed to parse message: {e}') from e
    if not isinstance(data, dict):
        raise ProtocolDecodeError(f'Expected a JSON object, got {type(data).__name__}')
    if data.get('type') not in KNOWN_SERVER_EVENT_TYPES:
        return None
    try:
        return _SERVER_EVENT_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise ProtocolDecodeError(f'Malformed {data["type"]} event: {e}') from e


# --- Outbound events ---


class TurnDetection(BaseModel):
    type: str = 'server_vad'
    threshold: float = 0.5
    prefix_padding_ms: int = 300
    silence_duration_ms: int = 500


class RealtimeSessionSettings(BaseModel):
    """Payload of the ``session.update`` sent as the first frame of every session."""

    modalities: list[str] = Field(default_factory=lambda: ['text', 'audio'])
    instructions: str = 'You are a helpful assistant. Respond naturally in conversation.'
    voice: str = 'alloy'
    input_audio_format: str = 'pcm16'
    output_audio_format: str = 'pcm16'
    transcription_model: str = 'whisper-1'
    turn_detection: TurnDetection = Field(default_factory=TurnDetection)
    temperature: float = 0.8
    max_response_output_tokens: int = 4096

    def to_session_payload(self) -> dict[str, Any]:
        payload = self.model_dump(exclude={'transcription_model'})
        payload['input_audio_transcription'] = {'model': self.transcription_model}
        return payload


def session_update_event(settings: RealtimeSessionSettings) -> dict[str, Any]:
    return {'type': 'session.update', 'session': settings.to_session_payload()}


def user_text_item_event(text: str) -> dict[str, Any]:
    return {
        'type': 'conversation.item.create',
        'item': {
            'type': 'message',
            'role': 'user',
            'content': [{'type': 'input_text', 'text': text}],
        },
    }


def response_create_event(modalities: list[str] | None = None) -> dict[str, Any]:
    event: dict[str, Any] = {'type': 'response.create'}
    if modalities:
        event['response'] = {'modalities': list(modalities)}
    return event


def audio_append_event(audio: bytes) -> dict[str, Any]:
    return {'type': 'input_audio_buffer.append', 'audio': base64.b64encode(audio).decode('ascii')}


def audio_commit_event() -> dict[str, Any]:
    return {'type': 'input_audio_buffer.commit'}
