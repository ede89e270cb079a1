"""Conversation endpoints.

For a stage-by-stage map see
`concierge.pipelines.conversation.flow.ConversationPipeline`. The POST
endpoints only resolve the input and acknowledge the request; the pipeline
itself runs detached through the process-wide scheduler and reports back over
the `/ws` realtime channel:

1. Input resolution (audio is transcribed before responding).
2. Conversation bookkeeping (creation or ownership check, history load).
3. Scheduling of the new-conversation or follow-up flow.
"""

import logging
from typing import List, Optional
from uuid import UUID, uuid4

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status

from concierge.application.interfaces import ConversationNotFoundError
from concierge.config.settings import settings
from concierge.controllers.dependencies import CurrentUserDep, ServicesDep
from concierge.pipelines.conversation import (
    AudioInput,
    ConversationPipeline,
    MissingInputError,
    read_audio_bytes,
    resolve_content_type,
    resolve_utterance,
)
from concierge.services.transcribe import TranscriptionError
from concierge.views import (
    ConversationAccepted,
    ConversationResponse,
    ErrorResponse,
    FollowUpAccepted,
    FollowUpRequest,
    MessageResponse,
)

router = APIRouter(
    prefix="/conversations",
    tags=["conversations"],
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)

logger = logging.getLogger(__name__)

PIPELINE_STAGES = tuple(ConversationPipeline.describe())
"""Ordered pipeline metadata used for quick reference and debugging."""

_TEXT_FORM = Form(None)
_CONVERSATION_ID_FORM = Form(None)
_CONVERSATION_NEW_FORM = Form(False)
_AUDIO_FILE_UPLOAD = File(None)


async def _ensure_owner(
    services: ServicesDep, conversation_id: UUID, user_id: int
) -> None:
    try:
        owner_id = await services.repository.get_conversation_owner(conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Conversation not found",
        ) from None

    if owner_id != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Conversation belongs to another user",
        )


@router.post(
    "",
    response_model=ConversationAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_conversation(
    current_user: CurrentUserDep,
    services: ServicesDep,
    text: Optional[str] = _TEXT_FORM,
    conversation_id: Optional[UUID] = _CONVERSATION_ID_FORM,
    conversation_new: bool = _CONVERSATION_NEW_FORM,
    audio_file: Optional[UploadFile] = _AUDIO_FILE_UPLOAD,
) -> ConversationAccepted:
    """Resolve the first message of a conversation and schedule the pipeline."""

    audio: Optional[AudioInput] = None
    if audio_file is not None and audio_file.filename:
        content_type = resolve_content_type(audio_file)
        audio = AudioInput(data=await read_audio_bytes(audio_file), mime_type=content_type)

    try:
        utterance = await resolve_utterance(text, audio, services.speech_to_text)
    except MissingInputError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from None
    except TranscriptionError as exc:
        logger.error("Transcription failed for user=%s: %s", current_user.id, exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Audio transcription failed",
        ) from exc

    generated = conversation_id is None
    resolved_id = conversation_id or uuid4()
    if generated or conversation_new:
        await services.repository.create_conversation(resolved_id, current_user.id, utterance)
        logger.info("Created conversation %s for user=%s", resolved_id, current_user.id)
    else:
        await _ensure_owner(services, resolved_id, current_user.id)

    user_id = current_user.id
    services.scheduler.submit(
        str(resolved_id),
        lambda: services.orchestrator.process_request(
            conversation_id=resolved_id,
            utterance=utterance,
            user_id=user_id,
        ),
        delay=settings.pipeline.new_conversation_delay_seconds,
    )

    return ConversationAccepted(
        conversationId=resolved_id,
        initialMessage=utterance,
        userId=user_id,
    )


@router.post(
    "/{conversation_id}/messages",
    response_model=FollowUpAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def send_message(
    conversation_id: UUID,
    payload: FollowUpRequest,
    current_user: CurrentUserDep,
    services: ServicesDep,
) -> FollowUpAccepted:
    """Schedule the follow-up flow for an existing conversation."""

    await _ensure_owner(services, conversation_id, current_user.id)
    user_id = current_user.id

    async def run_follow_up():
        # History is read once earlier runs on this conversation have stored their turns.
        history = await services.repository.fetch_messages(conversation_id)
        return await services.orchestrator.process_new_message(
            history=history,
            new_message=payload.message,
            conversation_id=conversation_id,
            user_id=user_id,
        )

    services.scheduler.submit(
        str(conversation_id),
        run_follow_up,
        delay=settings.pipeline.follow_up_delay_seconds,
    )

    return FollowUpAccepted(
        conversationId=conversation_id,
        message=payload.message,
        userId=user_id,
    )


@router.get("", response_model=List[ConversationResponse])
async def list_conversations(
    current_user: CurrentUserDep,
    services: ServicesDep,
) -> List[ConversationResponse]:
    summaries = await services.repository.list_conversations(current_user.id)
    return [ConversationResponse.from_summary(summary) for summary in summaries]


@router.get("/{conversation_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    conversation_id: UUID,
    current_user: CurrentUserDep,
    services: ServicesDep,
) -> List[MessageResponse]:
    """Ordered history, used by clients to replay what they missed."""

    await _ensure_owner(services, conversation_id, current_user.id)
    turns = await services.repository.fetch_messages(conversation_id)
    return [MessageResponse.from_turn(turn) for turn in turns]
