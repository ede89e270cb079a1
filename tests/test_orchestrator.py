from __future__ import annotations

from datetime import date
from uuid import uuid4

import pytest

from concierge.domain.models import ResearchResult
from concierge.infrastructure.external.research_agent import ResearchDelegateError
from concierge.models.conversation import MessageRole
from concierge.pipelines.conversation import (
    AudioInput,
    ConversationOrchestrator,
    KnowledgeExtractor,
    LinkScreenshotEnricher,
    MissingInputError,
)
from concierge.pipelines.conversation.orchestrator import (
    PROGRESS_ANALYZING,
    PROGRESS_IMAGES,
    PROGRESS_PREPARING,
    PROGRESS_PROCESSING,
)
from concierge.services.notifications import (
    ACTION_EVENT,
    ERROR_EVENT,
    FINAL_EVENT,
    PROGRESS_EVENT,
    NotificationChannel,
)


def build_orchestrator(llm, repository, research, capture, speech_to_text, channel):
    return ConversationOrchestrator(
        llm=llm,
        repository=repository,
        research=research,
        speech_to_text=speech_to_text,
        enricher=LinkScreenshotEnricher(capture),
        knowledge=KnowledgeExtractor(llm, repository),
        notifications=channel,
        max_screenshots=2,
        today=lambda: date(2026, 10, 19),
    )


@pytest.fixture
def channel() -> NotificationChannel:
    return NotificationChannel()


@pytest.fixture
def orchestrator(llm, repository, research, capture, speech_to_text, channel):
    return build_orchestrator(llm, repository, research, capture, speech_to_text, channel)


async def open_conversation(repository, channel, subscriber, user_id=1):
    conversation_id = uuid4()
    await repository.create_conversation(conversation_id, user_id, "Sushi in Lyon")
    await channel.join(str(conversation_id), subscriber)
    return conversation_id


@pytest.mark.asyncio
async def test_first_message_runs_every_stage_in_order(
    orchestrator, repository, channel, subscriber, research, capture
):
    conversation_id = await open_conversation(repository, channel, subscriber)

    result = await orchestrator.process_request(
        conversation_id=conversation_id, utterance="I want sushi in Lyon tonight"
    )

    assert result is not None
    assert result.message == "<p>Try <a href='https://a.example/menu'>A</a></p>"
    assert [shot.original_url for shot in result.screenshots] == ["https://a.example/menu"]
    assert capture.calls == ["https://a.example/menu"]
    assert research.calls == [
        ("Category: Food\nThe user wants sushi in Lyon.", str(conversation_id))
    ]

    assert subscriber.names() == [
        PROGRESS_EVENT,
        PROGRESS_EVENT,
        ACTION_EVENT,
        ACTION_EVENT,
        PROGRESS_EVENT,
        PROGRESS_EVENT,
        FINAL_EVENT,
    ]
    assert [p["message"] for p in subscriber.payloads(PROGRESS_EVENT)] == [
        PROGRESS_PROCESSING,
        PROGRESS_ANALYZING,
        PROGRESS_PREPARING,
        PROGRESS_IMAGES,
    ]
    searching, completed = subscriber.payloads(ACTION_EVENT)
    assert searching["action"] == "searching"
    assert completed["action"] == "completed"
    assert completed["details"]["metadata"] == {"sources": 1}

    (final,) = subscriber.payloads(FINAL_EVENT)
    assert final["isAskingForMoreInformation"] is False
    assert final["screenshotsWithUrls"] == [
        {"originalUrl": "https://a.example/menu", "screenshotUrl": "https://cdn.example/1.png"}
    ]

    turns = repository.messages[conversation_id]
    assert [turn.role for turn in turns] == [
        MessageRole.USER,
        MessageRole.ASSISTANT,
        MessageRole.ASSISTANT,
    ]
    assert turns[1].content == "true"
    assert turns[1].is_asking_for_more_information is False
    assert len(turns[2].screenshots) == 1


@pytest.mark.asyncio
async def test_missing_input_raises_before_any_side_effect(
    orchestrator, repository, channel, subscriber, llm
):
    conversation_id = await open_conversation(repository, channel, subscriber)

    with pytest.raises(MissingInputError):
        await orchestrator.process_request(conversation_id=conversation_id, utterance="   ")

    assert repository.messages[conversation_id] == []
    assert subscriber.events == []
    assert llm.calls == []


@pytest.mark.asyncio
async def test_insufficient_request_asks_for_clarification(
    orchestrator, repository, channel, subscriber, llm, research
):
    llm.verification = "<p>Where would you like to go, and from where?</p>"
    conversation_id = await open_conversation(repository, channel, subscriber)

    result = await orchestrator.process_request(
        conversation_id=conversation_id, utterance="Book me a trip"
    )

    assert result is None
    assert research.calls == []
    assert "brief" not in llm.stages()
    assert subscriber.names() == [PROGRESS_EVENT, FINAL_EVENT]
    (final,) = subscriber.payloads(FINAL_EVENT)
    assert final["isAskingForMoreInformation"] is True
    assert final["message"] == llm.verification
    assert final["screenshotsWithUrls"] == []
    assert PROGRESS_ANALYZING not in [p["message"] for p in subscriber.payloads(PROGRESS_EVENT)]

    clarification = repository.messages[conversation_id][-1]
    assert clarification.role == MessageRole.ASSISTANT
    assert clarification.is_asking_for_more_information is True


@pytest.mark.asyncio
async def test_audio_is_transcribed_and_used_as_the_utterance(
    orchestrator, repository, channel, subscriber, speech_to_text
):
    conversation_id = await open_conversation(repository, channel, subscriber)

    await orchestrator.process_request(
        conversation_id=conversation_id,
        audio=AudioInput(data=b"\x00\x01\x02", mime_type="audio/webm"),
    )

    assert speech_to_text.calls == [(3, "audio/webm")]
    assert repository.messages[conversation_id][0].content == "I want sushi in Lyon tonight"


@pytest.mark.asyncio
async def test_research_without_sources_reports_zero(
    orchestrator, repository, channel, subscriber, research
):
    research.result = ResearchResult(response="Nothing found online", sources=None)
    conversation_id = await open_conversation(repository, channel, subscriber)

    await orchestrator.process_request(conversation_id=conversation_id, utterance="sushi in Lyon")

    completed = subscriber.payloads(ACTION_EVENT)[-1]
    assert completed["details"]["metadata"] == {"sources": 0}
    assert len(subscriber.payloads(FINAL_EVENT)) == 1


@pytest.mark.asyncio
async def test_research_failure_emits_error_and_no_final(
    orchestrator, repository, channel, subscriber, research
):
    research.error = ResearchDelegateError("Research agent answered 503")
    conversation_id = await open_conversation(repository, channel, subscriber)

    result = await orchestrator.process_request(
        conversation_id=conversation_id, utterance="sushi in Lyon"
    )

    assert result is None
    assert subscriber.payloads(FINAL_EVENT) == []
    (error,) = subscriber.payloads(ERROR_EVENT)
    assert error["error"] == "Research agent answered 503"
    assert subscriber.names()[-1] == ERROR_EVENT


@pytest.mark.asyncio
async def test_run_without_conversation_returns_result_silently(
    orchestrator, repository, subscriber, research
):
    result = await orchestrator.process_request(conversation_id=None, utterance="sushi in Lyon")

    assert result is not None
    assert result.message.startswith("<p>Try")
    assert subscriber.events == []
    assert research.calls[0][1] is None
    assert repository.messages == {}


@pytest.mark.asyncio
async def test_persistence_failure_does_not_stop_the_answer(
    orchestrator, repository, channel, subscriber
):
    conversation_id = await open_conversation(repository, channel, subscriber)
    repository.fail_inserts = True

    result = await orchestrator.process_request(
        conversation_id=conversation_id, utterance="sushi in Lyon"
    )

    assert result is not None
    assert len(subscriber.payloads(FINAL_EVENT)) == 1
    assert repository.messages[conversation_id] == []


@pytest.mark.asyncio
async def test_knowledge_is_learned_and_used_for_personalization(
    orchestrator, repository, channel, subscriber, llm
):
    llm.knowledge = '{"isRelevant": true, "content": "Allergy: cats", "confidence_score": 0.9}'
    llm.deduplication = '{"shouldInsert": true, "cleanContent": "Allergy: cats"}'
    conversation_id = await open_conversation(repository, channel, subscriber, user_id=9)

    await orchestrator.process_request(
        conversation_id=conversation_id,
        utterance="I'm allergic to cats, find me a hotel in Rome",
        user_id=9,
    )

    assert repository.facts[9] == ["Allergy: cats"]
    verification_prompt = next(prompt for stage, _, prompt in llm.calls if stage == "verification")
    assert verification_prompt.startswith("### WHAT WE KNOW ABOUT THE USER ###")
    assert "Allergy: cats" in verification_prompt


@pytest.mark.asyncio
async def test_knowledge_failure_is_contained(
    orchestrator, repository, channel, subscriber, llm
):
    llm.failures["knowledge"] = RuntimeError("model throttled")
    conversation_id = await open_conversation(repository, channel, subscriber, user_id=9)

    result = await orchestrator.process_request(
        conversation_id=conversation_id, utterance="sushi in Lyon", user_id=9
    )

    assert result is not None
    assert subscriber.payloads(ERROR_EVENT) == []


@pytest.mark.asyncio
async def test_follow_up_skips_verification_and_uses_history(
    orchestrator, repository, channel, subscriber, llm
):
    conversation_id = await open_conversation(repository, channel, subscriber)
    await repository.insert_message(conversation_id, MessageRole.USER, "Sushi in Lyon")
    await repository.insert_message(conversation_id, MessageRole.ASSISTANT, "<p>Two places</p>")
    history = await repository.fetch_messages(conversation_id)

    result = await orchestrator.process_new_message(
        history=history,
        new_message="Any with a terrace?",
        conversation_id=conversation_id,
    )

    assert result is not None
    assert "verification" not in llm.stages()
    brief_prompt = next(prompt for stage, _, prompt in llm.calls if stage == "brief")
    assert "User: Sushi in Lyon" in brief_prompt
    assert "Any with a terrace?" in brief_prompt
    assert [turn.role for turn in repository.messages[conversation_id]][-2:] == [
        MessageRole.USER,
        MessageRole.ASSISTANT,
    ]
    assert len(subscriber.payloads(FINAL_EVENT)) == 1


@pytest.mark.asyncio
async def test_blank_follow_up_is_rejected(orchestrator, subscriber):
    with pytest.raises(MissingInputError):
        await orchestrator.process_new_message(
            history=[], new_message="  ", conversation_id=uuid4()
        )

    assert subscriber.events == []
