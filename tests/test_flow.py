from __future__ import annotations

import pytest

from concierge.pipelines.conversation import ConversationPipeline, PipelineState
from concierge.pipelines.conversation.flow import can_transition


def test_stage_map_is_ordered():
    stages = list(ConversationPipeline.describe())

    assert [stage.order for stage in stages] == list(range(1, len(stages) + 1))
    assert stages[0].name
    assert stages[-1].module


@pytest.mark.parametrize(
    ("current", "target", "allowed"),
    [
        (PipelineState.START, PipelineState.INPUT_RESOLVED, True),
        (PipelineState.USER_PERSISTED, PipelineState.VERIFIED, True),
        (PipelineState.USER_PERSISTED, PipelineState.PROMPT_BUILT, True),
        (PipelineState.CLARIFICATION_NEEDED, PipelineState.EMITTED, True),
        (PipelineState.CLARIFICATION_NEEDED, PipelineState.PROMPT_BUILT, False),
        (PipelineState.VERIFIED, PipelineState.RESEARCHED, False),
        (PipelineState.RESEARCHED, PipelineState.ERROR_EMITTED, True),
        (PipelineState.START, PipelineState.ERROR_EMITTED, False),
        (PipelineState.END, PipelineState.ERROR_EMITTED, False),
        (PipelineState.ERROR_EMITTED, PipelineState.END, True),
    ],
)
def test_transitions(current, target, allowed):
    assert can_transition(current, target) is allowed
