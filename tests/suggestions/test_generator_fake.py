"""Tests for SuggestionGeneratorFake scenarios."""

import json

import pytest

from editorial_ai.suggestions.generator_fake import HAPPY_PATH_SUGGESTION, SuggestionGeneratorFake
from editorial_ai.suggestions.schemas import GenerationJob

pytestmark = pytest.mark.unit

JOB = GenerationJob(suggestion_id="s1", model="m1", prompt_version="v1", input_summary="S")


def test_unknown_scenario_raises():
    with pytest.raises(ValueError, match="Unknown scenario"):
        SuggestionGeneratorFake(scenario="nope")


async def test_happy_path_returns_suggestion_json():
    raw = await SuggestionGeneratorFake().generate(JOB)
    assert json.loads(raw) == HAPPY_PATH_SUGGESTION


async def test_fenced_wraps_output_in_code_fence():
    raw = await SuggestionGeneratorFake(scenario="fenced").generate(JOB)
    assert raw.startswith("```json\n")
    assert raw.endswith("\n```")


async def test_llm_failure_raises():
    fake = SuggestionGeneratorFake(scenario="llm_failure")
    with pytest.raises(RuntimeError, match="model overloaded"):
        await fake.generate(JOB)
    assert fake.jobs == [JOB]
