import asyncio
import json

import pytest
from openai import OpenAIError

from conftest import RecordingCompletionsClient

from starone.api.schemas import AppIdea
from starone.config import Settings
from starone.core.errors import GenerationFailure, ParseFailure
from starone.pipelines.insights import InsightPipeline


def full_payload(**overrides):
    payload = {
        "top_complaints": ["Crashes on launch", "Too many ads"],
        "feature_requests": ["Offline mode"],
        "sentiment_summary": "Users are frustrated by stability issues.",
        "app_ideas": [
            {
                "name": "SteadyNotes",
                "pain_point": "Crashes lose work",
                "differentiation": "Local-first storage",
                "value_proposition": "Never lose a note.",
            },
            "An ad-free alternative",
        ],
    }
    payload.update(overrides)
    return payload


def make_pipeline(settings, responses):
    client = RecordingCompletionsClient(responses)
    return InsightPipeline(settings=settings, client=client), client


def test_prompt_is_deterministic_and_embeds_the_corpus(settings):
    pipeline, _ = make_pipeline(settings, [])

    first = pipeline.build_prompt("slow\n\n---\n\nbuggy")
    second = pipeline.build_prompt("slow\n\n---\n\nbuggy")

    assert first == second
    assert first.endswith("Reviews to analyze:\nslow\n\n---\n\nbuggy")
    assert '"top_complaints"' in first
    assert '"value_proposition"' in first
    assert "5-7 items per category" in first


def test_generation_uses_deterministic_decoding(settings):
    pipeline, client = make_pipeline(settings, [json.dumps(full_payload())])

    asyncio.run(pipeline.analyze("slow"))

    call = client.calls[0]
    assert call["temperature"] == 0
    assert call["top_p"] == 1
    assert call["model"] == settings.openai_model
    assert call["messages"][1]["content"].endswith("slow")
    assert pipeline.tokens_used == 100


def test_fenced_output_is_parsed_into_insights(settings):
    text = "Here you go:\n```json\n" + json.dumps(full_payload()) + "\n```"
    pipeline, _ = make_pipeline(settings, [text])

    result = asyncio.run(pipeline.analyze("slow"))

    assert result.top_complaints == ["Crashes on launch", "Too many ads"]
    assert result.feature_requests == ["Offline mode"]
    assert result.sentiment_summary == "Users are frustrated by stability issues."
    assert isinstance(result.app_ideas[0], AppIdea)
    assert result.app_ideas[0].name == "SteadyNotes"
    assert result.app_ideas[1] == "An ad-free alternative"


def test_partial_output_defaults_missing_fields(settings):
    pipeline, _ = make_pipeline(settings, ['{"top_complaints": ["Crashes"]}'])

    result = asyncio.run(pipeline.analyze("slow"))

    assert result.top_complaints == ["Crashes"]
    assert result.feature_requests == []
    assert result.app_ideas == []
    assert result.sentiment_summary == "Analysis completed"


def test_idea_records_keep_all_information(settings):
    ideas = [
        {"name": "Partial", "pain_point": None, "target_audience": "students"},
        42,
        "  ",
        None,
    ]
    pipeline, _ = make_pipeline(settings, [json.dumps(full_payload(app_ideas=ideas))])

    result = asyncio.run(pipeline.analyze("slow"))

    partial, number = result.app_ideas
    assert partial.name == "Partial"
    assert partial.pain_point == ""
    assert partial.differentiation == ""
    assert partial.model_dump()["target_audience"] == "students"
    assert number == "42"


def test_categories_are_capped(settings):
    many = [f"complaint {i}" for i in range(12)]
    pipeline, _ = make_pipeline(settings, [json.dumps(full_payload(top_complaints=many))])

    result = asyncio.run(pipeline.analyze("slow"))

    assert result.top_complaints == many[:7]


def test_wrongly_typed_fields_fall_back_to_defaults(settings):
    payload = full_payload(top_complaints="just one string", sentiment_summary=["not", "a", "string"])
    pipeline, _ = make_pipeline(settings, [json.dumps(payload)])

    result = asyncio.run(pipeline.analyze("slow"))

    assert result.top_complaints == []
    assert result.sentiment_summary == "Analysis completed"


def test_unreachable_model_is_a_generation_failure(settings):
    pipeline, _ = make_pipeline(settings, [OpenAIError("connection refused")])

    with pytest.raises(GenerationFailure):
        asyncio.run(pipeline.analyze("slow"))


def test_output_without_json_is_a_parse_failure(settings):
    pipeline, _ = make_pipeline(settings, ["Sorry, I cannot help with that."])

    with pytest.raises(ParseFailure):
        asyncio.run(pipeline.analyze("slow"))


def test_pipeline_without_api_key_is_not_configured():
    pipeline = InsightPipeline(settings=Settings(_env_file=None, openai_api_key=""))

    assert not pipeline.is_configured
    with pytest.raises(GenerationFailure):
        asyncio.run(pipeline.analyze("slow"))
