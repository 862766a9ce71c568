# scripts/testing/test_ensemble_council.py
"""
Aggregation rules of the three-persona ensemble and the persona call path.
"""
import asyncio

import httpx
import numpy as np
import pytest

from rhythmiq.core.ensemble_council import (
    EnsembleCouncil,
    IMAGE_PREVIEW_CHARS,
    PERSONAS,
    aggregate_opinions,
)
from rhythmiq.lib.errors import GatewayError, OpinionParseError

from conftest import FakeGateway, completion, make_opinion, opinion_json, persona_of


@pytest.mark.parametrize("abnormal_votes, expected", [
    (0, "normal"),
    (1, "normal"),
    (2, "abnormal"),
    (3, "abnormal"),
])
def test_status_follows_majority_vote(abnormal_votes, expected):
    statuses = ["abnormal"] * abnormal_votes + ["normal"] * (3 - abnormal_votes)
    result = aggregate_opinions([make_opinion(status=s) for s in statuses])

    assert result.diagnosis.status == expected
    assert result.diagnosis.ensemble_agreement == (
        f"3 models analyzed - {abnormal_votes} detected abnormalities"
    )


def test_numeric_fields_are_rounded_means():
    result = aggregate_opinions([
        make_opinion(heart_rate=60, pr=150, qrs=80, qt=390),
        make_opinion(heart_rate=72, pr=160, qrs=91, qt=400),
        make_opinion(heart_rate=78, pr=171, qrs=92, qt=411),
    ])

    assert result.heart_rate == 70
    assert result.pr_interval == 160
    assert result.qrs_duration == 88  # 87.67
    assert result.qt_interval == 400


def test_halves_round_up():
    result = aggregate_opinions([
        make_opinion(heart_rate=70.5),
        make_opinion(heart_rate=70.5),
        make_opinion(heart_rate=70.5),
    ])
    assert result.heart_rate == 71


def test_missing_confidence_counts_as_85():
    result = aggregate_opinions([
        make_opinion(confidence=None),
        make_opinion(confidence=70),
        make_opinion(confidence=91),
    ])
    # (85 + 70 + 91) / 3 = 82
    assert result.diagnosis.confidence == 82


def test_conditions_are_unique_and_skip_normal():
    result = aggregate_opinions([
        make_opinion(condition="Normal"),
        make_opinion(condition="AFib", status="abnormal"),
        make_opinion(condition="AFib", status="abnormal"),
    ])
    assert result.diagnosis.condition == "AFib"


def test_distinct_conditions_join_in_first_seen_order():
    result = aggregate_opinions([
        make_opinion(condition="Flutter"),
        make_opinion(condition=None),
        make_opinion(condition="AFib"),
    ])
    assert result.diagnosis.condition == "Flutter, AFib"


def test_condition_absent_when_all_normal():
    result = aggregate_opinions([make_opinion(condition="Normal") for _ in range(3)])
    assert result.diagnosis.condition is None


def test_longest_details_chosen_verbatim():
    d40, d55, d30 = "a" * 40, "b" * 55, "c" * 30
    result = aggregate_opinions([
        make_opinion(details=d40),
        make_opinion(details=d55),
        make_opinion(details=d30),
    ])
    assert result.diagnosis.details == d55


def test_details_tie_goes_to_first_seen():
    result = aggregate_opinions([
        make_opinion(details="first!"),
        make_opinion(details="second"),
        make_opinion(details="short"),
    ])
    assert result.diagnosis.details == "first!"


def test_st_segment_taken_from_first_opinion():
    result = aggregate_opinions([
        make_opinion(st="Depressed 1 mm in V5"),
        make_opinion(st="Isoelectric"),
        make_opinion(st="Isoelectric"),
    ])
    assert result.st_segment == "Depressed 1 mm in V5"


def test_aggregate_requires_opinions():
    with pytest.raises(ValueError):
        aggregate_opinions([])


# --- PERSONA CALLS ---
def test_run_ensemble_consults_each_persona_once():
    gateway = FakeGateway(lambda request: completion(f"Here you go:\n{opinion_json()}"))
    council = EnsembleCouncil(gateway.client(), model="test-model", rng=np.random.default_rng(1))
    image = "data:image/png;base64," + "A" * 500

    result = asyncio.run(council.run_ensemble_analysis(image))

    assert sorted(persona_of(r) for r in gateway.requests) == sorted(PERSONAS)
    for payload in gateway.payloads:
        assert payload["model"] == "test-model"
        assert "Return ONLY valid JSON" in payload["messages"][0]["content"]
        user_content = payload["messages"][1]["content"]
        assert image[:IMAGE_PREVIEW_CHARS] + "..." in user_content
        assert image[:IMAGE_PREVIEW_CHARS + 1] not in user_content
    for request in gateway.requests:
        assert request.headers["authorization"] == "Bearer test-key"

    assert len(result.waveform_data) == 200
    assert result.heart_rate == 72


def test_one_unparseable_persona_fails_the_whole_run():
    def handler(request):
        if persona_of(request) == "transformer":
            return completion("I cannot read this image, sorry.")
        return completion(opinion_json())

    council = EnsembleCouncil(FakeGateway(handler).client(), model="m")
    with pytest.raises(OpinionParseError) as excinfo:
        asyncio.run(council.run_ensemble_analysis("data:image/png;base64,AAAA"))

    assert str(excinfo.value) == "transformer parsing failed"


def test_wrong_shape_counts_as_parse_failure():
    def handler(request):
        if persona_of(request) == "cnn":
            return completion('{"heartRate": "fast", "diagnosis": {}}')
        return completion(opinion_json())

    council = EnsembleCouncil(FakeGateway(handler).client(), model="m")
    with pytest.raises(OpinionParseError, match="cnn parsing failed"):
        asyncio.run(council.run_ensemble_analysis("data:image/png;base64,AAAA"))


def test_upstream_error_names_the_persona():
    def handler(request):
        if persona_of(request) == "bilstm":
            return httpx.Response(503, text="upstream overloaded")
        return completion(opinion_json())

    council = EnsembleCouncil(FakeGateway(handler).client(), model="m")
    with pytest.raises(GatewayError) as excinfo:
        asyncio.run(council.run_ensemble_analysis("data:image/png;base64,AAAA"))

    assert str(excinfo.value) == "bilstm analysis failed: 503"
    assert excinfo.value.status_code == 500


def test_capitalised_status_is_accepted():
    content = opinion_json(status="normal").replace('"normal"', '"Abnormal"')
    gateway = FakeGateway(lambda request: completion(content))
    council = EnsembleCouncil(gateway.client(), model="m")

    result = asyncio.run(council.run_ensemble_analysis("data:image/png;base64,AAAA"))
    assert result.diagnosis.status == "abnormal"
