import pytest

from conftest import PNG, PNG_2, FakeVisionClient
from drawbattle.judging.adapter import (
    JudgeResponseError,
    JudgeResult,
    JudgingAdapter,
    build_judge,
    parse_response,
)
from drawbattle.judging.scoring import PLACEHOLDER_COMMENT


SUBMISSIONS = {"a": PNG, "b": PNG_2, "c": PNG}


def _response(scores, comments=None):
    if comments is None:
        comments = {pid: f"drawing by {pid}" for pid in scores}
    return {"scores": scores, "comments": comments}


def test_no_client_returns_empty_result():
    adapter = JudgingAdapter(None)
    assert adapter.available is False
    assert adapter.judge("Apple", SUBMISSIONS) == JudgeResult()


def test_no_submissions_skips_the_call():
    client = FakeVisionClient(response=_response({}))
    result = JudgingAdapter(client).judge("Apple", {})
    assert result == JudgeResult()
    assert client.calls == []


def test_valid_response_is_normalized_and_winner_picked():
    client = FakeVisionClient(response=_response({"a": 50, "b": 30, "c": 10}))
    result = JudgingAdapter(client).judge("Apple", SUBMISSIONS)

    assert client.calls == [("Apple", SUBMISSIONS)]
    assert result.scores == {"a": 56, "b": 33, "c": 11}
    assert result.winner_id == "a"
    assert result.comments == {"a": "drawing by a", "b": "drawing by b", "c": "drawing by c"}


def test_fenced_json_is_accepted():
    client = FakeVisionClient(
        response='```json\n{"scores": {"a": 40, "b": 60, "c": 0}, '
        '"comments": {"a": "x", "b": "y", "c": "z"}}\n```'
    )
    result = JudgingAdapter(client).judge("Apple", SUBMISSIONS)
    assert result.scores == {"a": 40, "b": 60, "c": 0}
    assert result.winner_id == "b"


def test_bad_comments_only_replace_comments():
    client = FakeVisionClient(response=_response({"a": 20, "b": 30, "c": 50}, {"a": "hi", "b": ""}))
    result = JudgingAdapter(client).judge("Apple", SUBMISSIONS)
    assert result.scores == {"a": 20, "b": 30, "c": 50}
    assert result.winner_id == "c"
    assert result.comments == {pid: PLACEHOLDER_COMMENT for pid in SUBMISSIONS}


@pytest.mark.parametrize(
    "response",
    [
        _response({"a": 50, "b": 50}),
        _response({"a": 50, "b": 30, "c": 10, "zz": 10}),
        _response({"a": 50, "b": -30, "c": 80}),
        _response({"a": 50.5, "b": 30, "c": 10}),
        "not json at all",
        "",
        '["a", "b"]',
        '{"scores": {"a": 1, "b": 2, "c": 3}}',
    ],
)
def test_out_of_contract_responses_default_to_zero(response):
    result = JudgingAdapter(FakeVisionClient(response=response)).judge("Apple", SUBMISSIONS)
    assert result.scores == {"a": 0, "b": 0, "c": 0}
    assert result.winner_id is None


def test_transport_failure_defaults_to_zero():
    client = FakeVisionClient(error=TimeoutError("deadline exceeded"))
    result = JudgingAdapter(client).judge("Apple", SUBMISSIONS)
    assert result == JudgeResult(winner_id=None, scores={"a": 0, "b": 0, "c": 0}, comments=None)


def test_all_zero_scores_have_no_winner():
    client = FakeVisionClient(response=_response({"a": 0, "b": 0, "c": 0}))
    result = JudgingAdapter(client).judge("Apple", SUBMISSIONS)
    assert result.scores == {"a": 0, "b": 0, "c": 0}
    assert result.winner_id is None


def test_parse_response_rejects_non_objects():
    with pytest.raises(JudgeResponseError):
        parse_response(None)
    with pytest.raises(JudgeResponseError):
        parse_response("42")


def test_build_judge_without_key_is_disabled():
    class NoKey:
        GEMINI_API_KEY = ""

    assert build_judge(NoKey).available is False
