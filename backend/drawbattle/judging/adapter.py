from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Protocol

from .scoring import (
    normalize_scores,
    pick_winner,
    placeholder_comments,
    validate_comments,
    validate_scores,
)


logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


class JudgeResponseError(ValueError):
    pass


class VisionClient(Protocol):
    def request_judgment(self, prompt: str, submissions: dict[str, str]) -> str: ...


@dataclass
class JudgeResult:
    winner_id: str | None = None
    scores: dict[str, int] | None = None
    comments: dict[str, str] | None = None

    @classmethod
    def defaulted(cls, player_ids: list[str]) -> "JudgeResult":
        return cls(winner_id=None, scores={pid: 0 for pid in player_ids}, comments=None)


def parse_response(text: Any) -> dict:
    if not isinstance(text, str) or not text.strip():
        raise JudgeResponseError("empty judge response")

    body = text.strip()
    match = _FENCE_RE.match(body)
    if match:
        body = match.group(1)

    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise JudgeResponseError(f"judge response is not JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise JudgeResponseError("judge response is not an object")
    if not isinstance(payload.get("scores"), dict) or not isinstance(payload.get("comments"), dict):
        raise JudgeResponseError("judge response lacks scores/comments mappings")
    return payload


class JudgingAdapter:
    """Turns a prompt and a set of drawings into a bounded round result.

    ``client`` is the external vision service; ``None`` means judging is
    disabled and every call returns an empty result.
    """

    def __init__(self, client: VisionClient | None) -> None:
        self.client = client

    @property
    def available(self) -> bool:
        return self.client is not None

    def judge(self, prompt: str, submissions: dict[str, str]) -> JudgeResult:
        if self.client is None:
            logger.info("skipping AI judging, no judge configured")
            return JudgeResult()
        if not submissions:
            logger.info("skipping AI judging, no drawings submitted")
            return JudgeResult()

        player_ids = list(submissions.keys())
        logger.info("sending %d drawings to judge for prompt %r", len(player_ids), prompt)

        try:
            payload = parse_response(self.client.request_judgment(prompt, submissions))
        except JudgeResponseError as exc:
            logger.warning("rejecting judge response: %s", exc)
            return JudgeResult.defaulted(player_ids)
        except Exception:
            logger.exception("judge call failed")
            return JudgeResult.defaulted(player_ids)

        scores = validate_scores(payload["scores"], player_ids)
        if scores is None:
            logger.warning("judge scores out of contract: %r", payload["scores"])
            return JudgeResult.defaulted(player_ids)

        comments = validate_comments(payload["comments"], player_ids)
        if comments is None:
            logger.info("judge comments out of contract, using placeholders")
            comments = placeholder_comments(player_ids)

        scores = normalize_scores(scores, player_ids)
        winner_id = pick_winner(scores, player_ids)
        logger.info("judge winner=%s scores=%s", winner_id, scores)
        return JudgeResult(winner_id=winner_id, scores=scores, comments=comments)


def build_judge(config: Any) -> JudgingAdapter:
    api_key = getattr(config, "GEMINI_API_KEY", "") or ""
    if not api_key:
        logger.warning("GEMINI_API_KEY not set, AI judging disabled")
        return JudgingAdapter(None)

    from .gemini import GeminiVisionClient

    client = GeminiVisionClient(
        api_key=api_key,
        model=getattr(config, "GEMINI_MODEL", "gemini-2.5-flash"),
        timeout_sec=int(getattr(config, "JUDGE_TIMEOUT_SEC", 30)),
    )
    return JudgingAdapter(client)
