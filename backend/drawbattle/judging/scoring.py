from __future__ import annotations

import math
from typing import Any


TARGET_TOTAL = 100
PLACEHOLDER_COMMENT = "The judge had nothing to say about this one."


def _is_score(value: Any) -> bool:
    # bool is an int subclass; true/false from the model is not a score.
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def validate_scores(raw: Any, player_ids: list[str]) -> dict[str, int] | None:
    """Returns scores keyed in player_ids order, or None if out of contract.

    Exactly one non-negative integer per player, no extras.
    """
    if not isinstance(raw, dict):
        return None
    if set(raw.keys()) != set(player_ids) or len(raw) != len(player_ids):
        return None
    if not all(_is_score(raw[pid]) for pid in player_ids):
        return None
    return {pid: raw[pid] for pid in player_ids}


def validate_comments(raw: Any, player_ids: list[str]) -> dict[str, str] | None:
    if not isinstance(raw, dict):
        return None
    if set(raw.keys()) != set(player_ids):
        return None
    comments: dict[str, str] = {}
    for pid in player_ids:
        text = raw[pid]
        if not isinstance(text, str) or not text.strip():
            return None
        comments[pid] = text.strip()
    return comments


def placeholder_comments(player_ids: list[str]) -> dict[str, str]:
    return {pid: PLACEHOLDER_COMMENT for pid in player_ids}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _first_max(scores: dict[str, int], player_ids: list[str]) -> str | None:
    best_id = None
    best = None
    for pid in player_ids:
        if best is None or scores[pid] > best:
            best_id = pid
            best = scores[pid]
    return best_id


def normalize_scores(scores: dict[str, int], player_ids: list[str]) -> dict[str, int]:
    """Rescales scores so they sum to exactly 100.

    Rounding drift goes to the player holding the highest normalized score
    (first in player_ids order on ties). Scores that already sum to 100 are
    returned unchanged; an all-zero set stays all-zero.
    """
    total = sum(scores[pid] for pid in player_ids)
    if total == TARGET_TOTAL or total == 0:
        return {pid: scores[pid] for pid in player_ids}

    normalized = {pid: _round_half_up(scores[pid] * TARGET_TOTAL / total) for pid in player_ids}
    remainder = TARGET_TOTAL - sum(normalized.values())
    if remainder:
        top = _first_max(normalized, player_ids)
        normalized[top] += remainder
    return normalized


def pick_winner(scores: dict[str, int] | None, player_ids: list[str]) -> str | None:
    if not scores:
        return None
    top = _first_max(scores, [pid for pid in player_ids if pid in scores])
    if top is None or scores[top] <= 0:
        return None
    return top
