from __future__ import annotations

from ..game.models import Room

# Client -> server
HOST_GAME = "hostGame"
JOIN_GAME = "joinGame"
START_GAME = "startGame"
SUBMIT_DRAWING = "submitDrawing"
REQUEST_JUDGMENT = "requestJudgment"
START_NEW_ROUND = "startNewRound"
RESET_GAME = "resetGame"
SET_DRAW_TIME = "setDrawTime"
SET_TOTAL_ROUNDS = "setTotalRounds"

# Server -> client
ROOM_CREATED = "roomCreated"
JOINED_ROOM = "joinedRoom"
JOIN_ERROR = "joinError"
ROOM_STATE_UPDATE = "roomStateUpdate"
SHOW_DRAWINGS_FOR_REVIEW = "showDrawingsForReview"
SHOW_RESULTS = "showResults"
GAME_OVER = "gameOver"
CLEAR_RESULTS = "clearResults"


def room_public_state(room: Room) -> dict:
    # Submissions and timer handles never leave the server in this snapshot.
    return {
        "roomCode": room.code,
        "players": [{"id": p.id, "nickname": p.nickname} for p in room.players],
        "hostId": room.host_id,
        "gamePhase": room.phase.client_value(),
        "currentPrompt": room.current_prompt,
        "timerEndTime": room.timer_end_time,
        "drawTimeMs": room.draw_time_ms,
        "totalRounds": room.total_rounds,
        "currentRoundIndex": room.current_round_index,
        "cumulativeScores": dict(room.cumulative_scores),
    }


def review_payload(room: Room) -> dict:
    return {
        "drawings": dict(room.round_submissions),
        "prompt": room.current_prompt,
    }


def results_payload(room: Room) -> dict:
    return {
        "drawings": dict(room.round_submissions),
        "winnerId": room.round_winner_id,
        "scores": dict(room.round_scores) if room.round_scores is not None else None,
        "comments": dict(room.round_comments) if room.round_comments is not None else None,
        "prompt": room.current_prompt,
    }


def game_over_payload(winner_ids: list[str], final_scores: dict[str, int]) -> dict:
    return {
        "winnerIds": list(winner_ids),
        "isTie": len(winner_ids) > 1,
        "finalScores": dict(final_scores),
    }
