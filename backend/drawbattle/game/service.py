from __future__ import annotations

import logging
import random
import time
from threading import RLock
from typing import Any, Callable

from ..judging.adapter import JudgeResult, JudgingAdapter
from ..realtime import events
from ..utils.images import is_image_data_url
from .errors import InvalidNickname, NicknameTaken, RoomNotFound
from .models import (
    MAX_DRAW_TIME_MS,
    MAX_NICKNAME_LENGTH,
    MAX_TOTAL_ROUNDS,
    MIN_DRAW_TIME_MS,
    MIN_TOTAL_ROUNDS,
    Phase,
    Room,
)
from .prompts import DEFAULT_PROMPTS, pick_prompt
from .registry import RoomRegistry, normalize_room_code
from .timers import SocketIOScheduler


logger = logging.getLogger(__name__)

Emitter = Callable[..., Any]

_SUBMISSION_PHASES = (Phase.DRAWING, Phase.COLLECTING)
# Submissions are only dropped with their player before judging starts.
_UNJUDGED_PHASES = (Phase.DRAWING, Phase.COLLECTING, Phase.REVIEWING)


def now_ms() -> int:
    return int(time.time() * 1000)


def validate_nickname(nickname: Any) -> bool:
    if not isinstance(nickname, str):
        return False
    n = nickname.strip()
    if not n or len(n) > MAX_NICKNAME_LENGTH:
        return False
    return all(ord(ch) >= 32 for ch in n)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def overall_winners(room: Room) -> list[str]:
    """Players sharing the highest cumulative score, in join order."""
    if not room.players:
        return []
    best = max(room.cumulative_scores.get(p.id, 0) for p in room.players)
    return [p.id for p in room.players if room.cumulative_scores.get(p.id, 0) == best]


class GameService:
    """Owns every room's phase machine and its timers.

    All room mutations happen under one re-entrant lock; the judge call is the
    only step performed outside it, and its result is discarded unless the
    room still carries the generation the call was issued for.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        scheduler: SocketIOScheduler,
        judge: JudgingAdapter,
        emit: Emitter,
        prompts: list[str] | None = None,
        grace_period_ms: int = 1500,
        default_draw_time_ms: int = 30_000,
        default_total_rounds: int = 3,
        rng: random.Random | None = None,
    ) -> None:
        self.registry = registry
        self.scheduler = scheduler
        self.judge = judge
        self.prompts = list(prompts or DEFAULT_PROMPTS)
        self.grace_period_ms = grace_period_ms
        self.default_draw_time_ms = min(max(default_draw_time_ms, MIN_DRAW_TIME_MS), MAX_DRAW_TIME_MS)
        self.default_total_rounds = min(max(default_total_rounds, MIN_TOTAL_ROUNDS), MAX_TOTAL_ROUNDS)
        self._emit_fn = emit
        self._rng = rng or random.Random()
        self._lock = RLock()
        self._connections: dict[str, str] = {}

    # -- lookups -----------------------------------------------------------

    def room_code_for(self, sid: str) -> str | None:
        with self._lock:
            return self._connections.get(sid)

    def room_for(self, sid: str) -> Room | None:
        with self._lock:
            code = self._connections.get(sid)
            if not code:
                return None
            room = self.registry.get_room(code)
            if room is None or room.get_player(sid) is None:
                return None
            return room

    # -- broadcasting ------------------------------------------------------

    def _emit(self, event: str, payload: Any, room_code: str) -> None:
        self._emit_fn(event, payload, to=room_code)

    def _broadcast_state(self, room: Room) -> None:
        self._emit(events.ROOM_STATE_UPDATE, events.room_public_state(room), room.code)

    def broadcast_room_state(self, room_code: str) -> None:
        with self._lock:
            room = self.registry.get_room(room_code)
            if room is None:
                return
            self._broadcast_state(room)

    def catch_up_event(self, room_code: str) -> tuple[str, dict] | None:
        """What a late joiner needs to see besides the room state."""
        with self._lock:
            room = self.registry.get_room(room_code)
            if room is None:
                return None
            if room.phase is Phase.REVIEWING:
                return events.SHOW_DRAWINGS_FOR_REVIEW, events.review_payload(room)
            if room.phase is Phase.REVEALING:
                return events.SHOW_RESULTS, events.results_payload(room)
            return None

    # -- membership --------------------------------------------------------

    def host_game(self, sid: str, nickname: Any) -> Room | None:
        if not validate_nickname(nickname):
            logger.info("invalid nickname from %s: %r", sid, nickname)
            return None

        with self._lock:
            self._leave_current(sid)
            room = self.registry.create_room(
                sid,
                nickname,
                draw_time_ms=self.default_draw_time_ms,
                total_rounds=self.default_total_rounds,
            )
            self._connections[sid] = room.code
            logger.info("[%s] %s (%s) is hosting", room.code, nickname.strip(), sid)
            return room

    def join_game(self, sid: str, room_code: Any, nickname: Any) -> Room:
        if not validate_nickname(nickname):
            logger.info("join with invalid nickname from %s: %r", sid, nickname)
            raise InvalidNickname()

        code = normalize_room_code(room_code if isinstance(room_code, str) else "")
        with self._lock:
            room = self.registry.get_room(code) if code else None
            if room is None:
                logger.info("join failed for room %r from %s: room not found", code, sid)
                raise RoomNotFound()

            if room.get_player(sid) is not None:
                return room

            if room.has_nickname(nickname):
                logger.info("[%s] join failed from %s: nickname %r taken", code, sid, nickname)
                raise NicknameTaken()

            self._leave_current(sid)
            room.add_player(sid, nickname)
            self._connections[sid] = room.code
            logger.info("[%s] %s (%s) joined", room.code, nickname.strip(), sid)
            return room

    def disconnect(self, sid: str) -> None:
        with self._lock:
            self._leave_current(sid)

    def _leave_current(self, sid: str) -> None:
        code = self._connections.pop(sid, None)
        if code is None:
            return
        room = self.registry.get_room(code)
        if room is None:
            return
        self._remove_player(room, sid)

    def _remove_player(self, room: Room, sid: str) -> None:
        was_host = room.host_id == sid
        room.players = [p for p in room.players if p.id != sid]
        room.cumulative_scores.pop(sid, None)
        if room.phase in _UNJUDGED_PHASES:
            room.round_submissions.pop(sid, None)

        if not room.players:
            logger.info("[%s] room is empty, deleting", room.code)
            self.registry.remove_room(room.code)
            return

        if was_host:
            room.host_id = room.players[0].id
            logger.info("[%s] host left, new host is %s", room.code, room.host_id)

        self._broadcast_state(room)

    # -- configuration -----------------------------------------------------

    def _host_room_in(self, sid: str, phase: Phase, action: str) -> Room | None:
        room = self.room_for(sid)
        if room is None or room.host_id != sid or room.phase is not phase:
            logger.info(
                "[%s] rejected %s by %s in phase %s",
                room.code if room else None,
                action,
                sid,
                room.phase.value if room else None,
            )
            return None
        return room

    def set_draw_time(self, sid: str, draw_time_ms: Any) -> bool:
        with self._lock:
            room = self._host_room_in(sid, Phase.WAITING, "setDrawTime")
            if room is None:
                return False
            value = _as_int(draw_time_ms)
            if value is None or not MIN_DRAW_TIME_MS <= value <= MAX_DRAW_TIME_MS:
                logger.info("[%s] invalid draw time %r", room.code, draw_time_ms)
                return False
            room.draw_time_ms = value
            self._broadcast_state(room)
            return True

    def set_total_rounds(self, sid: str, total_rounds: Any) -> bool:
        with self._lock:
            room = self._host_room_in(sid, Phase.WAITING, "setTotalRounds")
            if room is None:
                return False
            value = _as_int(total_rounds)
            if value is None or not MIN_TOTAL_ROUNDS <= value <= MAX_TOTAL_ROUNDS:
                logger.info("[%s] invalid total rounds %r", room.code, total_rounds)
                return False
            room.total_rounds = value
            self._broadcast_state(room)
            return True

    # -- round flow --------------------------------------------------------

    def start_game(self, sid: str) -> bool:
        with self._lock:
            room = self._host_room_in(sid, Phase.WAITING, "startGame")
            if room is None:
                return False
            room.current_round_index = 0
            self._start_round(room)
            return True

    def _start_round(self, room: Room) -> None:
        room.cancel_timers()
        room.generation += 1
        room.transition(Phase.DRAWING)
        room.current_round_index += 1
        room.current_prompt = pick_prompt(self.prompts, self._rng)
        room.timer_end_time = now_ms() + room.draw_time_ms
        room.clear_round()
        room.main_timer = self.scheduler.call_later(
            room.draw_time_ms, self._on_draw_timer, room.code, room.generation
        )
        logger.info(
            "[%s] round %d/%d started with prompt %r",
            room.code,
            room.current_round_index,
            room.total_rounds,
            room.current_prompt,
        )
        self._broadcast_state(room)

    def _live_room(self, code: str, generation: int, phase: Phase) -> Room | None:
        room = self.registry.get_room(code)
        if room is None or room.generation != generation or room.phase is not phase:
            logger.debug("[%s] stale callback for %s ignored", code, phase.value)
            return None
        return room

    def _on_draw_timer(self, code: str, generation: int) -> None:
        with self._lock:
            room = self._live_room(code, generation, Phase.DRAWING)
            if room is None:
                return
            room.main_timer = None
            room.transition(Phase.COLLECTING)
            room.grace_timer = self.scheduler.call_later(
                self.grace_period_ms, self._on_grace_timer, code, generation
            )
            logger.info("[%s] drawing time over, grace period started", code)

    def _on_grace_timer(self, code: str, generation: int) -> None:
        with self._lock:
            room = self._live_room(code, generation, Phase.COLLECTING)
            if room is None:
                return
            room.grace_timer = None
            room.timer_end_time = None
            room.transition(Phase.REVIEWING)
            logger.info("[%s] grace period over, %d drawings up for review", code, len(room.round_submissions))
            self._emit(events.SHOW_DRAWINGS_FOR_REVIEW, events.review_payload(room), code)
            self._broadcast_state(room)

    def submit_drawing(self, sid: str, image: Any) -> bool:
        with self._lock:
            room = self.room_for(sid)
            if room is None or room.phase not in _SUBMISSION_PHASES:
                logger.info(
                    "[%s] drawing from %s outside of allowed phase (%s)",
                    room.code if room else None,
                    sid,
                    room.phase.value if room else None,
                )
                return False
            if sid in room.round_submissions:
                logger.info("[%s] %s already submitted a drawing", room.code, sid)
                return False
            if not is_image_data_url(image):
                logger.info("[%s] invalid drawing data from %s", room.code, sid)
                return False
            room.round_submissions[sid] = image
            logger.info("[%s] received drawing from %s during %s", room.code, sid, room.phase.value)
            return True

    def request_judgment(self, sid: str) -> bool:
        # Any player may trigger judging; there is deliberately no host check.
        with self._lock:
            room = self.room_for(sid)
            if room is None or room.phase is not Phase.REVIEWING:
                logger.info("[%s] rejected requestJudgment by %s", room.code if room else None, sid)
                return False
            room.transition(Phase.JUDGING)
            room.round_scores = None
            room.round_comments = None
            room.round_winner_id = None
            room.generation += 1
            generation = room.generation
            code = room.code
            prompt = room.current_prompt or ""
            # Join order is the explicit tie-break order for scoring.
            submissions = {
                pid: room.round_submissions[pid]
                for pid in room.player_ids()
                if pid in room.round_submissions
            }
            logger.info("[%s] judging requested by %s", code, sid)
            self._broadcast_state(room)

        self.scheduler.spawn(self._run_judging, code, generation, prompt, submissions)
        return True

    def _run_judging(self, code: str, generation: int, prompt: str, submissions: dict[str, str]) -> None:
        try:
            result = self.judge.judge(prompt, submissions)
        except Exception:
            logger.exception("[%s] judging crashed", code)
            result = JudgeResult.defaulted(list(submissions))
        self._commit_judgment(code, generation, submissions, result)

    def _commit_judgment(
        self,
        code: str,
        generation: int,
        submissions: dict[str, str],
        result: JudgeResult,
    ) -> None:
        with self._lock:
            room = self._live_room(code, generation, Phase.JUDGING)
            if room is None:
                return

            if result.scores is not None:
                scores = {pid: int(result.scores.get(pid, 0)) for pid in submissions}
            else:
                scores = {pid: 0 for pid in submissions}
            room.round_scores = scores
            room.round_comments = dict(result.comments) if result.comments is not None else None
            room.round_winner_id = result.winner_id if result.winner_id in scores else None

            for pid, points in scores.items():
                if pid in room.cumulative_scores:
                    room.cumulative_scores[pid] += points

            # The prompt stays up for the results screen and late joiners; it is
            # replaced or cleared when the room leaves revealing.
            room.transition(Phase.REVEALING)
            logger.info("[%s] revealing results, winner: %s", code, room.round_winner_id or "none")
            self._emit(events.SHOW_RESULTS, events.results_payload(room), code)
            self._broadcast_state(room)

    def start_new_round(self, sid: str) -> bool:
        with self._lock:
            room = self._host_room_in(sid, Phase.REVEALING, "startNewRound")
            if room is None:
                return False
            if room.current_round_index >= room.total_rounds:
                self._finish_game(room)
            else:
                self._emit(events.CLEAR_RESULTS, None, room.code)
                self._start_round(room)
            return True

    def _finish_game(self, room: Room) -> None:
        room.cancel_timers()
        room.generation += 1
        room.transition(Phase.GAME_OVER)
        room.current_prompt = None
        room.timer_end_time = None
        winner_ids = overall_winners(room)
        logger.info("[%s] game over, winners: %s", room.code, winner_ids)
        self._emit(events.GAME_OVER, events.game_over_payload(winner_ids, room.cumulative_scores), room.code)
        self._broadcast_state(room)

    def reset_game(self, sid: str) -> bool:
        with self._lock:
            room = self._host_room_in(sid, Phase.GAME_OVER, "resetGame")
            if room is None:
                return False
            room.cancel_timers()
            room.generation += 1
            room.transition(Phase.WAITING)
            room.cumulative_scores = {pid: 0 for pid in room.player_ids()}
            room.clear_round()
            room.current_prompt = None
            room.timer_end_time = None
            room.current_round_index = 0
            logger.info("[%s] game reset", room.code)
            self._emit(events.CLEAR_RESULTS, None, room.code)
            self._broadcast_state(room)
            return True
