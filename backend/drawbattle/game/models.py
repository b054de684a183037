from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .errors import InvalidTransition
from .timers import TimerHandle


MIN_DRAW_TIME_MS = 15_000
MAX_DRAW_TIME_MS = 120_000
MIN_TOTAL_ROUNDS = 1
MAX_TOTAL_ROUNDS = 10
MAX_NICKNAME_LENGTH = 15


class Phase(str, Enum):
    WAITING = "waiting"
    DRAWING = "drawing"
    COLLECTING = "collecting"
    REVIEWING = "reviewing"
    JUDGING = "judging"
    REVEALING = "revealing"
    GAME_OVER = "gameOver"

    def client_value(self) -> str:
        # The grace period is invisible to clients.
        if self is Phase.COLLECTING:
            return Phase.DRAWING.value
        return self.value


TRANSITIONS: dict[Phase, frozenset[Phase]] = {
    Phase.WAITING: frozenset({Phase.DRAWING}),
    Phase.DRAWING: frozenset({Phase.COLLECTING}),
    Phase.COLLECTING: frozenset({Phase.REVIEWING}),
    Phase.REVIEWING: frozenset({Phase.JUDGING}),
    Phase.JUDGING: frozenset({Phase.REVEALING}),
    Phase.REVEALING: frozenset({Phase.DRAWING, Phase.GAME_OVER}),
    Phase.GAME_OVER: frozenset({Phase.WAITING}),
}


@dataclass
class Player:
    id: str
    nickname: str


@dataclass
class Room:
    code: str
    host_id: str
    phase: Phase = Phase.WAITING
    players: list[Player] = field(default_factory=list)
    current_prompt: str | None = None
    timer_end_time: int | None = None
    draw_time_ms: int = 30_000
    total_rounds: int = 3
    current_round_index: int = 0
    round_submissions: dict[str, str] = field(default_factory=dict)
    round_scores: dict[str, int] | None = None
    round_comments: dict[str, str] | None = None
    round_winner_id: str | None = None
    cumulative_scores: dict[str, int] = field(default_factory=dict)
    # Bumped whenever pending timers or an in-flight judgment must be ignored.
    generation: int = 0
    main_timer: TimerHandle | None = None
    grace_timer: TimerHandle | None = None

    def transition(self, target: Phase) -> None:
        if target not in TRANSITIONS[self.phase]:
            raise InvalidTransition(self.phase.value, target.value)
        self.phase = target

    def player_ids(self) -> list[str]:
        return [p.id for p in self.players]

    def get_player(self, player_id: str) -> Player | None:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def has_nickname(self, nickname: str) -> bool:
        wanted = nickname.strip().lower()
        return any(p.nickname.lower() == wanted for p in self.players)

    def add_player(self, player_id: str, nickname: str) -> Player:
        player = Player(id=player_id, nickname=nickname.strip())
        self.players.append(player)
        self.cumulative_scores[player_id] = 0
        return player

    def cancel_timers(self) -> None:
        if self.main_timer is not None:
            self.main_timer.cancel()
            self.main_timer = None
        if self.grace_timer is not None:
            self.grace_timer.cancel()
            self.grace_timer = None

    def clear_round(self) -> None:
        self.round_submissions = {}
        self.round_scores = None
        self.round_comments = None
        self.round_winner_id = None
