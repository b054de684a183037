from __future__ import annotations

import logging
import random
import string
from threading import RLock

from .models import Room


logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def normalize_room_code(code: str | None) -> str:
    return (code or "").strip().upper()


class RoomRegistry:
    """In-memory room code -> Room store. Lives as long as the process."""

    def __init__(self, code_length: int = 4, rng: random.Random | None = None) -> None:
        self._lock = RLock()
        self._rooms: dict[str, Room] = {}
        self._code_length = code_length
        self._rng = rng or random.SystemRandom()

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        with self._lock:
            return normalize_room_code(code) in self._rooms

    def _generate_code(self) -> str:
        return "".join(self._rng.choice(ROOM_CODE_ALPHABET) for _ in range(self._code_length))

    def create_room(
        self,
        host_id: str,
        host_nickname: str,
        draw_time_ms: int = 30_000,
        total_rounds: int = 3,
    ) -> Room:
        with self._lock:
            code = self._generate_code()
            while code in self._rooms:
                logger.debug("room code collision on %s, regenerating", code)
                code = self._generate_code()

            room = Room(
                code=code,
                host_id=host_id,
                draw_time_ms=draw_time_ms,
                total_rounds=total_rounds,
            )
            room.add_player(host_id, host_nickname)
            self._rooms[code] = room
            return room

    def get_room(self, code: str | None) -> Room | None:
        with self._lock:
            return self._rooms.get(normalize_room_code(code))

    def remove_room(self, code: str) -> Room | None:
        with self._lock:
            room = self._rooms.pop(normalize_room_code(code), None)
            if room is None:
                return None
            room.cancel_timers()
            room.generation += 1
            return room

    def list_rooms(self) -> list[Room]:
        with self._lock:
            return list(self._rooms.values())
