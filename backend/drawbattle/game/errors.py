from __future__ import annotations


class GameError(Exception):
    code = "game-error"
    message = "Game error."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_payload(self) -> dict:
        return {"error": self.code, "message": self.message}


class JoinError(GameError):
    code = "join-error"


class RoomNotFound(JoinError):
    code = "room-not-found"
    message = "Room not found."


class InvalidNickname(JoinError):
    code = "invalid-nickname"
    message = "Invalid nickname."


class NicknameTaken(JoinError):
    code = "nickname-taken"
    message = "Nickname is already taken in this room."


class InvalidTransition(GameError):
    code = "invalid-transition"

    def __init__(self, source: str, target: str) -> None:
        super().__init__(f"illegal phase transition {source} -> {target}")
        self.source = source
        self.target = target
