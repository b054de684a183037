from __future__ import annotations

import logging

from flask import request
from flask_socketio import SocketIO, emit, join_room, leave_room

from ..game.errors import JoinError
from ..game.service import GameService
from . import events


logger = logging.getLogger(__name__)


def register_socketio_handlers(socketio: SocketIO, service: GameService) -> None:
    def _switch_socket_room(previous: str | None, current: str) -> None:
        if previous and previous != current:
            leave_room(previous)
        join_room(current)

    @socketio.on("connect")
    def on_connect(auth=None):
        logger.info("a user connected: %s", request.sid)

    @socketio.on(events.HOST_GAME)
    def host_game(nickname=None):
        previous = service.room_code_for(request.sid)
        room = service.host_game(request.sid, nickname)
        if room is None:
            return {"ok": False, "error": "invalid-nickname"}

        _switch_socket_room(previous, room.code)
        emit(events.ROOM_CREATED, room.code)
        service.broadcast_room_state(room.code)
        return {"ok": True, "roomCode": room.code}

    @socketio.on(events.JOIN_GAME)
    def join_game(data=None):
        payload = data if isinstance(data, dict) else {}
        previous = service.room_code_for(request.sid)
        try:
            room = service.join_game(request.sid, payload.get("roomCode"), payload.get("nickname"))
        except JoinError as exc:
            emit(events.JOIN_ERROR, exc.to_payload())
            return {"ok": False, "error": exc.code}

        _switch_socket_room(previous, room.code)
        emit(events.JOINED_ROOM, room.code)
        service.broadcast_room_state(room.code)

        catch_up = service.catch_up_event(room.code)
        if catch_up is not None:
            emit(*catch_up)
        return {"ok": True, "roomCode": room.code}

    @socketio.on(events.START_GAME)
    def start_game(data=None):
        return {"ok": service.start_game(request.sid)}

    @socketio.on(events.SUBMIT_DRAWING)
    def submit_drawing(drawing=None):
        return {"ok": service.submit_drawing(request.sid, drawing)}

    @socketio.on(events.REQUEST_JUDGMENT)
    def request_judgment(data=None):
        return {"ok": service.request_judgment(request.sid)}

    @socketio.on(events.START_NEW_ROUND)
    def start_new_round(data=None):
        return {"ok": service.start_new_round(request.sid)}

    @socketio.on(events.RESET_GAME)
    def reset_game(data=None):
        return {"ok": service.reset_game(request.sid)}

    @socketio.on(events.SET_DRAW_TIME)
    def set_draw_time(ms=None):
        return {"ok": service.set_draw_time(request.sid, ms)}

    @socketio.on(events.SET_TOTAL_ROUNDS)
    def set_total_rounds(n=None):
        return {"ok": service.set_total_rounds(request.sid, n)}

    @socketio.on("disconnect")
    def on_disconnect(reason=None):
        logger.info("user disconnected: %s", request.sid)
        service.disconnect(request.sid)
