from flask_socketio import join_room, leave_room, emit
from flask import current_app, request
from flask_login import current_user
from cookoff import socketio
from cookoff.store import store
from cookoff.services.games.session_code import normalize_session_code
from typing import Dict, Any, Optional
import time


# ---- Presence bookkeeping ----

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}
_last_seen: Dict[str, float] = {}


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _room(session_code: str) -> str:
    return f"session:{session_code}"


def _presence_timeout() -> float:
    try:
        return float(current_app.config.get('PRESENCE_TIMEOUT_SEC', 60))
    except RuntimeError:
        # Outside an application context
        return 60.0


def active_viewer_count(session_code: str, now: Optional[float] = None) -> int:
    """Connections joined to a session that sent a heartbeat recently."""
    now = time.time() if now is None else now
    timeout = _presence_timeout()
    return sum(
        1 for sid, ctx in _sid_to_ctx.items()
        if ctx.get('session_code') == session_code and now - _last_seen.get(sid, 0) < timeout
    )


def _broadcast_presence(session_code: str) -> None:
    socketio.emit(
        'presence',
        {'session_code': session_code, 'active_viewers': active_viewer_count(session_code)},
        to=_room(session_code),
        namespace='/ws',
    )


def _display_name() -> Optional[str]:
    if current_user.is_authenticated:
        return current_user.display_name
    return None


def _forget(sid: str) -> Optional[str]:
    ctx = _sid_to_ctx.pop(sid, None)
    _last_seen.pop(sid, None)
    return ctx.get('session_code') if ctx else None


# ---- Handlers ----

def handle_connect():
    emit('connected', {
        'message': 'Connected to /ws',
        'heartbeat_interval': current_app.config.get('HEARTBEAT_INTERVAL_SEC', 30),
    })


def handle_disconnect(reason=None):
    session_code = _forget(_get_sid())
    if session_code:
        _broadcast_presence(session_code)


def handle_join_session(data):
    session_code = normalize_session_code((data or {}).get('session_code'))
    if not session_code:
        emit('error', {'message': 'session_code is required'})
        return
    document = store.get(session_code)
    if document is None:
        emit('error', {'message': 'Session not found', 'session_code': session_code})
        return

    sid = _get_sid()
    previous = _sid_to_ctx.get(sid, {}).get('session_code')
    if previous and previous != session_code:
        leave_room(_room(previous))

    join_room(_room(session_code))
    _sid_to_ctx[sid] = {'session_code': session_code, 'display_name': _display_name()}
    _last_seen[sid] = time.time()
    emit('joined', {'room': _room(session_code)})
    # Initial snapshot, like any other subscriber gets on subscribe
    emit('session_update', {'session_code': session_code, 'version': None, 'document': document})
    _broadcast_presence(session_code)
    if previous and previous != session_code:
        _broadcast_presence(previous)


def handle_leave_session(data):
    session_code = normalize_session_code((data or {}).get('session_code'))
    if not session_code:
        emit('error', {'message': 'session_code is required'})
        return
    leave_room(_room(session_code))
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx and ctx.get('session_code') == session_code:
        _forget(_get_sid())
    emit('left', {'room': _room(session_code)})
    _broadcast_presence(session_code)


def handle_heartbeat(data):
    sid = _get_sid()
    ctx = _sid_to_ctx.get(sid)
    if not ctx:
        emit('error', {'message': 'Join a session before sending heartbeats'})
        return
    _last_seen[sid] = time.time()
    emit('heartbeat_ack', {
        'session_code': ctx['session_code'],
        'active_viewers': active_viewer_count(ctx['session_code']),
    })


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_session': handle_join_session,
        'leave_session': handle_leave_session,
        'heartbeat': handle_heartbeat,
    }
    for event, handler in handlers.items():
        socketio.on_event(event, handler, namespace='/ws')
        if testing:
            socketio.on_event(event, handler, namespace='/')
