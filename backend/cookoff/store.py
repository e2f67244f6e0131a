"""Realtime session document store.

Persists each session document as JSON in the ``game_session`` table and
pushes every new snapshot to subscribers: in-process callbacks registered
with :meth:`DocumentStore.subscribe` and Socket.IO clients in the room
``session:<CODE>`` on ``/ws``.

Writes are compare-and-set on the row version. ``update_fields`` re-reads
and re-applies its field paths on conflict so sibling fields are never
clobbered; ``run_transaction`` re-runs the caller's read-modify-write
function and gives up with ``ConflictError`` after a bounded number of
attempts.
"""

import copy
import time
from collections import defaultdict
from functools import wraps
from typing import Any, Callable, Dict, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from cookoff import db, socketio
from cookoff.errors import ConflictError, NotFoundError, TransportError, ValidationError
from cookoff.models import GameSession


class _DeleteField:
    def __repr__(self):
        return 'DELETE_FIELD'


DELETE_FIELD = _DeleteField()
PARTIAL_KEYS = ('config', 'state', 'chefs', 'voting_status')


def set_path(document: Dict[str, Any], path: str, value: Any) -> None:
    """Set (or delete, with ``DELETE_FIELD``) a dot-separated path in place."""
    keys = path.split('.')
    if not all(keys):
        raise ValidationError(f'Invalid field path {path!r}')
    node = document
    for key in keys[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            if value is DELETE_FIELD:
                return
            child = {}
            node[key] = child
        node = child
    if value is DELETE_FIELD:
        node.pop(keys[-1], None)
    else:
        node[keys[-1]] = copy.deepcopy(value)


def changed_fields(old: Dict[str, Any], new: Dict[str, Any]) -> Dict[str, Any]:
    """Field paths that turn ``old`` into ``new``.

    Config, state, roster and voting status are diffed one level down so
    unrelated writers touching siblings are not overwritten; anything else is
    replaced whole.
    """
    fields = {}
    for key in set(old) | set(new):
        if key not in new:
            fields[key] = DELETE_FIELD
            continue
        before, after = old.get(key), new[key]
        if before == after:
            continue
        if key in PARTIAL_KEYS and isinstance(before, dict) and isinstance(after, dict):
            for child in set(before) | set(after):
                if child not in after:
                    fields[f'{key}.{child}'] = DELETE_FIELD
                elif before.get(child, DELETE_FIELD) != after[child]:
                    fields[f'{key}.{child}'] = after[child]
        else:
            fields[key] = after
    return fields


def _transport(func):
    """Wrap database failures into TransportError after rolling back."""
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            db.session.rollback()
            code = args[0] if args else kwargs.get('code')
            current_app.logger.error(f"[store-error] op={func.__name__} session={code} error={exc}")
            self._notify_error(code, exc)
            raise TransportError('The session store is unavailable') from exc
    return wrapper


class DocumentStore:
    def __init__(self):
        self._listeners = defaultdict(list)

    # ---- reads ----

    def _read(self, code: str) -> Optional[GameSession]:
        return GameSession.query.filter_by(code=code).populate_existing().first()

    @_transport
    def exists(self, code: str) -> bool:
        return GameSession.query.filter_by(code=code).first() is not None

    @_transport
    def get(self, code: str) -> Optional[Dict[str, Any]]:
        row = self._read(code)
        return copy.deepcopy(row.document) if row else None

    # ---- writes ----

    @_transport
    def create(self, code: str, document: Dict[str, Any]) -> Dict[str, Any]:
        if GameSession.query.filter_by(code=code).first() is not None:
            raise ValidationError(f'Session {code} already exists')
        now = time.time()
        row = GameSession(code=code, document=copy.deepcopy(document), version=1, created_at=now, updated_at=now)
        db.session.add(row)
        db.session.commit()
        self._publish(code, document, 1)
        return copy.deepcopy(document)

    def _compare_and_set(self, code: str, expected_version: int, document: Dict[str, Any]) -> bool:
        updated = GameSession.query.filter_by(code=code, version=expected_version).update(
            {'document': document, 'version': expected_version + 1, 'updated_at': time.time()},
            synchronize_session=False,
        )
        db.session.commit()
        return updated == 1

    def _apply(self, code: str, mutate: Callable[[Dict[str, Any]], Dict[str, Any]],
               attempts: int, op: str) -> Dict[str, Any]:
        for attempt in range(1, attempts + 1):
            row = self._read(code)
            if row is None:
                raise NotFoundError(f'Session {code} not found')
            version = row.version
            document = mutate(copy.deepcopy(row.document))
            if self._compare_and_set(code, version, document):
                self._publish(code, document, version + 1)
                return copy.deepcopy(document)
            current_app.logger.warning(f"[store-conflict] op={op} session={code} attempt={attempt} version={version}")
        raise ConflictError(f'Could not apply {op} to session {code} after {attempts} attempts', attempts=attempts)

    @_transport
    def update_fields(self, code: str, fields: Dict[str, Any], attempts: int = 10) -> Dict[str, Any]:
        """Partial update by dot-separated field paths."""
        def mutate(document):
            for path, value in fields.items():
                set_path(document, path, value)
            return document
        return self._apply(code, mutate, attempts, 'update_fields')

    @_transport
    def run_transaction(self, code: str, fn: Callable[[Dict[str, Any]], Dict[str, Any]],
                        attempts: int = 5) -> Dict[str, Any]:
        """Optimistic read-modify-write; ``fn`` may run more than once."""
        return self._apply(code, fn, attempts, 'transaction')

    @_transport
    def delete(self, code: str) -> None:
        GameSession.query.filter_by(code=code).delete()
        db.session.commit()
        self._publish(code, None, None)

    # ---- subscriptions ----

    def subscribe(self, code: str, on_change: Callable[[Optional[Dict[str, Any]]], None],
                  on_error: Optional[Callable[[Exception], None]] = None) -> Callable[[], None]:
        """Register for snapshots of one session; returns an unsubscribe callable."""
        entry = (on_change, on_error)
        self._listeners[code].append(entry)

        def unsubscribe():
            listeners = self._listeners.get(code, [])
            if entry in listeners:
                listeners.remove(entry)
            if not listeners:
                self._listeners.pop(code, None)
        return unsubscribe

    def _notify_error(self, code: Optional[str], exc: Exception) -> None:
        for _on_change, on_error in list(self._listeners.get(code, [])):
            if on_error:
                on_error(exc)

    def _publish(self, code: str, document: Optional[Dict[str, Any]], version: Optional[int]) -> None:
        for on_change, on_error in list(self._listeners.get(code, [])):
            try:
                on_change(copy.deepcopy(document) if document is not None else None)
            except Exception as exc:
                current_app.logger.error(f"[subscriber-error] session={code} error={exc}")
                if on_error:
                    on_error(exc)
        payload = {'session_code': code, 'version': version, 'document': document}
        socketio.emit('session_update', payload, to=f"session:{code}", namespace='/ws')


store = DocumentStore()
