import random
import time
from typing import Any, Callable, Dict, Optional

from cookoff import socketio
from cookoff.errors import CookoffError, InvalidTransitionError, ValidationError
from cookoff.store import changed_fields, set_path, store
from .documents import Phase, phase_of
from .phases import countdown_view, reveal_results
from .roster import shuffle_pass


# session code -> entry of the countdown that is allowed to fire
_countdowns: Dict[str, Dict[str, float]] = {}


def schedule_results_countdown(app, session_code: str) -> None:
    """Reveal results once the visible countdown has run out.

    - No-ops in TESTING mode unless ENABLE_SCHEDULER_IN_TESTS is set
    - A newer countdown for the same session supersedes a pending one
    - Emits a ``results_countdown`` tick every second for displays
    - Aborts if the session left RESULTS_COUNTDOWN in the meantime
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        return

    duration = int(app.config.get('RESULTS_COUNTDOWN_SEC', 10))
    flash_at = int(app.config.get('RESULTS_FLASH_SEC', 5))
    entry = {'deadline': time.time() + duration}
    if session_code in _countdowns:
        app.logger.info(f"[countdown-reset] session={session_code} superseding pending countdown")
    _countdowns[session_code] = entry
    app.logger.info(f"[countdown-set] session={session_code} duration={duration}s deadline={entry['deadline']}")

    def _current(code: str) -> bool:
        return _countdowns.get(code) is entry

    def _worker(code: str, delay: int):
        try:
            elapsed = 0
            while elapsed < delay:
                if not _current(code):
                    app.logger.info(f"[countdown-abort] session={code} superseded")
                    return
                socketio.emit('results_countdown', {'session_code': code, **countdown_view(elapsed, delay, flash_at)},
                              to=f"session:{code}", namespace='/ws')
                time.sleep(1)
                elapsed += 1
            if not _current(code):
                app.logger.info(f"[countdown-abort] session={code} superseded")
                return
            with app.app_context():
                document = store.get(code)
                if document is None or phase_of(document) != Phase.RESULTS_COUNTDOWN:
                    app.logger.info(f"[countdown-abort] session={code} phase changed")
                    return
                store.update_fields(code, changed_fields(document, reveal_results(document)))
                app.logger.info(f"[countdown-fire] session={code} phase={Phase.RESULTS.value}")
        except CookoffError as exc:
            app.logger.error(f"[countdown-error] session={code} code={exc.code} message={exc.message}")
        finally:
            if _current(code):
                _countdowns.pop(code, None)

    if app.config.get('TESTING'):
        _worker(session_code, duration)
    else:
        socketio.start_background_task(_worker, session_code, duration)


def _shuffle_orders(document: Dict[str, Any], rng: random.Random) -> Dict[str, Any]:
    shuffled = shuffle_pass(document, rng)
    for chef_id, chef in shuffled['chefs'].items():
        set_path(document, f'chefs.{chef_id}.order', chef['order'])
    return document


def run_shuffle(app, session_code: str, iterations: int = 5, delay_ms: int = 500,
                rng: Optional[random.Random] = None,
                sleep: Callable[[float], None] = time.sleep) -> None:
    """Publish each pass of a visible chef shuffle, ``delay_ms`` apart.

    Every pass re-reads the session and only rewrites chef orders, so a
    game started mid-shuffle stops it instead of being overwritten.
    """
    rng = rng or random.Random()
    with app.app_context():
        try:
            if iterations <= 0:
                raise ValidationError('iterations must be positive')
            if not store.exists(session_code):
                return
            for index in range(iterations):
                store.run_transaction(session_code, lambda doc: _shuffle_orders(doc, rng))
                if index < iterations - 1:
                    sleep(delay_ms / 1000.0)
            app.logger.info(f"[shuffle] session={session_code} passes={iterations}")
        except InvalidTransitionError as exc:
            app.logger.info(f"[shuffle-abort] session={session_code} phase={exc.to_dict().get('phase')}")
        except CookoffError as exc:
            app.logger.error(f"[shuffle-error] session={session_code} code={exc.code} message={exc.message}")
