"""Phase state machine for a cook-off session.

Every transition is a pure function ``(document, ...) -> new_document``
that raises ``InvalidTransitionError`` when the session is in the wrong
phase, checked against ``TRANSITIONS``. Re-issuing a transition that already
happened returns the document unchanged instead of failing.

    LOBBY -> SETUP (open setup)
    SETUP -> ROUND_READY -> ROUND_ACTIVE -> ROUND_COMPLETE -> VOTING
    VOTING -> ROUND_READY (more chefs waiting) | RESULTS_COUNTDOWN
    RESULTS_COUNTDOWN -> RESULTS
    ROUND_READY | ROUND_ACTIVE | ROUND_COMPLETE -> ROUND_READY (restart round)
    anything but LOBBY/SETUP -> SETUP (restart game)
"""

import math
from typing import Any, Dict, Optional

from cookoff.errors import InvalidTransitionError
from .documents import Phase, chefs_only, clone, phase_of, round_key, validate_config
from .rounds import eligible_voters, has_more_rounds, next_round_chefs
from .voting import is_round_voting_complete


TRANSITIONS = {
    Phase.LOBBY: {Phase.SETUP},
    Phase.SETUP: {Phase.ROUND_READY},
    Phase.ROUND_READY: {Phase.ROUND_ACTIVE, Phase.ROUND_READY, Phase.SETUP},
    Phase.ROUND_ACTIVE: {Phase.ROUND_COMPLETE, Phase.ROUND_READY, Phase.SETUP},
    Phase.ROUND_COMPLETE: {Phase.VOTING, Phase.ROUND_READY, Phase.SETUP},
    Phase.VOTING: {Phase.ROUND_READY, Phase.RESULTS_COUNTDOWN, Phase.SETUP},
    Phase.RESULTS_COUNTDOWN: {Phase.RESULTS, Phase.SETUP},
    Phase.RESULTS: {Phase.SETUP},
}

RESTARTABLE_ROUND_PHASES = (Phase.ROUND_READY, Phase.ROUND_ACTIVE, Phase.ROUND_COMPLETE)
CONFIG_PHASES = (Phase.LOBBY, Phase.SETUP)

TIMER_WARNING_RATIO = 0.25
TIMER_CRITICAL_RATIO = 0.05


def can_transition(current: Phase, target: Phase) -> bool:
    return target in TRANSITIONS.get(current, set())


def _require(document: Dict[str, Any], target: Optional[Phase], *allowed: Phase) -> Phase:
    """Current phase, if it is one of ``allowed`` and may move to ``target``."""
    phase = phase_of(document)
    if phase not in allowed or (target is not None and not can_transition(phase, target)):
        names = ', '.join(p.value for p in allowed)
        raise InvalidTransitionError(f'Expected phase {names} but session is in {phase.value}', phase=phase)
    return phase


def _prepare_round(doc: Dict[str, Any], round_number: int, chef_ids) -> None:
    state = doc['state']
    state['phase'] = Phase.ROUND_READY.value
    state['current_round'] = round_number
    state['current_round_chefs'] = list(chef_ids)
    state['timer_start_time'] = None
    state['timer_end_time'] = None


def update_config(document: Dict[str, Any], simultaneous_players: Optional[int] = None,
                  round_time: Optional[int] = None, max_players: Optional[int] = None) -> Dict[str, Any]:
    _require(document, None, *CONFIG_PHASES)
    config = document['config']
    players = config['simultaneous_players'] if simultaneous_players is None else simultaneous_players
    seconds = config['round_time'] if round_time is None else round_time
    validate_config(players, seconds, max_players)
    doc = clone(document)
    doc['config']['simultaneous_players'] = players
    doc['config']['round_time'] = seconds
    return doc


def open_setup(document: Dict[str, Any]) -> Dict[str, Any]:
    if phase_of(document) == Phase.SETUP:
        return clone(document)
    _require(document, Phase.SETUP, Phase.LOBBY)
    doc = clone(document)
    doc['state']['phase'] = Phase.SETUP.value
    return doc


def continue_to_game(document: Dict[str, Any]) -> Dict[str, Any]:
    """SETUP -> ROUND_READY with the first batch of chefs as round 1."""
    if phase_of(document) == Phase.ROUND_READY:
        return clone(document)
    phase = _require(document, Phase.ROUND_READY, Phase.SETUP)
    chef_ids = next_round_chefs(document)
    if not chef_ids:
        raise InvalidTransitionError('Add at least one chef before starting the game', phase=phase)
    doc = clone(document)
    _prepare_round(doc, 1, chef_ids)
    return doc


def start_timer(document: Dict[str, Any], now: float) -> Dict[str, Any]:
    """ROUND_READY -> ROUND_ACTIVE.

    The round's chefs are marked as having cooked here, so a restarted round
    never puts them back into the selection pool.
    """
    if phase_of(document) == Phase.ROUND_ACTIVE:
        return clone(document)
    _require(document, Phase.ROUND_ACTIVE, Phase.ROUND_READY)
    doc = clone(document)
    state = doc['state']
    state['phase'] = Phase.ROUND_ACTIVE.value
    state['timer_start_time'] = now
    state['timer_end_time'] = now + doc['config']['round_time']
    for chef_id in state['current_round_chefs']:
        if chef_id in doc['chefs']:
            doc['chefs'][chef_id]['has_cooked'] = True
    return doc


def complete_round(document: Dict[str, Any]) -> Dict[str, Any]:
    if phase_of(document) == Phase.ROUND_COMPLETE:
        return clone(document)
    _require(document, Phase.ROUND_COMPLETE, Phase.ROUND_ACTIVE)
    doc = clone(document)
    doc['state']['phase'] = Phase.ROUND_COMPLETE.value
    return doc


def open_voting(document: Dict[str, Any]) -> Dict[str, Any]:
    """ROUND_COMPLETE -> VOTING, recording who has to vote this round."""
    if phase_of(document) == Phase.VOTING:
        return clone(document)
    _require(document, Phase.VOTING, Phase.ROUND_COMPLETE)
    doc = clone(document)
    doc['voting_status'][round_key(doc['state']['current_round'])] = {
        'required_voters': eligible_voters(doc),
        'completed_voters': [],
    }
    doc['state']['phase'] = Phase.VOTING.value
    return doc


def advance_after_voting(document: Dict[str, Any]) -> Dict[str, Any]:
    """VOTING -> ROUND_READY for the next batch, or RESULTS_COUNTDOWN when everyone has cooked."""
    phase = _require(document, Phase.RESULTS_COUNTDOWN, Phase.VOTING)
    current_round = document['state']['current_round']
    if not is_round_voting_complete(document, current_round):
        raise InvalidTransitionError(f'Voting for round {current_round} is still in progress', phase=phase)

    doc = clone(document)
    if has_more_rounds(chefs_only(doc)):
        _prepare_round(doc, current_round + 1, next_round_chefs(doc))
    else:
        doc['state']['phase'] = Phase.RESULTS_COUNTDOWN.value
    return doc


def reveal_results(document: Dict[str, Any]) -> Dict[str, Any]:
    if phase_of(document) == Phase.RESULTS:
        return clone(document)
    _require(document, Phase.RESULTS, Phase.RESULTS_COUNTDOWN)
    doc = clone(document)
    doc['state']['phase'] = Phase.RESULTS.value
    return doc


def restart_round(document: Dict[str, Any]) -> Dict[str, Any]:
    """Back to ROUND_READY with the timer cleared; cooked flags and votes stay."""
    _require(document, Phase.ROUND_READY, *RESTARTABLE_ROUND_PHASES)
    doc = clone(document)
    doc['state']['phase'] = Phase.ROUND_READY.value
    doc['state']['timer_start_time'] = None
    doc['state']['timer_end_time'] = None
    return doc


def restart_game(document: Dict[str, Any]) -> Dict[str, Any]:
    """Back to SETUP, keeping config and roster but forgetting every round."""
    if phase_of(document) == Phase.SETUP:
        return clone(document)
    _require(document, Phase.SETUP, *(p for p in Phase if p not in CONFIG_PHASES))
    doc = clone(document)
    doc['state'] = {
        'phase': Phase.SETUP.value,
        'current_round': 0,
        'current_round_chefs': [],
        'timer_start_time': None,
        'timer_end_time': None,
    }
    for chef in doc['chefs'].values():
        chef['has_cooked'] = False
    doc['votes'] = {}
    doc['voting_status'] = {}
    return doc


def format_seconds(seconds: int) -> str:
    return f'{seconds // 60}:{seconds % 60:02d}'


def timer_view(document: Dict[str, Any], now: float) -> Dict[str, Any]:
    """Client-side countdown of the round timer; nothing enforces the deadline."""
    round_time = document['config']['round_time']
    end = document['state'].get('timer_end_time')
    running = document['state'].get('timer_start_time') is not None and end is not None
    remaining = max(0, math.floor(end - now)) if running else round_time
    ratio = remaining / round_time if round_time else 0
    return {
        'running': running,
        'remaining': remaining,
        'display': format_seconds(remaining),
        'warning': ratio <= TIMER_WARNING_RATIO,
        'critical': ratio <= TIMER_CRITICAL_RATIO,
        'expired': running and remaining == 0,
    }


def countdown_view(elapsed: float, duration: int = 10, flash_at: int = 5) -> Dict[str, Any]:
    """Displayed value of the results countdown after ``elapsed`` seconds."""
    remaining = max(0, duration - int(math.floor(max(0.0, elapsed))))
    return {
        'remaining': remaining,
        'flashing': remaining <= flash_at,
        'done': remaining == 0,
    }
