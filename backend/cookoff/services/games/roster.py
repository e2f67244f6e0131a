"""Participant registry: adding, ordering and removing chefs and judges.

Chefs and judges share one ``order`` index. Chefs conventionally come
first; only chefs can be reordered and shuffled, judges keep their relative
order after the chefs.
"""

import random
import uuid
from typing import Any, Dict, List, Optional

from cookoff.errors import InvalidTransitionError, LastChefError, NotFoundError, ValidationError
from .documents import (
    DEFAULT_DISH,
    Participant,
    Phase,
    chefs_only,
    clone,
    judges_only,
    participants,
    phase_of,
)

MAX_NAME_LENGTH = 30
ROSTER_PHASES = (Phase.LOBBY, Phase.SETUP)


def _require_roster_phase(document: Dict[str, Any]) -> None:
    phase = phase_of(document)
    if phase not in ROSTER_PHASES:
        raise InvalidTransitionError('The roster can only be edited before the game starts', phase=phase)


def _get(document: Dict[str, Any], participant_id: str) -> Participant:
    data = document.get('chefs', {}).get(participant_id)
    if data is None:
        raise NotFoundError(f'Participant {participant_id} not found')
    return Participant.from_dict(data)


def _write_orders(document: Dict[str, Any], ordered: List[Participant]) -> None:
    for index, p in enumerate(ordered):
        document['chefs'][p.id]['order'] = index


def new_participant_id() -> str:
    return f'chef_{uuid.uuid4().hex[:12]}'


def add_participant(document: Dict[str, Any], name: Any, dish: Any = None, is_judge: bool = False,
                    participant_id: Optional[str] = None):
    """Append a participant at the end of the order.

    Returns ``(new_document, participant)``.
    """
    _require_roster_phase(document)
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Name is required')
    name = name.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f'Name must be {MAX_NAME_LENGTH} characters or less')
    if any(p.name.casefold() == name.casefold() for p in participants(document)):
        raise ValidationError(f'{name} is already registered')
    if dish is not None and not isinstance(dish, str):
        raise ValidationError('Dish must be a string')

    doc = clone(document)
    participant = Participant(
        id=participant_id or new_participant_id(),
        name=name,
        dish=(dish or '').strip() or DEFAULT_DISH,
        order=len(doc['chefs']),
        has_cooked=False,
        is_judge=bool(is_judge),
    )
    doc['chefs'][participant.id] = participant.to_dict()
    return doc, participant


def reorder_participant(document: Dict[str, Any], participant_id: str, new_order: Any) -> Dict[str, Any]:
    """Swap order values with the chef currently holding ``new_order``.

    Only chefs move; asking for a slot held by a judge (or by nobody) is
    rejected so judge ordering is never disturbed.
    """
    _require_roster_phase(document)
    participant = _get(document, participant_id)
    if participant.is_judge:
        raise ValidationError('Judges cannot be reordered')
    if isinstance(new_order, bool) or not isinstance(new_order, int):
        raise ValidationError('order must be an integer')
    if new_order == participant.order:
        return clone(document)

    target = next((p for p in chefs_only(document) if p.order == new_order), None)
    if target is None:
        raise ValidationError(f'No chef holds position {new_order}')

    doc = clone(document)
    doc['chefs'][participant.id]['order'] = target.order
    doc['chefs'][target.id]['order'] = participant.order
    return doc


def move_participant(document: Dict[str, Any], participant_id: str, direction: str) -> Dict[str, Any]:
    """Move a chef one step up or down within the chef lane."""
    if direction not in ('up', 'down'):
        raise ValidationError("direction must be 'up' or 'down'")
    _require_roster_phase(document)
    participant = _get(document, participant_id)
    if participant.is_judge:
        raise ValidationError('Judges cannot be reordered')
    lane = chefs_only(document)
    index = next(i for i, p in enumerate(lane) if p.id == participant_id)
    neighbour = index - 1 if direction == 'up' else index + 1
    if neighbour < 0 or neighbour >= len(lane):
        # Already at the edge of the lane
        return clone(document)
    return reorder_participant(document, participant_id, lane[neighbour].order)


def remove_participant(document: Dict[str, Any], participant_id: str) -> Dict[str, Any]:
    """Remove a participant and repack orders: chefs first, then judges."""
    _require_roster_phase(document)
    participant = _get(document, participant_id)
    chefs = chefs_only(document)
    judges = judges_only(document)
    if not participant.is_judge and len(chefs) == 1 and judges:
        raise LastChefError(f'{participant.name} is the only chef left; remove the judges first or add another chef')

    doc = clone(document)
    del doc['chefs'][participant_id]
    remaining = [p for p in chefs + judges if p.id != participant_id]
    _write_orders(doc, remaining)
    return doc


def shuffle_once(document: Dict[str, Any], rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Uniform Fisher-Yates permutation of the chefs; judges follow in order."""
    rng = rng or random.Random()
    chefs = chefs_only(document)
    for i in range(len(chefs) - 1, 0, -1):
        j = rng.randint(0, i)
        chefs[i], chefs[j] = chefs[j], chefs[i]
    doc = clone(document)
    _write_orders(doc, chefs + judges_only(document))
    return doc


def shuffle_pass(document: Dict[str, Any], rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """One shuffle pass, refused once the game has started."""
    _require_roster_phase(document)
    return shuffle_once(document, rng)

