"""Shape of the session document and the records stored inside it.

The session document is a plain JSON-compatible dict so it can be pushed to
clients and persisted as-is:

    {
      'config': {'simultaneous_players', 'round_time', 'created_at'},
      'state': {'phase', 'current_round', 'current_round_chefs',
                'timer_start_time', 'timer_end_time'},
      'chefs': {participant_id: Participant.to_dict()},
      'votes': {round: {voter_name: {chef_id: Vote.to_dict()}}},
      'voting_status': {round: {'required_voters', 'completed_voters'}},
    }

Round keys are strings because JSON object keys always are.
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from cookoff.errors import ValidationError


class Phase(str, Enum):
    LOBBY = 'LOBBY'
    SETUP = 'SETUP'
    ROUND_READY = 'ROUND_READY'
    ROUND_ACTIVE = 'ROUND_ACTIVE'
    ROUND_COMPLETE = 'ROUND_COMPLETE'
    VOTING = 'VOTING'
    RESULTS_COUNTDOWN = 'RESULTS_COUNTDOWN'
    RESULTS = 'RESULTS'


CATEGORIES = ('technique', 'presentation', 'taste')
MIN_SCORE = 0
MAX_SCORE = 10
PERFECT_TOTAL = MAX_SCORE * len(CATEGORIES)
DEFAULT_DISH = 'mystery dish'


def _validate_score(category: str, value: Any) -> int:
    # bool is an int subclass; a checkbox value is not a score
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f'{category} must be an integer between {MIN_SCORE} and {MAX_SCORE}')
    if value < MIN_SCORE or value > MAX_SCORE:
        raise ValidationError(f'{category} must be between {MIN_SCORE} and {MAX_SCORE}, got {value}')
    return value


@dataclass(frozen=True)
class Vote:
    """One voter's scores for one chef in one round."""
    technique: int
    presentation: int
    taste: int
    timestamp: float
    comment: Optional[str] = None

    def __post_init__(self):
        for category in CATEGORIES:
            _validate_score(category, getattr(self, category))
        if self.comment is not None and not isinstance(self.comment, str):
            raise ValidationError('comment must be a string')

    @property
    def total(self) -> int:
        return self.technique + self.presentation + self.taste

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Vote':
        comment = data.get('comment')
        if isinstance(comment, str):
            comment = comment.strip() or None
        return cls(
            technique=data.get('technique'),
            presentation=data.get('presentation'),
            taste=data.get('taste'),
            timestamp=float(data.get('timestamp') or 0.0),
            comment=comment,
        )

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            'technique': self.technique,
            'presentation': self.presentation,
            'taste': self.taste,
            'timestamp': self.timestamp,
        }
        # Only persist a comment when one was written
        if self.comment:
            payload['comment'] = self.comment
        return payload


@dataclass
class Participant:
    id: str
    name: str
    order: int
    dish: str = DEFAULT_DISH
    has_cooked: bool = False
    is_judge: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Participant':
        return cls(
            id=data['id'],
            name=data['name'],
            order=int(data['order']),
            dish=data.get('dish') or DEFAULT_DISH,
            has_cooked=bool(data.get('has_cooked')),
            is_judge=bool(data.get('is_judge')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'dish': self.dish,
            'order': self.order,
            'has_cooked': self.has_cooked,
            'is_judge': self.is_judge,
        }


def new_session_document(simultaneous_players: int, round_time: int, now: float,
                         phase: Phase = Phase.SETUP) -> Dict[str, Any]:
    validate_config(simultaneous_players, round_time)
    return {
        'config': {
            'simultaneous_players': simultaneous_players,
            'round_time': round_time,
            'created_at': now,
        },
        'state': {
            'phase': Phase(phase).value,
            'current_round': 0,
            'current_round_chefs': [],
            'timer_start_time': None,
            'timer_end_time': None,
        },
        'chefs': {},
        'votes': {},
        'voting_status': {},
    }


def validate_config(simultaneous_players: Any, round_time: Any, max_players: Optional[int] = None) -> None:
    for label, value in (('simultaneous_players', simultaneous_players), ('round_time', round_time)):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValidationError(f'{label} must be a positive integer')
    if max_players is not None and simultaneous_players > max_players:
        raise ValidationError(f'simultaneous_players must be at most {max_players}')


def clone(document: Dict[str, Any]) -> Dict[str, Any]:
    return copy.deepcopy(document)


def phase_of(document: Dict[str, Any]) -> Phase:
    return Phase(document['state']['phase'])


def round_key(round_number: int) -> str:
    return str(int(round_number))


def participants(document: Dict[str, Any]) -> List[Participant]:
    """All participants sorted by their turn order."""
    return sorted(
        (Participant.from_dict(p) for p in document.get('chefs', {}).values()),
        key=lambda p: p.order,
    )


def chefs_only(document: Dict[str, Any]) -> List[Participant]:
    return [p for p in participants(document) if not p.is_judge]


def judges_only(document: Dict[str, Any]) -> List[Participant]:
    return [p for p in participants(document) if p.is_judge]


def iter_votes(document: Dict[str, Any]):
    """Yield (round, voter_name, chef_id, Vote) for every vote ever cast."""
    for rnd, round_votes in sorted(document.get('votes', {}).items(), key=lambda kv: int(kv[0])):
        for voter_name, voter_votes in round_votes.items():
            for chef_id, vote in voter_votes.items():
                yield int(rnd), voter_name, chef_id, Vote.from_dict(vote)
