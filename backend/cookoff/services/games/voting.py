"""Voting ledger: per-round, per-voter, per-chef category scores."""

from typing import Any, Dict, List, Optional

from cookoff.errors import InvalidTransitionError, NotFoundError, ValidationError
from .documents import Phase, Vote, clone, phase_of, round_key
from .rounds import chefs_for_voter


def voting_status(document: Dict[str, Any], round_number: int) -> Optional[Dict[str, List[str]]]:
    return document.get('voting_status', {}).get(round_key(round_number))


def get_vote(document: Dict[str, Any], round_number: int, voter_name: str, chef_id: str) -> Optional[Vote]:
    data = document.get('votes', {}).get(round_key(round_number), {}).get(voter_name, {}).get(chef_id)
    return Vote.from_dict(data) if data is not None else None


def _require_open_round(document: Dict[str, Any], round_number: Any) -> Dict[str, List[str]]:
    phase = phase_of(document)
    if phase != Phase.VOTING:
        raise InvalidTransitionError('Voting is not open', phase=phase)
    if isinstance(round_number, bool) or not isinstance(round_number, int):
        raise ValidationError('round must be an integer')
    current_round = document['state']['current_round']
    if round_number != current_round:
        raise ValidationError(f'Round {round_number} is not being voted on (current round is {current_round})')
    status = voting_status(document, round_number)
    if status is None:
        raise NotFoundError(f'No voting status for round {round_number}')
    return status


def submit_vote(document: Dict[str, Any], round_number: int, voter_name: Any, chef_id: Any,
                scores: Dict[str, Any], now: float) -> Dict[str, Any]:
    """Record (or overwrite) a voter's scores for one chef.

    Submission is the upsert: a second vote for the same round, voter and
    chef replaces the first.
    """
    status = _require_open_round(document, round_number)
    if not isinstance(voter_name, str) or not voter_name.strip():
        raise ValidationError('voter is required')
    if voter_name not in status['required_voters']:
        raise ValidationError(f'{voter_name} is not voting in round {round_number}')

    chef = document.get('chefs', {}).get(chef_id) if isinstance(chef_id, str) else None
    if chef is None:
        raise NotFoundError(f'Chef {chef_id} not found')
    if chef['name'] == voter_name:
        raise ValidationError('Chefs cannot score their own dish')
    if chef_id not in document['state']['current_round_chefs']:
        raise ValidationError(f"{chef['name']} did not cook in round {round_number}")

    vote = Vote.from_dict({**(scores or {}), 'timestamp': now})

    doc = clone(document)
    round_votes = doc['votes'].setdefault(round_key(round_number), {})
    round_votes.setdefault(voter_name, {})[chef_id] = vote.to_dict()
    return doc


def missing_votes(document: Dict[str, Any], round_number: int, voter_name: str) -> List[str]:
    """Names of the round's chefs the voter has not scored yet."""
    return [
        p.name for p in chefs_for_voter(document, voter_name)
        if get_vote(document, round_number, voter_name, p.id) is None
    ]


def mark_voter_complete(document: Dict[str, Any], round_number: int, voter_name: Any) -> Dict[str, Any]:
    """Add a voter to the round's completed set once all their scores are in.

    Marking an already completed voter again is a no-op.
    """
    status = _require_open_round(document, round_number)
    if voter_name not in status['required_voters']:
        raise ValidationError(f'{voter_name} is not voting in round {round_number}')
    if voter_name in status['completed_voters']:
        return clone(document)
    missing = missing_votes(document, round_number, voter_name)
    if missing:
        raise ValidationError(f"{voter_name} still has to score: {', '.join(missing)}")

    doc = clone(document)
    doc['voting_status'][round_key(round_number)]['completed_voters'].append(voter_name)
    return doc


def is_round_voting_complete(document: Dict[str, Any], round_number: int) -> bool:
    status = voting_status(document, round_number)
    if status is None:
        return False
    return set(status['required_voters']) <= set(status['completed_voters'])


def voting_overview(document: Dict[str, Any]) -> Dict[str, Any]:
    """Everything a voting screen needs for the current round."""
    round_number = document['state']['current_round']
    status = voting_status(document, round_number) or {'required_voters': [], 'completed_voters': []}
    voters = []
    for name in status['required_voters']:
        voters.append({
            'name': name,
            'completed': name in status['completed_voters'],
            'chefs': [
                {'id': p.id, 'name': p.name, 'dish': p.dish,
                 'voted': get_vote(document, round_number, name, p.id) is not None}
                for p in chefs_for_voter(document, name)
            ],
        })
    return {
        'round': round_number,
        'required_voters': list(status['required_voters']),
        'completed_voters': list(status['completed_voters']),
        'complete': is_round_voting_complete(document, round_number),
        'voters': voters,
    }
