"""Round selection and voter eligibility."""

from typing import Any, Dict, List

from .documents import Participant, chefs_only, participants


def select_next_round_chefs(chefs: List[Participant], simultaneous_players: int) -> List[str]:
    """Ids of the next chefs to cook: uncooked, by ascending order, at most ``simultaneous_players``.

    Judges never cook. An empty result means every chef has cooked.
    """
    waiting = sorted((p for p in chefs if not p.is_judge and not p.has_cooked), key=lambda p: p.order)
    return [p.id for p in waiting[:max(0, simultaneous_players)]]


def has_more_rounds(chefs: List[Participant]) -> bool:
    return any(not p.is_judge and not p.has_cooked for p in chefs)


def next_round_chefs(document: Dict[str, Any]) -> List[str]:
    return select_next_round_chefs(chefs_only(document), document['config']['simultaneous_players'])


def round_chefs(document: Dict[str, Any]) -> List[Participant]:
    """Participants cooking in the current round, in round order."""
    by_id = {p.id: p for p in participants(document)}
    return [by_id[cid] for cid in document['state']['current_round_chefs'] if cid in by_id]


def chefs_for_voter(document: Dict[str, Any], voter_name: str) -> List[Participant]:
    """Chefs of the current round a voter is asked to score (never themselves)."""
    return [p for p in round_chefs(document) if p.name != voter_name]


def eligible_voters(document: Dict[str, Any]) -> List[str]:
    """Names of every participant with at least one other chef to score this round.

    A participant who is the sole chef of the round has nobody to rate and
    is left out, which can leave the list empty.
    """
    return [p.name for p in participants(document) if chefs_for_voter(document, p.name)]
