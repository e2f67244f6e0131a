from typing import Any, Dict, List, Optional

from cookoff.errors import ValidationError
from .documents import CATEGORIES, iter_votes, participants


def compute_leaderboard(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Aggregate every vote of every round into one ranked list.

    One entry per participant; judges never cook, so they rank with zero
    totals. Sorted by total score descending; equal totals keep turn order,
    lower ``order`` first. Ranks are 1-based positions.
    """
    entries = {}
    for chef in participants(document):
        entries[chef.id] = {
            'chef_id': chef.id,
            'chef_name': chef.name,
            'dish': chef.dish,
            'order': chef.order,
            'is_judge': chef.is_judge,
            'total_score': 0,
            'technique_score': 0,
            'presentation_score': 0,
            'taste_score': 0,
            'rank': 0,
        }

    for _round, _voter, chef_id, vote in iter_votes(document):
        entry = entries.get(chef_id)
        if entry is None:
            continue
        entry['technique_score'] += vote.technique
        entry['presentation_score'] += vote.presentation
        entry['taste_score'] += vote.taste
        entry['total_score'] += vote.total

    leaderboard = sorted(entries.values(), key=lambda e: (-e['total_score'], e['order']))
    for index, entry in enumerate(leaderboard):
        entry['rank'] = index + 1
    return leaderboard


def get_winner(leaderboard: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return leaderboard[0] if leaderboard else None


def get_category_leaderboard(leaderboard: List[Dict[str, Any]], category: str) -> List[Dict[str, Any]]:
    """Leaderboard re-ranked by a single category's total."""
    if category not in CATEGORIES:
        raise ValidationError(f"category must be one of {', '.join(CATEGORIES)}")
    key = f'{category}_score'
    ranked = [dict(e) for e in sorted(leaderboard, key=lambda e: (-e[key], e['order']))]
    for index, entry in enumerate(ranked):
        entry['rank'] = index + 1
    return ranked
