"""Read-side insights over the vote ledger for the results screen.

All calculations degrade to ``None`` or zeroed values when there is not
enough data instead of raising.
"""

import statistics
from collections import OrderedDict
from typing import Any, Dict, List, Optional

from .documents import CATEGORIES, PERFECT_TOTAL, iter_votes, participants


def _voter_kind(document: Dict[str, Any]) -> Dict[str, Any]:
    return {p.name: p for p in participants(document)}


def _distinct_voters(document: Dict[str, Any]) -> List[str]:
    seen = OrderedDict()
    for _round, voter, _chef, _vote in iter_votes(document):
        seen[voter] = True
    return list(seen)


def most_controversial(document: Dict[str, Any], leaderboard: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Chef whose received vote totals have the largest standard deviation."""
    if len(_distinct_voters(document)) < 2 or not leaderboard:
        return None

    received = {}
    for _round, _voter, chef_id, vote in iter_votes(document):
        received.setdefault(chef_id, []).append(vote.total)

    best = None
    for entry in leaderboard:
        scores = received.get(entry['chef_id'], [])
        if len(scores) < 2:
            continue
        deviation = statistics.pstdev(scores)
        if best is None or deviation > best['variance']:
            best = {
                'chef_id': entry['chef_id'],
                'chef_name': entry['chef_name'],
                'dish': entry['dish'],
                'variance': deviation,
                'min_score': min(scores),
                'max_score': max(scores),
                'average_score': statistics.mean(scores),
            }
    return best


def _favorite(document: Dict[str, Any], judges: bool) -> Optional[Dict[str, Any]]:
    people = _voter_kind(document)
    chefs = document.get('chefs', {})
    totals = OrderedDict()
    for _round, voter, chef_id, vote in iter_votes(document):
        voter_p = people.get(voter)
        if voter_p is None or voter_p.is_judge != judges:
            continue
        if voter_p.id == chef_id or chef_id not in chefs:
            continue
        totals.setdefault(chef_id, []).append(vote.total)

    best = None
    for chef_id, scores in totals.items():
        average = statistics.mean(scores)
        if best is None or average > best['average_score']:
            best = {
                'chef_id': chef_id,
                'chef_name': chefs[chef_id]['name'],
                'dish': chefs[chef_id]['dish'],
                'average_score': average,
                'vote_count': len(scores),
            }
    return best


def judges_favorite(document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return _favorite(document, judges=True)


def chefs_favorite(document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Highest average among votes cast by chefs, self-votes excluded."""
    return _favorite(document, judges=False)


def _voter_stats(document: Dict[str, Any]) -> List[Dict[str, Any]]:
    people = _voter_kind(document)
    given = OrderedDict()
    for _round, voter, _chef, vote in iter_votes(document):
        given.setdefault(voter, []).append(vote.total)
    stats = []
    for voter, scores in given.items():
        stats.append({
            'voter_name': voter,
            'average_score': statistics.mean(scores),
            'vote_count': len(scores),
            'min_score': min(scores),
            'max_score': max(scores),
            'is_judge': bool(people.get(voter) and people[voter].is_judge),
        })
    return stats


def toughest_critic(document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    stats = _voter_stats(document)
    if len(stats) < 2:
        return None
    best = stats[0]
    for s in stats[1:]:
        if s['average_score'] < best['average_score']:
            best = s
    return best


def most_generous_voter(document: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    stats = _voter_stats(document)
    if len(stats) < 2:
        return None
    best = stats[0]
    for s in stats[1:]:
        if s['average_score'] > best['average_score']:
            best = s
    return best


def category_winners(leaderboard: List[Dict[str, Any]]) -> Dict[str, Optional[Dict[str, Any]]]:
    if not leaderboard:
        return {category: None for category in CATEGORIES}
    overall_id = leaderboard[0]['chef_id']
    winners = {}
    for category in CATEGORIES:
        key = f'{category}_score'
        top = leaderboard[0]
        for entry in leaderboard[1:]:
            if entry[key] > top[key]:
                top = entry
        winners[category] = {
            'chef_id': top['chef_id'],
            'chef_name': top['chef_name'],
            'dish': top['dish'],
            'score': top[key],
            'is_overall_winner': top['chef_id'] == overall_id,
        }
    return winners


def general_stats(document: Dict[str, Any], leaderboard: List[Dict[str, Any]]) -> Dict[str, Any]:
    totals = [vote.total for _r, _v, _c, vote in iter_votes(document)]
    spread = leaderboard[0]['total_score'] - leaderboard[-1]['total_score'] if len(leaderboard) > 1 else 0
    return {
        'average_score': statistics.mean(totals) if totals else 0,
        'highest_single_vote': max(totals) if totals else 0,
        'lowest_single_vote': min(totals) if totals else 0,
        'perfect_scores': sum(1 for t in totals if t == PERFECT_TOTAL),
        'score_spread': spread,
    }


def calculate_analytics(document: Dict[str, Any], leaderboard: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        'most_controversial': most_controversial(document, leaderboard),
        'judges_favorite': judges_favorite(document),
        'chefs_favorite': chefs_favorite(document),
        'toughest_critic': toughest_critic(document),
        'most_generous_voter': most_generous_voter(document),
        'category_winners': category_winners(leaderboard),
        'general_stats': general_stats(document, leaderboard),
    }
