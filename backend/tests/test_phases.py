import pytest

from cookoff.errors import InvalidTransitionError, ValidationError
from cookoff.services.games import phases, roster, rounds, voting
from cookoff.services.games.documents import Participant, Phase, chefs_only, new_session_document, phase_of


def _vote_everyone(doc, scores=None):
    """Submit a vote from every required voter for every chef they can score."""
    scores = scores or {'technique': 5, 'presentation': 5, 'taste': 5}
    rnd = doc['state']['current_round']
    for voter in voting.voting_status(doc, rnd)['required_voters']:
        for chef in rounds.chefs_for_voter(doc, voter):
            doc = voting.submit_vote(doc, rnd, voter, chef.id, scores, 2000.0)
        doc = voting.mark_voter_complete(doc, rnd, voter)
    return doc


def _play_round(doc, now=1500.0):
    doc = phases.start_timer(doc, now)
    doc = phases.complete_round(doc)
    doc = phases.open_voting(doc)
    return _vote_everyone(doc)


def test_transition_table():
    assert phases.can_transition(Phase.SETUP, Phase.ROUND_READY)
    assert phases.can_transition(Phase.VOTING, Phase.RESULTS_COUNTDOWN)
    assert not phases.can_transition(Phase.SETUP, Phase.VOTING)
    assert not phases.can_transition(Phase.RESULTS, Phase.ROUND_READY)


def test_select_next_round_chefs():
    chefs = [
        Participant('c', 'Carol', 2),
        Participant('a', 'Alice', 0, has_cooked=True),
        Participant('b', 'Bob', 1),
        Participant('j', 'Judy', 3, is_judge=True),
    ]
    assert rounds.select_next_round_chefs(chefs, 2) == ['b', 'c']
    assert rounds.select_next_round_chefs(chefs, 1) == ['b']
    assert rounds.has_more_rounds(chefs)
    cooked = [Participant('a', 'Alice', 0, has_cooked=True), Participant('j', 'Judy', 1, is_judge=True)]
    assert rounds.select_next_round_chefs(cooked, 2) == []
    assert not rounds.has_more_rounds(cooked)


def test_continue_requires_a_chef(make_document):
    with pytest.raises(InvalidTransitionError):
        phases.continue_to_game(make_document(judges=['Gordon']))


def test_three_chefs_two_at_a_time(make_document):
    doc = make_document(['Alice', 'Bob', 'Carol'], simultaneous_players=2)
    doc = phases.continue_to_game(doc)
    assert phase_of(doc) == Phase.ROUND_READY
    assert doc['state']['current_round'] == 1
    assert doc['state']['current_round_chefs'] == ['alice', 'bob']

    doc = phases.start_timer(doc, 1500.0)
    assert doc['state']['timer_end_time'] == 1500.0 + 300
    assert doc['chefs']['alice']['has_cooked'] and doc['chefs']['bob']['has_cooked']
    assert not doc['chefs']['carol']['has_cooked']

    doc = phases.complete_round(doc)
    doc = phases.open_voting(doc)
    assert voting.voting_status(doc, 1)['required_voters'] == ['Alice', 'Bob', 'Carol']
    doc = _vote_everyone(doc)

    doc = phases.advance_after_voting(doc)
    assert phase_of(doc) == Phase.ROUND_READY
    assert doc['state']['current_round'] == 2
    assert doc['state']['current_round_chefs'] == ['carol']
    assert doc['state']['timer_start_time'] is None

    doc = phases.start_timer(doc, 1600.0)
    doc = phases.complete_round(doc)
    doc = phases.open_voting(doc)
    # Carol is alone and has nobody to score
    assert voting.voting_status(doc, 2)['required_voters'] == ['Alice', 'Bob']
    doc = _vote_everyone(doc)

    doc = phases.advance_after_voting(doc)
    assert phase_of(doc) == Phase.RESULTS_COUNTDOWN
    doc = phases.reveal_results(doc)
    assert phase_of(doc) == Phase.RESULTS


def test_single_chef_round_has_no_voters(make_document):
    doc = phases.continue_to_game(make_document(['Alice']))
    doc = phases.complete_round(phases.start_timer(doc, 1500.0))
    doc = phases.open_voting(doc)
    assert voting.voting_status(doc, 1)['required_voters'] == []
    assert voting.is_round_voting_complete(doc, 1)
    assert phase_of(phases.advance_after_voting(doc)) == Phase.RESULTS_COUNTDOWN


def test_judges_vote_but_never_cook(make_document):
    doc = make_document(['Alice', 'Bob'], judges=['Gordon'], simultaneous_players=3)
    doc = phases.continue_to_game(doc)
    assert doc['state']['current_round_chefs'] == ['alice', 'bob']
    doc = phases.open_voting(phases.complete_round(phases.start_timer(doc, 1500.0)))
    assert voting.voting_status(doc, 1)['required_voters'] == ['Alice', 'Bob', 'Gordon']


def test_advance_blocked_until_voting_complete(make_document):
    doc = phases.continue_to_game(make_document(['Alice', 'Bob']))
    doc = phases.open_voting(phases.complete_round(phases.start_timer(doc, 1500.0)))
    with pytest.raises(InvalidTransitionError):
        phases.advance_after_voting(doc)


def test_repeated_transitions_are_noops(make_document):
    doc = phases.continue_to_game(make_document(['Alice', 'Bob']))
    assert phases.continue_to_game(doc) == doc
    doc = phases.start_timer(doc, 1500.0)
    # a second start does not move the deadline
    assert phases.start_timer(doc, 1700.0) == doc
    doc = phases.complete_round(doc)
    assert phases.complete_round(doc) == doc
    doc = phases.open_voting(doc)
    assert phases.open_voting(doc) == doc


@pytest.mark.parametrize('command', [
    phases.complete_round,
    phases.open_voting,
    phases.advance_after_voting,
    phases.reveal_results,
    phases.restart_round,
])
def test_wrong_phase_commands_raise(make_document, command):
    doc = make_document(['Alice'])
    with pytest.raises(InvalidTransitionError) as info:
        command(doc)
    assert info.value.to_dict()['phase'] == 'SETUP'


def test_start_timer_requires_round_ready(make_document):
    with pytest.raises(InvalidTransitionError):
        phases.start_timer(make_document(['Alice']), 1500.0)


def test_restart_round_keeps_cooked_flags(make_document):
    doc = make_document(['Alice', 'Bob', 'Carol'], simultaneous_players=2)
    doc = phases.start_timer(phases.continue_to_game(doc), 1500.0)
    doc = phases.restart_round(doc)
    assert phase_of(doc) == Phase.ROUND_READY
    assert doc['state']['timer_start_time'] is None
    assert doc['state']['timer_end_time'] is None
    assert doc['state']['current_round_chefs'] == ['alice', 'bob']
    assert doc['chefs']['alice']['has_cooked'] is True
    # the restarted round cooks the same chefs, not the next batch
    doc = phases.start_timer(doc, 1800.0)
    assert doc['state']['current_round_chefs'] == ['alice', 'bob']


def test_restart_game_resets_rounds_but_keeps_roster(make_document):
    doc = make_document(['Alice', 'Bob'], simultaneous_players=1)
    doc = _play_round(phases.continue_to_game(doc))
    doc = phases.advance_after_voting(doc)
    doc = _play_round(doc)
    doc = phases.reveal_results(phases.advance_after_voting(doc))
    assert phase_of(doc) == Phase.RESULTS

    doc = phases.restart_game(doc)
    assert phase_of(doc) == Phase.SETUP
    assert doc['state']['current_round'] == 0
    assert doc['state']['current_round_chefs'] == []
    assert doc['votes'] == {}
    assert doc['voting_status'] == {}
    assert [p.name for p in chefs_only(doc)] == ['Alice', 'Bob']
    assert not any(p.has_cooked for p in chefs_only(doc))
    assert doc['config']['simultaneous_players'] == 1
    assert phases.restart_game(doc) == doc


def test_update_config_only_before_game(make_document):
    doc = make_document(['Alice'])
    doc = phases.update_config(doc, simultaneous_players=3)
    assert doc['config']['simultaneous_players'] == 3
    assert doc['config']['round_time'] == 300
    with pytest.raises(ValidationError):
        phases.update_config(doc, round_time=0)
    with pytest.raises(ValidationError):
        phases.update_config(doc, simultaneous_players=9, max_players=8)
    with pytest.raises(InvalidTransitionError):
        phases.update_config(phases.continue_to_game(doc), round_time=60)


def test_open_setup_from_lobby():
    doc = new_session_document(2, 300, 1000.0, phase=Phase.LOBBY)
    doc, _ = roster.add_participant(doc, 'Alice')
    # the game only starts from SETUP
    with pytest.raises(InvalidTransitionError):
        phases.continue_to_game(doc)
    doc = phases.open_setup(doc)
    assert phase_of(doc) == Phase.SETUP
    assert phase_of(phases.open_setup(doc)) == Phase.SETUP
    assert phase_of(phases.continue_to_game(doc)) == Phase.ROUND_READY
    with pytest.raises(InvalidTransitionError):
        phases.open_setup(phases.continue_to_game(doc))


def test_timer_view_thresholds(make_document):
    doc = make_document(['Alice'], round_time=100)
    idle = phases.timer_view(doc, 0)
    assert idle == {'running': False, 'remaining': 100, 'display': '1:40',
                    'warning': False, 'critical': False, 'expired': False}

    doc = phases.start_timer(phases.continue_to_game(doc), 1000.0)
    assert phases.timer_view(doc, 1050.0)['warning'] is False
    warning = phases.timer_view(doc, 1075.0)
    assert warning['warning'] and not warning['critical']
    assert warning['display'] == '0:25'
    assert phases.timer_view(doc, 1095.5)['critical']
    expired = phases.timer_view(doc, 1200.0)
    assert expired['remaining'] == 0 and expired['expired']


def test_countdown_view():
    assert phases.countdown_view(0) == {'remaining': 10, 'flashing': False, 'done': False}
    assert phases.countdown_view(5.2)['flashing']
    assert phases.countdown_view(12)['done']
