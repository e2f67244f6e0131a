from flask import Blueprint, jsonify, request, current_app
import time

from cookoff import socketio
from cookoff.errors import CookoffError, InvalidTransitionError, NotFoundError, ValidationError
from cookoff.store import changed_fields, store
from cookoff.socketio_events import active_viewer_count
from cookoff.services.games import analytics, phases, roster, voting
from cookoff.services.games.documents import Phase, chefs_only, new_session_document, phase_of, validate_config
from cookoff.services.games.rounds import has_more_rounds, round_chefs
from cookoff.services.games.scoring import compute_leaderboard, get_category_leaderboard, get_winner
from cookoff.services.games.scheduler import run_shuffle, schedule_results_countdown
from cookoff.services.games.session_code import generate_unique_session_code, normalize_session_code


sessions = Blueprint('sessions', __name__)


@sessions.errorhandler(CookoffError)
def handle_cookoff_error(exc):
    log = current_app.logger.warning if exc.status_code >= 500 else current_app.logger.info
    log(f"[rejected] {request.method} {request.path} code={exc.code} message={exc.message}")
    return jsonify(exc.to_dict()), exc.status_code


def _body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _load(session_code):
    code = normalize_session_code(session_code)
    document = store.get(code)
    if document is None:
        raise NotFoundError(f'Session {code} not found')
    return code, document


def _apply(session_code, command, event):
    """Run a pure command and write back only the fields it changed."""
    code, document = _load(session_code)
    updated = command(document)
    fields = changed_fields(document, updated)
    if fields:
        updated = store.update_fields(code, fields)
    current_app.logger.info(
        f"[{event}] session={code} phase={updated['state']['phase']} round={updated['state']['current_round']} fields={len(fields)}"
    )
    return code, updated


def _results(document):
    leaderboard = compute_leaderboard(document)
    return {
        'leaderboard': leaderboard,
        'winner': get_winner(leaderboard),
        'categories': {
            category: get_category_leaderboard(leaderboard, category)
            for category in ('technique', 'presentation', 'taste')
        },
        'analytics': analytics.calculate_analytics(document, leaderboard),
    }


def _snapshot(code, document):
    phase = phase_of(document)
    view = {
        'phase': phase.value,
        'current_round': document['state']['current_round'],
        'round_chefs': [p.to_dict() for p in round_chefs(document)],
        'timer': phases.timer_view(document, time.time()),
        'has_more_rounds': has_more_rounds(chefs_only(document)),
        'active_viewers': active_viewer_count(code),
    }
    if phase == Phase.VOTING:
        view['voting'] = voting.voting_overview(document)
    if phase == Phase.RESULTS:
        leaderboard = compute_leaderboard(document)
        view['leaderboard'] = leaderboard
        view['winner'] = get_winner(leaderboard)
    return {'session_code': code, 'document': document, 'view': view}


@sessions.route('', methods=['POST'])
def create_session():
    data = _body()
    cfg = current_app.config
    simultaneous_players = data.get('simultaneous_players', cfg.get('DEFAULT_SIMULTANEOUS_PLAYERS', 2))
    round_time = data.get('round_time', cfg.get('DEFAULT_ROUND_TIME_SEC', 1200))
    validate_config(simultaneous_players, round_time, cfg.get('MAX_SIMULTANEOUS_PLAYERS'))

    # A lobby session waits for the host to open setup
    phase = Phase.LOBBY if data.get('lobby') else Phase.SETUP

    code = generate_unique_session_code(store.exists, attempts=int(cfg.get('SESSION_CODE_ATTEMPTS', 10)))
    document = store.create(code, new_session_document(simultaneous_players, round_time, time.time(), phase))
    current_app.logger.info(
        f"[create] session={code} phase={phase.value} players={simultaneous_players} round_time={round_time}s"
    )
    return jsonify(_snapshot(code, document)), 201


@sessions.route('/<string:session_code>', methods=['GET'])
def get_session(session_code):
    code, document = _load(session_code)
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/setup', methods=['POST'])
def open_setup(session_code):
    code, document = _apply(session_code, phases.open_setup, 'setup-open')
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/config', methods=['PATCH'])
def update_config(session_code):
    data = _body()
    max_players = current_app.config.get('MAX_SIMULTANEOUS_PLAYERS')
    code, document = _apply(
        session_code,
        lambda doc: phases.update_config(doc, data.get('simultaneous_players'), data.get('round_time'), max_players),
        'config',
    )
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/participants', methods=['POST'])
def add_participant(session_code):
    data = _body()
    added = {}

    def command(doc):
        updated, participant = roster.add_participant(doc, data.get('name'), data.get('dish'), bool(data.get('is_judge')))
        added['participant'] = participant
        return updated

    code, document = _apply(session_code, command, 'participant-add')
    payload = _snapshot(code, document)
    payload['participant'] = added['participant'].to_dict()
    return jsonify(payload), 201


@sessions.route('/<string:session_code>/participants/<string:participant_id>/order', methods=['POST'])
def reorder_participant(session_code, participant_id):
    new_order = _body().get('order')
    code, document = _apply(
        session_code, lambda doc: roster.reorder_participant(doc, participant_id, new_order), 'participant-reorder'
    )
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/participants/<string:participant_id>/move', methods=['POST'])
def move_participant(session_code, participant_id):
    direction = _body().get('direction')
    code, document = _apply(
        session_code, lambda doc: roster.move_participant(doc, participant_id, direction), 'participant-move'
    )
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/participants/<string:participant_id>', methods=['DELETE'])
def remove_participant(session_code, participant_id):
    code, document = _apply(
        session_code, lambda doc: roster.remove_participant(doc, participant_id), 'participant-remove'
    )
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/shuffle', methods=['POST'])
def shuffle_participants(session_code):
    code, document = _load(session_code)
    phase = phase_of(document)
    if phase not in roster.ROSTER_PHASES:
        raise InvalidTransitionError('The roster can only be shuffled before the game starts', phase=phase)

    cfg = current_app.config
    iterations = int(cfg.get('SHUFFLE_ITERATIONS', 5))
    delay_ms = int(cfg.get('SHUFFLE_DELAY_MS', 500))
    app = current_app._get_current_object()
    if cfg.get('TESTING'):
        # Deterministic control flow in tests: run inline without the cadence
        run_shuffle(app, code, iterations, delay_ms, sleep=lambda _seconds: None)
        return jsonify(_snapshot(code, store.get(code))), 202
    socketio.start_background_task(run_shuffle, app, code, iterations, delay_ms)
    return jsonify({'message': 'Shuffle started', 'iterations': iterations}), 202


@sessions.route('/<string:session_code>/continue', methods=['POST'])
def continue_to_game(session_code):
    code, document = _apply(session_code, phases.continue_to_game, 'continue')
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/timer/start', methods=['POST'])
def start_timer(session_code):
    code, document = _apply(session_code, lambda doc: phases.start_timer(doc, time.time()), 'timer-start')
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/round/complete', methods=['POST'])
def complete_round(session_code):
    code, document = _apply(session_code, phases.complete_round, 'round-complete')
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/voting/open', methods=['POST'])
def open_voting(session_code):
    code, document = _apply(session_code, phases.open_voting, 'voting-open')
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/voting', methods=['GET'])
def get_voting(session_code):
    _code, document = _load(session_code)
    return jsonify(voting.voting_overview(document))


def _round_from(data, document):
    rnd = data.get('round')
    return document['state']['current_round'] if rnd is None else rnd


@sessions.route('/<string:session_code>/votes', methods=['POST'])
def submit_vote(session_code):
    data = _body()
    code, document = _load(session_code)
    round_number = _round_from(data, document)
    voter = data.get('voter')
    chef_id = data.get('chef_id')
    scores = {k: data.get(k) for k in ('technique', 'presentation', 'taste', 'comment')}

    document = store.run_transaction(
        code,
        lambda doc: voting.submit_vote(doc, round_number, voter, chef_id, scores, time.time()),
        attempts=int(current_app.config.get('VOTE_TRANSACTION_ATTEMPTS', 5)),
    )
    current_app.logger.info(f"[vote] session={code} round={round_number} voter={voter} chef={chef_id}")
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/votes/complete', methods=['POST'])
def mark_voter_complete(session_code):
    data = _body()
    code, document = _load(session_code)
    round_number = _round_from(data, document)
    voter = data.get('voter')
    document = store.run_transaction(
        code,
        lambda doc: voting.mark_voter_complete(doc, round_number, voter),
        attempts=int(current_app.config.get('VOTE_TRANSACTION_ATTEMPTS', 5)),
    )
    current_app.logger.info(f"[voter-complete] session={code} round={round_number} voter={voter}")
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/advance', methods=['POST'])
def advance_after_voting(session_code):
    code, document = _apply(session_code, phases.advance_after_voting, 'advance')
    if phase_of(document) == Phase.RESULTS_COUNTDOWN:
        schedule_results_countdown(current_app._get_current_object(), code)
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/results/reveal', methods=['POST'])
def reveal_results(session_code):
    code, document = _apply(session_code, phases.reveal_results, 'results-reveal')
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/results', methods=['GET'])
def get_results(session_code):
    code, document = _load(session_code)
    payload = _results(document)
    payload['session_code'] = code
    payload['phase'] = phase_of(document).value
    return jsonify(payload)


@sessions.route('/<string:session_code>/round/restart', methods=['POST'])
def restart_round(session_code):
    code, document = _apply(session_code, phases.restart_round, 'round-restart')
    return jsonify(_snapshot(code, document))


@sessions.route('/<string:session_code>/restart', methods=['POST'])
def restart_game(session_code):
    code, document = _apply(session_code, phases.restart_game, 'game-restart')
    return jsonify(_snapshot(code, document))
