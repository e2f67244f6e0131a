from flask import Blueprint, request, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from cookoff import db
from cookoff.models import Viewer

main = Blueprint('main', __name__)

MAX_DISPLAY_NAME = 30


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the cook-off game server!'})


@main.route('/viewer', methods=['POST', 'OPTIONS'])
def set_display_name():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True)
    name = data.get('display_name') if isinstance(data, dict) else None
    if not isinstance(name, str) or len(name.strip()) < 1:
        return jsonify({'error': 'Name must be at least 1 character', 'code': 'validation_error'}), 400
    name = name.strip()
    if len(name) > MAX_DISPLAY_NAME:
        return jsonify({'error': f'Name must be {MAX_DISPLAY_NAME} characters or less', 'code': 'validation_error'}), 400

    if current_user.is_authenticated:
        viewer = current_user
        viewer.display_name = name
    else:
        viewer = Viewer(display_name=name)
        db.session.add(viewer)
    db.session.commit()
    login_user(viewer, remember=True)
    return jsonify({'success': True, 'viewer': viewer.to_dict()})


@main.route('/viewer', methods=['GET'])
@login_required
def get_viewer():
    return jsonify({'success': True, 'viewer': current_user.to_dict()})


@main.route('/viewer/logout', methods=['POST'])
@login_required
def clear_display_name():
    logout_user()
    return jsonify({'success': True})
