from cookoff import socketio
from cookoff.socketio_events import active_viewer_count


def _names(events):
    return [e['name'] for e in events]


def _create_session(client):
    return client.post('/api/sessions').get_json()['session_code']


def test_socket_connect(sio_client):
    assert sio_client.is_connected('/ws')
    received = sio_client.get_received('/ws')
    connected = next(e for e in received if e['name'] == 'connected')
    assert connected['args'][0]['heartbeat_interval'] == 30


def test_join_unknown_session_reports_error(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_session', {'session_code': 'NOPE00'}, namespace='/ws')
    received = sio_client.get_received('/ws')
    assert _names(received) == ['error']


def test_join_session_sends_snapshot_and_presence(sio_client, client):
    code = _create_session(client)
    sio_client.get_received('/ws')

    sio_client.emit('join_session', {'session_code': code.lower()}, namespace='/ws')
    received = sio_client.get_received('/ws')
    names = _names(received)
    assert 'joined' in names
    update = next(e for e in received if e['name'] == 'session_update')
    assert update['args'][0]['session_code'] == code
    assert update['args'][0]['document']['state']['phase'] == 'SETUP'
    presence = next(e for e in received if e['name'] == 'presence')
    assert presence['args'][0]['active_viewers'] == 1
    assert active_viewer_count(code) == 1


def test_room_receives_session_updates(sio_client, client):
    code = _create_session(client)
    sio_client.emit('join_session', {'session_code': code}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post(f'/api/sessions/{code}/participants', json={'name': 'Alice'})
    received = sio_client.get_received('/ws')
    updates = [e['args'][0] for e in received if e['name'] == 'session_update']
    assert updates
    assert any(c['name'] == 'Alice' for c in updates[-1]['document']['chefs'].values())
    assert updates[-1]['version'] == 2


def test_heartbeat_requires_join(sio_client, client):
    sio_client.get_received('/ws')
    sio_client.emit('heartbeat', {}, namespace='/ws')
    assert _names(sio_client.get_received('/ws')) == ['error']

    code = _create_session(client)
    sio_client.emit('join_session', {'session_code': code}, namespace='/ws')
    sio_client.get_received('/ws')
    sio_client.emit('heartbeat', {}, namespace='/ws')
    ack = next(e for e in sio_client.get_received('/ws') if e['name'] == 'heartbeat_ack')
    assert ack['args'][0] == {'session_code': code, 'active_viewers': 1}


def test_presence_counts_viewers_and_drops_on_disconnect(flask_app, sio_client, client):
    code = _create_session(client)
    sio_client.emit('join_session', {'session_code': code}, namespace='/ws')

    other = socketio.test_client(flask_app, namespace='/ws')
    other.emit('join_session', {'session_code': code}, namespace='/ws')
    assert active_viewer_count(code) == 2

    sio_client.get_received('/ws')
    other.disconnect(namespace='/ws')
    presence = [e['args'][0] for e in sio_client.get_received('/ws') if e['name'] == 'presence']
    assert presence[-1]['active_viewers'] == 1
    assert active_viewer_count(code) == 1


def test_stale_viewers_are_not_counted(sio_client, client):
    import time
    code = _create_session(client)
    sio_client.emit('join_session', {'session_code': code}, namespace='/ws')
    assert active_viewer_count(code, now=time.time() + 120) == 0


def test_leave_session(sio_client, client):
    code = _create_session(client)
    sio_client.emit('join_session', {'session_code': code}, namespace='/ws')
    sio_client.get_received('/ws')
    sio_client.emit('leave_session', {'session_code': code}, namespace='/ws')
    assert 'left' in _names(sio_client.get_received('/ws'))
    assert active_viewer_count(code) == 0
