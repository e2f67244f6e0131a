import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///cookoff.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Defaults used when a session is created without explicit settings
    DEFAULT_SIMULTANEOUS_PLAYERS = int(os.environ.get('DEFAULT_SIMULTANEOUS_PLAYERS', '2'))
    DEFAULT_ROUND_TIME_SEC = int(os.environ.get('DEFAULT_ROUND_TIME_SEC', '1200'))
    MAX_SIMULTANEOUS_PLAYERS = int(os.environ.get('MAX_SIMULTANEOUS_PLAYERS', '8'))
    # Results countdown (seconds) and the point at which it starts flashing
    RESULTS_COUNTDOWN_SEC = int(os.environ.get('RESULTS_COUNTDOWN_SEC', '10'))
    RESULTS_FLASH_SEC = int(os.environ.get('RESULTS_FLASH_SEC', '5'))
    # Shuffle animation: number of published passes and the pause between them
    SHUFFLE_ITERATIONS = int(os.environ.get('SHUFFLE_ITERATIONS', '5'))
    SHUFFLE_DELAY_MS = int(os.environ.get('SHUFFLE_DELAY_MS', '500'))
    SESSION_CODE_ATTEMPTS = int(os.environ.get('SESSION_CODE_ATTEMPTS', '10'))
    # Optimistic retries for vote submission under contention
    VOTE_TRANSACTION_ATTEMPTS = int(os.environ.get('VOTE_TRANSACTION_ATTEMPTS', '5'))
    # Presence: a viewer without a heartbeat for this long no longer counts
    PRESENCE_TIMEOUT_SEC = int(os.environ.get('PRESENCE_TIMEOUT_SEC', '60'))
    HEARTBEAT_INTERVAL_SEC = int(os.environ.get('HEARTBEAT_INTERVAL_SEC', '30'))
