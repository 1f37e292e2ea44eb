import os
import string


def _env_list(name, default):
    raw = os.environ.get(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(',') if item.strip()]


def _env_flag(name, default='0'):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes', 'on')


DEFAULT_WORDS = [
    'house', 'cat', 'dog', 'tree', 'car', 'sun', 'computer', 'book',
]


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    CORS_ORIGINS = _env_list('CORS_ORIGINS', [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:5174",
        "http://127.0.0.1:5174",
    ])
    # Listener (run.py)
    HOST = os.environ.get('HOST', '0.0.0.0')
    PORT = int(os.environ.get('PORT', '12345'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Minimum players for a round to be active
    MIN_PLAYERS = int(os.environ.get('MIN_PLAYERS', '2'))
    DEFAULT_NICKNAME = os.environ.get('DEFAULT_NICKNAME', 'Anonymous')
    # Room codes: ROOM_CODE_LENGTH chars drawn from ROOM_CODE_ALPHABET
    ROOM_CODE_LENGTH = int(os.environ.get('ROOM_CODE_LENGTH', '4'))
    ROOM_CODE_ALPHABET = os.environ.get('ROOM_CODE_ALPHABET', string.digits)
    ROOM_CODE_MAX_ATTEMPTS = int(os.environ.get('ROOM_CODE_MAX_ATTEMPTS', '100'))
    # Drop rooms once their last participant leaves
    PRUNE_EMPTY_ROOMS = _env_flag('PRUNE_EMPTY_ROOMS')
    WORDS = _env_list('WORDS', DEFAULT_WORDS)
