"""Game logging service - captures recent log records per game."""
import logging
from collections import deque
from typing import Dict, List

# Logs per "{room_id}/{game_id}"
game_logs: Dict[str, deque] = {}

MAX_LOGS_PER_GAME = 500
# Oldest game is dropped once this many games have logs
MAX_TRACKED_GAMES = 200

# Records mentioning these never reach the public per-game log
SENSITIVE_KEYWORDS = [
    'identity',
    'token',
    'secret',
    'password',
    'authorization',
    'redis://',
]

GAME_LOGGERS = [
    'rps_room.services.game_lifecycle',
    'rps_room.services.round_resolution',
    'rps_room.services.game_poller',
]


def _log_key(room_id: str, game_id: str) -> str:
    return f"{room_id}/{game_id}"


class GameLogHandler(logging.Handler):
    """Custom logging handler that captures game-related logs."""

    def emit(self, record):
        game_id = getattr(record, 'game_id', None)
        room_id = getattr(record, 'room_id', None)
        if not game_id or not room_id:
            return
        try:
            entry = self._sanitize(record)
        except Exception:
            self.handleError(record)
            return
        if entry:
            key = _log_key(room_id, game_id)
            if key not in game_logs:
                while len(game_logs) >= MAX_TRACKED_GAMES:
                    game_logs.pop(next(iter(game_logs)))
                game_logs[key] = deque(maxlen=MAX_LOGS_PER_GAME)
            game_logs[key].append(entry)

    def _sanitize(self, record):
        msg = record.getMessage()
        if record.levelno < logging.INFO:
            return None
        if any(keyword in msg.lower() for keyword in SENSITIVE_KEYWORDS):
            return None
        return {
            "timestamp": record.created,
            "level": record.levelname,
            "message": msg,
            "module": record.module,
        }


def get_game_logs(room_id: str, game_id: str, limit: int = 100) -> List[Dict]:
    """Most recent logs for a game, newest first."""
    logs = list(game_logs.get(_log_key(room_id, game_id), ()))
    logs.reverse()
    return logs[:limit]


def clear_game_logs(room_id: str, game_id: str):
    game_logs.pop(_log_key(room_id, game_id), None)


def init_game_logging():
    """Attach one GameLogHandler to the game loggers."""
    handler = GameLogHandler()
    handler.setLevel(logging.INFO)
    for name in GAME_LOGGERS:
        game_logger = logging.getLogger(name)
        if not any(isinstance(h, GameLogHandler) for h in game_logger.handlers):
            game_logger.addHandler(handler)
    return handler
