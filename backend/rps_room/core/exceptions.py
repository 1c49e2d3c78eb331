"""Custom exceptions for the application.

Services raise these internally. Public service operations are wrapped with
``outcome_boundary`` so callers always receive an ``Outcome`` instead.
"""
import functools
import logging
from typing import Optional

from fastapi import status

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base exception for application errors."""

    http_status: int = status.HTTP_400_BAD_REQUEST
    log_level: int = logging.INFO

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[dict] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


# ============ Input ============

class InvalidInputError(AppException):
    """Raised when a request value fails validation inside a service."""

    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, field: str, message: str):
        super().__init__(
            message=message,
            code="INVALID_INPUT",
            details={"field": field}
        )


# ============ Room ============

class RoomException(AppException):
    """Room-related exceptions."""
    pass


class RoomNotFoundError(RoomException):
    """Raised when a room is not found."""

    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, room_id: str):
        super().__init__(
            message="The room you are looking for does not exist.",
            code="ROOM_NOT_FOUND",
            details={"room_id": room_id}
        )


class NameTakenError(RoomException):
    """Raised when another online identity already uses the display name."""

    http_status = status.HTTP_409_CONFLICT

    def __init__(self, name: str):
        super().__init__(
            message="The user name already exists. Please enter a different name.",
            code="NAME_TAKEN",
            details={"name": name}
        )


class NotInRoomError(RoomException):
    """Raised when a participant acts in a room they never joined."""

    http_status = status.HTTP_403_FORBIDDEN

    def __init__(self, room_id: str):
        super().__init__(
            message="You are not in this room.",
            code="NOT_IN_ROOM",
            details={"room_id": room_id}
        )


# ============ Game ============

class GameException(AppException):
    """Game-related exceptions."""
    pass


class GameNotFoundError(GameException):
    """Raised when a game is not found."""

    http_status = status.HTTP_404_NOT_FOUND
    log_level = logging.WARNING

    def __init__(self, game_id: str):
        super().__init__(
            message="The game you are looking for does not exist.",
            code="GAME_NOT_FOUND",
            details={"game_id": game_id}
        )


class GameExpiredError(GameException):
    """Raised when an action arrives outside the game's or round's time window."""

    http_status = status.HTTP_410_GONE

    def __init__(self, game_id: str, message: str = "The game has expired."):
        super().__init__(
            message=message,
            code="GAME_EXPIRED",
            details={"game_id": game_id}
        )


class GameEndedError(GameException):
    """Raised when acting on a game that already ended."""

    http_status = status.HTTP_409_CONFLICT

    def __init__(self, game_id: str):
        super().__init__(
            message="The game has ended.",
            code="GAME_ENDED",
            details={"game_id": game_id}
        )


class GameInProgressError(GameException):
    """Raised when a game is running or being prepared."""

    http_status = status.HTTP_409_CONFLICT

    def __init__(self, game_id: Optional[str] = None):
        super().__init__(
            message="There is a game in progress or a game is being prepared.",
            code="GAME_IN_PROGRESS",
            details={"game_id": game_id} if game_id else {}
        )


class GameNotStartedError(GameException):
    """Raised when submitting an action before the first round."""

    http_status = status.HTTP_409_CONFLICT

    def __init__(self, game_id: str):
        super().__init__(
            message="The game has not started yet.",
            code="GAME_NOT_STARTED",
            details={"game_id": game_id}
        )


class GameNotReadyError(GameException):
    """Raised when start preconditions are not met yet."""

    http_status = status.HTTP_409_CONFLICT
    log_level = logging.DEBUG

    def __init__(self, game_id: str, reason: str):
        super().__init__(
            message=f"The game cannot start yet: {reason}",
            code="GAME_NOT_READY",
            details={"game_id": game_id, "reason": reason}
        )


class AlreadyAppliedError(GameException):
    """Raised when an identity applies twice."""

    http_status = status.HTTP_409_CONFLICT
    log_level = logging.DEBUG

    def __init__(self, game_id: str):
        super().__init__(
            message="You have already joined the game.",
            code="ALREADY_APPLIED",
            details={"game_id": game_id}
        )


class AlreadySubmittedError(GameException):
    """Raised when an identity submits twice in one round."""

    http_status = status.HTTP_409_CONFLICT
    log_level = logging.DEBUG

    def __init__(self, game_id: str, round_number: int):
        super().__init__(
            message="You have already played.",
            code="ALREADY_SUBMITTED",
            details={"game_id": game_id, "round": round_number}
        )


class NotInGameError(GameException):
    """Raised when a non-applicant or fallen applicant submits an action."""

    http_status = status.HTTP_403_FORBIDDEN

    def __init__(self, game_id: str, message: str = "You are not in the game."):
        super().__init__(
            message=message,
            code="NOT_IN_GAME",
            details={"game_id": game_id}
        )


class NotHostError(GameException):
    """Raised when a non-host session tries to start a game."""

    http_status = status.HTTP_403_FORBIDDEN

    def __init__(self, game_id: str):
        super().__init__(
            message="Only the host can start the game.",
            code="NOT_HOST",
            details={"game_id": game_id}
        )


# ============ Infrastructure ============

class StoreUnavailableError(AppException):
    """Raised when the shared store cannot be read or written."""

    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    log_level = logging.ERROR

    def __init__(self, message: str = "Store temporarily unavailable, please try again later."):
        super().__init__(
            message=message,
            code="STORE_UNAVAILABLE"
        )


def outcome_boundary(func):
    """Convert exceptions raised by an async service operation into an Outcome.

    Successful return values are wrapped with ``Outcome.success`` unless the
    operation already returned an ``Outcome``.
    """
    from rps_room.schemas.outcome import Outcome

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            result = await func(*args, **kwargs)
        except AppException as exc:
            logger.log(
                exc.log_level,
                "%s rejected: %s %s",
                func.__qualname__,
                exc.code,
                exc.details,
                exc_info=exc.log_level >= logging.ERROR,
            )
            return Outcome.failure(exc)
        except TimeoutError as exc:
            # Room lock could not be acquired in time
            logger.error("%s timed out: %s", func.__qualname__, exc)
            return Outcome.failure(StoreUnavailableError())
        except Exception as exc:
            logger.error("%s failed: %s", func.__qualname__, exc, exc_info=True)
            return Outcome.internal_error()
        if isinstance(result, Outcome):
            return result
        return Outcome.success(result)

    return wrapper
