"""FastAPI dependencies: services, session context and outcome rendering."""
from typing import Any, Optional

from fastapi import Header, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from rps_room.core.exceptions import InvalidInputError
from rps_room.schemas import Outcome, SessionContext
from rps_room.services import Services


def get_services(request: Request) -> Services:
    return request.app.state.services


def _build_session(identity: str, name: str) -> SessionContext:
    try:
        return SessionContext(identity=identity, name=name)
    except ValidationError as e:
        field = e.errors()[0]["loc"][0] if e.errors() else "session"
        raise InvalidInputError(str(field), f"Invalid session header: {field}") from None


async def get_session(
    x_identity: str = Header(...),
    x_name: str = Header(...),
) -> SessionContext:
    """Session from the X-Identity and X-Name headers."""
    return _build_session(x_identity, x_name)


async def get_optional_session(
    x_identity: Optional[str] = Header(None),
    x_name: Optional[str] = Header(None),
) -> Optional[SessionContext]:
    if not x_identity or not x_name:
        return None
    return _build_session(x_identity, x_name)


async def get_identity(x_identity: str = Header(...)) -> str:
    return _build_session(x_identity, "-").identity


def render(outcome: Outcome, status_code: int = 200) -> Any:
    """Outcome data on success, the error body with its HTTP status otherwise."""
    if outcome.failed:
        return JSONResponse(status_code=outcome.http_status, content=outcome.to_error_dict())
    if status_code != 200:
        return JSONResponse(status_code=status_code, content=outcome.data)
    return outcome.data
