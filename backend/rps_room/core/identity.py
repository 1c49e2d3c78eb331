"""Identity, room code and game id generation."""
import base64
import hashlib
import secrets
import string

from rps_room.core.clock import now_ms

_CODE_ALPHABET = string.ascii_letters + string.digits


def generate_random_code(length: int = 6) -> str:
    """Random alphanumeric code used as a salt and as game id."""
    return "".join(secrets.choice(_CODE_ALPHABET) for _ in range(length))


def _digest(name: str) -> bytes:
    seed = f"{name}{now_ms()}{generate_random_code()}"
    return hashlib.sha256(seed.encode("utf-8")).digest()


def generate_identity(name: str) -> str:
    """Opaque stable token for a participant, safe to use as a store path segment."""
    return base64.urlsafe_b64encode(_digest(name)).decode("ascii").rstrip("=")


def generate_room_code(name: str) -> str:
    """Five character room id, doubling as the invite code."""
    code = base64.b64encode(_digest(name)).decode("ascii")[:5]
    return code.replace("/", "a").replace("+", "b")
