"""Human-readable unique identifiers for users and clients.

An identifier is a two-letter kind code, the last three digits of the
owner's phone number and two random digits, e.g. ``CO89012``. Candidates
are probed against the store until a free one is found. The UNIQUE
constraint on the stored column remains the real guarantee; the probe
only avoids constraint failures in the common case.
"""

import logging
import random
from collections.abc import Awaitable, Callable

from ..errors import GenerationExhausted
from ..models.user import Role

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 20

CLIENT_PREFIX = "CL"
ROLE_PREFIXES = {
    Role.SUPER_ADMIN: "SA",
    Role.ADMIN: "AD",
    Role.COACH: "CO",
}
DEFAULT_USER_PREFIX = "UR"


def prefix_for(kind: Role | str) -> str:
    """Map a role (or ``"client"``) to its two-letter code."""
    if kind == Role.CLIENT:
        return CLIENT_PREFIX
    try:
        return ROLE_PREFIXES[Role(kind)]
    except ValueError:
        return DEFAULT_USER_PREFIX


def phone_suffix(phone: str) -> str:
    """Last three digits of a phone number, zero-padded."""
    digits = "".join(ch for ch in phone if ch.isdigit())
    return digits[-3:].zfill(3)


def make_candidate(phone: str, kind: Role | str, rng: random.Random | None = None) -> str:
    rng = rng or random
    return f"{prefix_for(kind)}{phone_suffix(phone)}{rng.randint(0, 99):02d}"


async def generate_unique_id(
    phone: str,
    kind: Role | str,
    exists: Callable[[str], Awaitable[bool]],
    rng: random.Random | None = None,
    max_attempts: int = MAX_ATTEMPTS,
) -> str:
    """Return the first candidate identifier not already in use.

    Args:
        phone: Owner's phone number
        kind: Role of the user being created, or ``"client"``
        exists: Async probe telling whether a candidate is taken
        rng: Random source (injectable for tests)
        max_attempts: Probe budget

    Raises:
        GenerationExhausted: when every probe hit a used identifier
    """
    for _ in range(max_attempts):
        candidate = make_candidate(phone, kind, rng)
        if not await exists(candidate):
            return candidate

    logger.warning(f"No free identifier for phone suffix {phone_suffix(phone)} after {max_attempts} attempts")
    raise GenerationExhausted(
        f"Could not generate a unique id after {max_attempts} attempts"
    )
