"""Verification code issuance."""
import logging
import random
from datetime import date
from typing import Collection, Optional

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


def is_well_formed(code) -> bool:
    return isinstance(code, int) and not isinstance(code, bool) and CODE_MIN <= code <= CODE_MAX


class VerificationIssuer:
    """Mints 6-digit single-use codes from an injected random source.

    Codes are not globally unique; a code is only ever looked up together
    with the owning guide and the ACCEPTED status.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.SystemRandom()

    def issue(self, scheduled_date: date, exclude: Collection[int] = ()) -> int:
        """Draw a code not in ``exclude`` (the guide's outstanding codes)."""
        code = self._rng.randint(CODE_MIN, CODE_MAX)
        while code in exclude:
            logger.debug("Redrawing verification code that collides with an outstanding one")
            code = self._rng.randint(CODE_MIN, CODE_MAX)
        logger.debug("Issued verification code for %s", scheduled_date.isoformat())
        return code


def mask_code(code) -> str:
    return f"{str(code)[:3]}***"
