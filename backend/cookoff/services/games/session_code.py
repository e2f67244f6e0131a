import random
import string
from typing import Callable, Optional

from cookoff.errors import ConflictError

CODE_ALPHABET = string.ascii_uppercase + string.digits
CODE_LENGTH = 6


def generate_session_code(rng: Optional[random.Random] = None, length: int = CODE_LENGTH) -> str:
    """Generate a short, human-enterable session code."""
    rng = rng or random
    return ''.join(rng.choices(CODE_ALPHABET, k=length))


def generate_unique_session_code(exists: Callable[[str], bool], attempts: int = 10,
                                 rng: Optional[random.Random] = None) -> str:
    for _ in range(attempts):
        code = generate_session_code(rng)
        if not exists(code):
            return code
    raise ConflictError(f'Failed to generate a unique session code after {attempts} attempts', attempts=attempts)


def normalize_session_code(code: str) -> str:
    return (code or '').strip().upper()
