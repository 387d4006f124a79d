"""Room code generation."""

from __future__ import annotations

import random
from typing import Container, Dict, Optional, Tuple

# Look-alike characters (0/O, 1/I) are left out of the alphanumeric alphabet.
CODE_STYLES: Dict[str, Tuple[str, int]] = {
    "alnum": ("ABCDEFGHJKLMNPQRSTUVWXYZ23456789", 5),
    "numeric": ("0123456789", 4),
}


def generate_code(
    taken: Container[str],
    alphabet: str = CODE_STYLES["alnum"][0],
    length: int = CODE_STYLES["alnum"][1],
    rng: Optional[random.Random] = None,
) -> str:
    """Return a code that is not in ``taken``.

    Retries until a free code comes up; the code space is assumed to be much
    larger than the number of live rooms.
    """
    rng = rng or random
    while True:
        code = "".join(rng.choices(alphabet, k=length))
        if code not in taken:
            return code


def normalize_code(raw: str) -> str:
    return raw.strip().upper()
