import random
import string
from typing import Callable

from constants import USER_ID_SUFFIX_LENGTH

# Strategy for turning a display name into a User ID.
UserIdGenerator = Callable[[str], str]

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def generate_random_suffix(length: int = USER_ID_SUFFIX_LENGTH) -> str:
    return ''.join(random.choices(_SUFFIX_ALPHABET, k=length))


def generate_user_id(name: str) -> str:
    """Default generator: ``<name>_<6 random base-36 chars>``."""
    return f"{name}_{generate_random_suffix()}"
