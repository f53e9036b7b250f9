import random
import string

LETTERS = string.ascii_letters


def random_identity(length: int = 5) -> str:
    return "".join(random.choices(LETTERS, k=length))
