import re
import unicodedata
from typing import Callable


def slugify(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or "item"


def unique_slug(value: str, exists: Callable[[str], bool]) -> str:
    """slug, slug-1, slug-2 ... until exists() says the candidate is free"""
    base = slugify(value)
    candidate = base
    counter = 1
    while exists(candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate
