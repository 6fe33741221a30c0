"""Media file eligibility by extension."""
import os
from typing import Iterable

from domain.models import normalize_extension


class ExtensionFilter:
    """Case-insensitive suffix match against a configured extension set."""

    def __init__(self, extensions: Iterable[str]):
        self.extensions = frozenset(
            normalize_extension(ext) for ext in extensions if ext.strip()
        )

    def is_eligible(self, path: str) -> bool:
        """Return True if the final extension of `path` is in the set."""
        ext = os.path.splitext(os.path.basename(path))[1].lower()
        if not ext:
            return False
        return ext in self.extensions
