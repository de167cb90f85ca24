from .filename import sanitize_title
from .hash import hash_stable

__all__ = ["hash_stable", "sanitize_title"]
