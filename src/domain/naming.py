"""
Collision-free name assignment for projects, tasks and teams.

The resolver itself is pure: it only consults the supplied existence
predicate, so the same existing-name set always yields the same result.
Case-insensitivity is the predicate's job (repositories compare lowercased
names); `case_insensitive_exists` builds such a predicate from a collection.
"""

from typing import Callable, Iterable

NameExists = Callable[[str], bool]


def _suffix(n: int) -> str:
    return f" ({n})"


def resolve_unique_name(candidate: str, exists: NameExists, max_length: int) -> str:
    """
    Return `candidate`, or the first free `candidate (n)` variant.

    When `candidate` plus the suffix would exceed `max_length`, the candidate
    prefix is cut so the suffixed name is exactly `max_length` characters.
    The cut is recomputed on every attempt since " (10)" is longer than " (9)".

    Args:
        candidate: Requested name.
        exists: Predicate telling whether a name is already taken.
        max_length: Longest allowed final name.

    Returns:
        A name for which `exists` is false.
    """
    if not exists(candidate):
        return candidate

    n = 1
    while True:
        suffix = _suffix(n)
        if len(suffix) >= max_length:
            raise ValueError(f"max_length {max_length} too small for suffix {suffix!r}")
        if len(candidate) + len(suffix) > max_length:
            name = candidate[: max_length - len(suffix)] + suffix
        else:
            name = candidate + suffix
        if not exists(name):
            return name
        n += 1


def case_insensitive_exists(names: Iterable[str]) -> NameExists:
    """Build an existence predicate over a fixed set of names, ignoring case."""
    taken = {name.casefold() for name in names}
    return lambda name: name.casefold() in taken
