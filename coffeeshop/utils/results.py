"""
Typed outcomes for expected business conditions.

Pickup-time checks and status transitions never raise for a bad input; they
return one of these so callers can branch on ``result.ok``.
"""
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Ok:
    value: Any = None

    ok = True


@dataclass(frozen=True)
class Rejected:
    reason: str

    ok = False


@dataclass(frozen=True)
class ParseFailure:
    text: str
    reason: str = 'Please enter a time like 1:12 PM or 13:12.'

    ok = False


Result = Union[Ok, Rejected, ParseFailure]
