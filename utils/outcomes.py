"""
Result values returned by the codec and the stores.

Components never raise across their boundary for expected failures; they return
either Ok(value) or Failure(kind, message). AuthService is the only consumer and
turns failures into ServiceError subclasses.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    MALFORMED = "malformed"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Failure:
    kind: FailureKind
    message: str = ""


Outcome = Union[Ok[T], Failure]
