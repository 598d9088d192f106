"""
도메인 공통: Use Case 결과 타입 (외부 라이브러리 없음)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    message: str
    code: str = "error"


Result = Union[Ok[T], Err]


def err_from_exception(exc: BaseException) -> Err:
    """도메인 예외 → Err. code 속성이 없으면 "error"."""
    message = str(exc) or exc.__class__.__name__
    return Err(message=message, code=getattr(exc, "code", "error"))
