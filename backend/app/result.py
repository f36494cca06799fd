"""
NoteMark Backend - Tagged Operation Results
=============================================

What:  `Ok` / `Err` wrappers returned by every NoteService operation.
Why:   A grammar check that found nothing (`Ok([])`) and one that failed
       (`Err(...)`) must never look alike to a caller.
How:   `Err` holds a NoteMarkError; `kind` and `detail` expose its code and
       client-safe message. `unwrap()` returns the value or raises the error,
       which lets route handlers hand failures to the global exception handlers.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from app.exceptions import NoteMarkError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    error: NoteMarkError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def kind(self) -> str:
        return self.error.code

    @property
    def detail(self) -> str:
        return self.error.message

    def unwrap(self):
        raise self.error


Result = Union[Ok[T], Err]
