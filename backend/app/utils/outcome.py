from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one stage of a fallback chain: a value, or a classified failure reason."""

    ok: bool
    value: Optional[T] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str, error: Optional[BaseException] = None) -> "Outcome[T]":
        return cls(ok=False, reason=reason, error=error)

    def or_else(self, next_stage: Callable[["Outcome[T]"], "Outcome[T]"]) -> "Outcome[T]":
        """Run `next_stage` with this failed outcome; successes pass through untouched."""
        if self.ok:
            return self
        return next_stage(self)

    def unwrap(self) -> T:
        if self.ok:
            return self.value
        if self.error is not None:
            raise self.error
        raise RuntimeError(self.reason or "stage failed")


def attempt(stage: Callable[[], T], classify: Callable[[BaseException], str]) -> Outcome[T]:
    """Run `stage`, turning any exception into a failed Outcome with a classified reason."""
    try:
        return Outcome.success(stage())
    except Exception as e:
        return Outcome.failure(classify(e), e)
