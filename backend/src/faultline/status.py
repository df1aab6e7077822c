"""Failure -> HTTP status code classification.

Resolution order, first match wins:

1. The failure reports its own ``status_code`` (an int attribute).
2. The StatusOverrideTable registered at startup.
3. The built-in table below.
4. 500.

Steps 2 and 3 both pick the most specific registered kind: a kind closer to
the failure's class in its MRO beats an ancestor, and ties between unrelated
bases go to whichever kind was registered first.
"""

from collections.abc import Iterable

from faultline.exceptions import (
    AccessDeniedError,
    ArgumentError,
    AuthenticationError,
    HasStatusCode,
    NotSupportedError,
    OptimisticConcurrencyError,
)

DEFAULT_STATUS = 500


class StatusOverrideTable:
    """Failure kind -> status code mapping, populated during startup.

    Reads during request handling are lock-free. Registering while serving
    traffic is a caller error and is not guarded.
    """

    def __init__(self, entries: Iterable[tuple[type[BaseException], int]] = ()) -> None:
        # dicts keep insertion order, which doubles as registration order
        self._entries: dict[type[BaseException], int] = {}
        for kind, status in entries:
            self.register(kind, status)

    def register(self, kind: type[BaseException], status: int) -> None:
        """Map ``kind`` (and its subclasses, unless overridden) to ``status``."""
        if not (isinstance(kind, type) and issubclass(kind, BaseException)):
            raise ValueError(f"{kind!r} is not an exception class")
        if not 100 <= status <= 599:
            raise ValueError(f"{status} is not a valid HTTP status code")
        self._entries[kind] = status

    def lookup(self, kind: type[BaseException]) -> int | None:
        """Return the status for the most specific registered ancestor of ``kind``."""
        if kind in self._entries:
            return self._entries[kind]

        best: type[BaseException] | None = None
        best_depth = -1
        for registered in self._entries:
            if not issubclass(kind, registered):
                continue
            depth = len(registered.__mro__)
            # strict '>' keeps the earliest registration on ties
            if depth > best_depth:
                best, best_depth = registered, depth
        return None if best is None else self._entries[best]

    def __contains__(self, kind: object) -> bool:
        return kind in self._entries

    def __len__(self) -> int:
        return len(self._entries)


BUILTIN_STATUSES = StatusOverrideTable(
    [
        (ValueError, 400),
        (ArgumentError, 400),
        (NotImplementedError, 405),
        (NotSupportedError, 405),
        (AuthenticationError, 401),
        (PermissionError, 403),
        (AccessDeniedError, 403),
        (OptimisticConcurrencyError, 409),
    ]
)


def self_reported_status(failure: BaseException) -> int | None:
    """Return the status code a failure reports about itself, if any."""
    if isinstance(failure, HasStatusCode):
        status = failure.status_code
        # bool is an int subclass; True is not a status code
        if isinstance(status, int) and not isinstance(status, bool):
            return status
    return None


def classify(failure: BaseException, overrides: StatusOverrideTable | None = None) -> int:
    """Map a failure to an HTTP status code. Always returns a value."""
    status = self_reported_status(failure)
    if status is not None:
        return status

    kind = type(failure)
    if overrides is not None:
        status = overrides.lookup(kind)
        if status is not None:
            return status

    status = BUILTIN_STATUSES.lookup(kind)
    return DEFAULT_STATUS if status is None else status
