"""Most recently parsed result per thread and type.

Entries are created or overwritten by every successful parse and are never torn
down implicitly; they live as long as the thread that published them, or until
:func:`clear` is called.
"""

import threading
from typing import Any, TypeVar

T = TypeVar("T")

_local = threading.local()


def _results() -> dict[type, Any]:
    try:
        return _local.results
    except AttributeError:
        _local.results = {}
        return _local.results


def publish(obj: Any) -> None:
    """Record ``obj`` as the calling thread's ambient result for ``type(obj)``."""
    _results()[type(obj)] = obj


def current(type_: type[T]) -> T | None:
    """The calling thread's most recent result of exactly ``type_``, or :obj:`None`."""
    return _results().get(type_)


def clear(type_: type | None = None) -> None:
    """Forget the calling thread's ambient result for ``type_``, or all of them."""
    if type_ is None:
        _results().clear()
    else:
        _results().pop(type_, None)
