"""Decorators that tag handler methods with a command identifier.

A marker only records ``{category: identifier}`` on the function; it
does not register anything. CommandRegistry.register() scans a class,
instance or module for marked members at startup.

Example::

    class Commands:
        @text_command("start")
        async def start(self, client, update): ...

        @callback_command("vote")
        @reply_command("vote")
        async def vote(self, client, update): ...

Each marker kind can be applied at most once per member. Markers may
be placed above or below ``@staticmethod`` / ``@classmethod``.
"""

from typing import Any, Callable, Dict, TypeVar

from .exceptions import InvalidCommandError, MarkerError
from .models import Category, category_name

MARKER_ATTR = "__cmdwire_commands__"

F = TypeVar("F", bound=Callable[..., Any])


def _unwrap(obj: Any) -> Any:
    """Return the plain function behind staticmethod/classmethod."""
    if isinstance(obj, (staticmethod, classmethod)):
        return obj.__func__
    return obj


def validate_identifier(identifier: Any) -> str:
    """Reject identifiers that could never be dispatched."""
    if not isinstance(identifier, str) or not identifier:
        raise InvalidCommandError(
            f"Command identifier must be a non-empty string, got {identifier!r}",
            command=identifier if isinstance(identifier, str) else None,
        )
    return identifier


def command(category: Any, identifier: str) -> Callable[[F], F]:
    """Tag a handler with ``identifier`` in ``category``.

    Args:
        category: A Category member or any category string.
        identifier: The command name the handler is dispatched by.

    Raises:
        InvalidCommandError: If the identifier is empty or not a string.
        MarkerError: If the member already carries a marker for this
            category.
    """
    name = category_name(category)
    validate_identifier(identifier)

    def decorator(obj: F) -> F:
        func = _unwrap(obj)
        markers: Dict[str, str] = dict(getattr(func, MARKER_ATTR, {}))
        if name in markers:
            raise MarkerError(
                f"{getattr(func, '__qualname__', func)!r} already has a {name} "
                f"command marker ({markers[name]!r})",
                category=name,
            )
        markers[name] = identifier
        setattr(func, MARKER_ATTR, markers)
        return obj

    return decorator


def text_command(identifier: str) -> Callable[[F], F]:
    """Mark a handler for plain text messages."""
    return command(Category.TEXT, identifier)


def callback_command(identifier: str) -> Callable[[F], F]:
    """Mark a handler for inline-button callbacks."""
    return command(Category.CALLBACK, identifier)


def reply_command(identifier: str) -> Callable[[F], F]:
    """Mark a handler for replies to a bot message."""
    return command(Category.REPLY, identifier)


def get_markers(obj: Any) -> Dict[str, str]:
    """Return ``{category: identifier}`` carried by ``obj`` (may be empty)."""
    markers = getattr(_unwrap(obj), MARKER_ATTR, None)
    if not isinstance(markers, dict):
        return {}
    return dict(markers)
