"""Data types shared by the registry, markers and host.

Categories form an open set of strings; the Category enum only names
the three channels a chat bot usually has. Any other string is a valid
category and gets its own identifier namespace.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Tuple

from .signature import HandlerSignature


class Category(str, Enum):
    """Built-in logical channels a command can arrive on."""
    TEXT = "text"
    CALLBACK = "callback"
    REPLY = "reply"


# Category-agnostic lookup searches in this order. Earlier categories win
# when the same identifier exists in more than one of them.
DEFAULT_PRIORITY: Tuple[str, ...] = (
    Category.TEXT.value,
    Category.CALLBACK.value,
    Category.REPLY.value,
)


class HandlerKind(str, Enum):
    """Shape of a handler's positional signature.

    Recorded in the ``command_registered`` log event only. Dispatch
    always validates against the full HandlerSignature.
    """
    NO_ARGS = "no_args"
    CLIENT_UPDATE = "client_update"
    ARGS = "args"


def category_name(category: Any) -> str:
    """Return the plain string name of a category (enum or str)."""
    if isinstance(category, Category):
        return category.value
    return str(category)


@dataclass(frozen=True)
class CommandEntry:
    """One registered command.

    Attributes:
        category: Category the identifier lives in.
        command: Identifier as supplied at registration.
        handler: The callable found on the source (possibly unbound).
        signature: Introspected positional parameters of the handler.
        needs_target: True for instance methods registered from a class;
            dispatch binds them to a target instance before calling.
        source: Qualified name of the class/module the handler came from.
    """

    category: str
    command: str
    handler: Callable[..., Any]
    signature: HandlerSignature
    needs_target: bool = False
    source: Optional[str] = None

    @property
    def kind(self) -> HandlerKind:
        if self.signature.variadic:
            return HandlerKind.ARGS
        if self.signature.arity == 0:
            return HandlerKind.NO_ARGS
        if self.signature.arity == 2:
            return HandlerKind.CLIENT_UPDATE
        return HandlerKind.ARGS

    @property
    def qualname(self) -> str:
        return getattr(self.handler, "__qualname__", repr(self.handler))

    def bind(self, target: Any = None) -> Callable[..., Any]:
        """Return a callable ready to receive the positional arguments."""
        if self.needs_target:
            return self.handler.__get__(target, type(target))
        return self.handler
