"""Exception hierarchy for cmdwire.

Every error raised by the registry derives from CmdwireError so hosts
can catch the whole family at once, while still telling registration
problems (raised at startup) apart from dispatch problems (raised for
a single inbound event).

Registration errors:
    DuplicateCommandError, InvalidCommandError, MarkerError,
    RegistrySealedError

Dispatch errors:
    CommandNotFoundError, ArgumentCountError, ArgumentTypeError,
    MissingTargetError

Configuration errors:
    ConfigurationError
"""

from typing import Any, Optional


class CmdwireError(Exception):
    """Base exception for all cmdwire errors.

    Attributes:
        message: Human-readable error description.
        module: Originating module name (e.g. "registry").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.module = module
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return f"{cls}({self.message!r}, module={self.module!r})"


# ---------------------------------------------------------------------------
# Registration errors
# ---------------------------------------------------------------------------

class DuplicateCommandError(CmdwireError):
    """A command identifier is already registered in the category.

    Attributes:
        command: The identifier that collided.
        category: The category holding the existing registration.
    """

    def __init__(
        self,
        command: str,
        category: Optional[str] = None,
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        self.category = category
        where = f" in category {category!r}" if category else ""
        super().__init__(
            f"Command {command!r} is already registered{where}",
            module=module or "registry",
            **context,
        )


class InvalidCommandError(CmdwireError):
    """An identifier or handler cannot be registered.

    Raised for empty identifiers and for handler signatures that
    positional dispatch cannot satisfy.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        super().__init__(message, module=module or "registry", **context)


class MarkerError(CmdwireError):
    """The same marker kind was applied twice to one handler."""

    def __init__(
        self,
        message: str = "",
        *,
        category: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.category = category
        super().__init__(message, module=module or "markers", **context)


class RegistrySealedError(CmdwireError):
    """Registration was attempted after the registry was sealed."""

    def __init__(
        self,
        message: str = "Registry is sealed; no further commands can be registered",
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(message, module=module or "registry", **context)


# ---------------------------------------------------------------------------
# Dispatch errors
# ---------------------------------------------------------------------------

class CommandNotFoundError(CmdwireError):
    """No handler is registered under the identifier.

    Attributes:
        command: The identifier that was looked up.
        category: The category searched, or None for a search across
            every category.
    """

    def __init__(
        self,
        command: str,
        category: Optional[str] = None,
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        self.category = category
        where = f" in category {category!r}" if category else ""
        super().__init__(
            f"Command {command!r} is not registered{where}",
            module=module or "dispatch",
            **context,
        )


class CommandArgumentError(CmdwireError):
    """Arguments supplied to a dispatch do not fit the handler."""


class ArgumentCountError(CommandArgumentError):
    """The argument list length differs from the handler's arity.

    Attributes:
        expected: Number of positional parameters the handler declares.
        actual: Number of arguments supplied.
    """

    def __init__(
        self,
        expected: int,
        actual: int,
        *,
        command: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.expected = expected
        self.actual = actual
        self.command = command
        super().__init__(
            f"Wrong number of arguments: handler takes {expected}, got {actual}",
            module=module or "dispatch",
            **context,
        )


class ArgumentTypeError(CommandArgumentError):
    """A positional argument's runtime type differs from the declared type.

    Attributes:
        expected_type: The annotation declared by the handler.
        actual_type: ``type()`` of the supplied argument.
        position: Zero-based index of the offending argument.
    """

    def __init__(
        self,
        expected_type: Any,
        actual_type: type,
        *,
        position: Optional[int] = None,
        command: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.expected_type = expected_type
        self.actual_type = actual_type
        self.position = position
        self.command = command
        at = f" at position {position}" if position is not None else ""
        super().__init__(
            f"Argument type mismatch{at}: handler expects "
            f"{_type_name(expected_type)}, got {_type_name(actual_type)}",
            module=module or "dispatch",
            **context,
        )


class MissingTargetError(CmdwireError):
    """An instance-method handler was dispatched with no instance to bind."""

    def __init__(
        self,
        command: str,
        *,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        super().__init__(
            f"Command {command!r} needs an invocation target; pass target= "
            "or construct the registry with an owner",
            module=module or "dispatch",
            **context,
        )


# ---------------------------------------------------------------------------
# Configuration errors
# ---------------------------------------------------------------------------

class ConfigurationError(CmdwireError):
    """Invalid or missing configuration."""

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(message, module=module or "config", **context)


def _type_name(tp: Any) -> str:
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp)
