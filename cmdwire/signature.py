"""Handler signature introspection and positional argument checks.

A HandlerSignature is computed once per handler at registration time
and reused for every dispatch, so argument validation never touches
``inspect`` on the hot path.

Type matching modes:
    exact: ``type(arg) is declared`` (subclass instances are rejected).
    subclass: ``isinstance(arg, declared)``.

In both modes unannotated parameters, ``Any`` and ``object`` accept
every value, ``Optional``/``Union`` accept any of their members, and
parameterised generics such as ``list[int]`` match on ``list`` only.
"""

import inspect
import types
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Literal,
    Optional,
    Sequence,
    Tuple,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

import structlog

from .exceptions import ArgumentCountError, ArgumentTypeError, InvalidCommandError

logger = structlog.get_logger("cmdwire.registry")

TYPE_CHECK_EXACT = "exact"
TYPE_CHECK_SUBCLASS = "subclass"
TYPE_CHECK_MODES = frozenset({TYPE_CHECK_EXACT, TYPE_CHECK_SUBCLASS})

_POSITIONAL = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)
_UNION_TYPES = tuple(t for t in (Union, getattr(types, "UnionType", None)) if t is not None)


@dataclass(frozen=True)
class HandlerSignature:
    """Ordered positional parameters of a handler.

    Attributes:
        names: Parameter names, in call order.
        param_types: Declared annotation per parameter (``Any`` if missing).
        variadic: True if the handler accepts ``*args``.
        variadic_type: Annotation of ``*args`` items (``Any`` if missing).
    """

    names: Tuple[str, ...] = ()
    param_types: Tuple[Any, ...] = ()
    variadic: bool = False
    variadic_type: Any = Any

    @property
    def arity(self) -> int:
        return len(self.names)

    @classmethod
    def from_callable(cls, func: Callable[..., Any], skip_first: bool = False) -> "HandlerSignature":
        """Introspect ``func``.

        Args:
            func: Function, bound method or other callable.
            skip_first: Drop the first positional parameter. Used for
                instance methods taken from a class, where ``self`` is
                supplied by binding rather than by the caller.

        Raises:
            InvalidCommandError: If the callable has no signature, or
                has keyword-only parameters without defaults (positional
                dispatch could never fill them).
        """
        try:
            sig = inspect.signature(func)
        except (TypeError, ValueError) as e:
            raise InvalidCommandError(
                f"Cannot introspect handler {func!r}: {e}",
                handler=repr(func),
            ) from e

        hints = _resolve_hints(func)
        params = list(sig.parameters.values())
        if skip_first and params and params[0].kind in _POSITIONAL:
            params = params[1:]

        names = []
        declared = []
        variadic = False
        variadic_type: Any = Any
        for param in params:
            if param.kind in _POSITIONAL:
                names.append(param.name)
                declared.append(hints.get(param.name, _annotation(param)))
            elif param.kind is inspect.Parameter.VAR_POSITIONAL:
                variadic = True
                variadic_type = hints.get(param.name, _annotation(param))
            elif param.kind is inspect.Parameter.KEYWORD_ONLY and param.default is inspect.Parameter.empty:
                raise InvalidCommandError(
                    f"Handler {getattr(func, '__qualname__', func)!r} has required "
                    f"keyword-only parameter {param.name!r}",
                    handler=getattr(func, "__qualname__", repr(func)),
                    parameter=param.name,
                )

        return cls(
            names=tuple(names),
            param_types=tuple(declared),
            variadic=variadic,
            variadic_type=variadic_type,
        )

    def check(
        self,
        arguments: Sequence[Any],
        mode: str = TYPE_CHECK_EXACT,
        command: Optional[str] = None,
    ) -> None:
        """Validate arity, then types, of ``arguments``.

        Raises:
            ArgumentCountError: Length mismatch (or fewer than the
                required positionals when ``*args`` is accepted).
            ArgumentTypeError: First positional type mismatch.
        """
        actual = len(arguments)
        if actual != self.arity and not (self.variadic and actual > self.arity):
            raise ArgumentCountError(self.arity, actual, command=command)

        for position, value in enumerate(arguments):
            expected = self.param_types[position] if position < self.arity else self.variadic_type
            if not type_matches(expected, value, mode):
                raise ArgumentTypeError(
                    expected,
                    type(value),
                    position=position,
                    command=command,
                )


def type_matches(expected: Any, value: Any, mode: str = TYPE_CHECK_EXACT) -> bool:
    """Return True if ``value`` satisfies the annotation ``expected``."""
    if expected is Any or expected is object or expected is inspect.Parameter.empty:
        return True
    if isinstance(expected, str):
        # Forward reference that could not be resolved
        return True
    if expected is None or expected is type(None):
        return value is None

    origin = get_origin(expected)
    if origin in _UNION_TYPES:
        return any(type_matches(arg, value, mode) for arg in get_args(expected))
    if origin is Literal:
        return value in get_args(expected)
    if origin is not None:
        expected = origin

    if not isinstance(expected, type):
        return True
    if mode == TYPE_CHECK_SUBCLASS:
        return isinstance(value, expected)
    return type(value) is expected


def _annotation(param: inspect.Parameter) -> Any:
    if param.annotation is inspect.Parameter.empty:
        return Any
    return param.annotation


def _resolve_hints(func: Callable[..., Any]) -> dict:
    """Evaluate string annotations.

    If ``get_type_hints`` fails (typically a name imported only under
    ``TYPE_CHECKING``), each annotation is evaluated on its own so only
    the unresolvable ones stay as strings.
    """
    target = getattr(func, "__func__", func)
    try:
        return get_type_hints(target)
    except Exception as e:
        logger.debug(
            "handler_annotations_unresolved",
            handler=getattr(target, "__qualname__", repr(target)),
            error=str(e),
        )

    raw = getattr(target, "__annotations__", None)
    if not isinstance(raw, dict):
        return {}
    globalns = getattr(target, "__globals__", {})
    hints = {}
    for name, annotation in raw.items():
        if isinstance(annotation, str):
            try:
                annotation = eval(annotation, globalns)
            except Exception:
                logger.debug(
                    "handler_annotation_unchecked",
                    handler=getattr(target, "__qualname__", repr(target)),
                    parameter=name,
                    annotation=annotation,
                )
        hints[name] = annotation
    return hints
