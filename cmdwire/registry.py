"""Command registry and dispatcher.

CommandRegistry maps ``category -> identifier -> CommandEntry`` and
invokes handlers by identifier. It is an explicit object owned by the
host application; there is no module-level registry.

Lifecycle:
    1. Startup: register() every handler-bearing class/instance/module
       (or add()/register_table() for hand-built tables). Duplicate
       identifiers within a category raise immediately.
    2. Optionally seal() to forbid late registration.
    3. Traffic: resolve()/dispatch()/dispatch_update() from any number
       of concurrent tasks. Reads take no lock.

Registration never mutates a published map. _commit() builds new
category maps under the lock and swaps ``_commands`` in one
assignment, so a reader always iterates a complete snapshot even when
another thread registers at the same time.

Category-agnostic lookup searches categories in priority order
(text, callback, reply by default), then any other categories in the
order they were first registered. The first match wins, which means a
same-named command in a later category is unreachable without an
explicit category.
"""

import inspect
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog

from .config import Config, get_config
from .exceptions import (
    CommandArgumentError,
    CommandNotFoundError,
    ConfigurationError,
    DuplicateCommandError,
    MissingTargetError,
    RegistrySealedError,
)
from .markers import get_markers, validate_identifier
from .models import DEFAULT_PRIORITY, CommandEntry, category_name
from .signature import TYPE_CHECK_EXACT, TYPE_CHECK_MODES, HandlerSignature

logger = structlog.get_logger("cmdwire.registry")
dispatch_logger = structlog.get_logger("cmdwire.dispatch")

# (category, identifier, handler) rows accepted by register_table()
TableRow = Tuple[Any, str, Callable[..., Any]]


class CommandRegistry:
    """Maps command identifiers to handlers, per category.

    Args:
        owner: Default invocation target for instance methods
            registered from a class. Usually the host object that owns
            the registry.
        priority: Category search order for category-agnostic lookup.
        case_sensitive: When False, identifiers are matched after
            ``str.casefold()``.
        type_check: ``"exact"`` or ``"subclass"``; see signature.py.
    """

    def __init__(
        self,
        owner: Any = None,
        *,
        priority: Sequence[Any] = DEFAULT_PRIORITY,
        case_sensitive: bool = True,
        type_check: str = TYPE_CHECK_EXACT,
    ):
        if type_check not in TYPE_CHECK_MODES:
            raise ConfigurationError(
                f"Unknown type_check mode {type_check!r}; "
                f"expected one of {sorted(TYPE_CHECK_MODES)}",
                setting_name="type_check",
            )
        self.owner = owner
        self.case_sensitive = case_sensitive
        self.type_check = type_check
        self._priority: Tuple[str, ...] = tuple(
            dict.fromkeys(category_name(c) for c in priority)
        )
        self._commands: Dict[str, Dict[str, CommandEntry]] = {
            name: {} for name in self._priority
        }
        self._lock = threading.Lock()
        self._sealed = False

    @classmethod
    def from_config(cls, config: Optional[Config] = None, owner: Any = None) -> "CommandRegistry":
        """Build a registry from the ``commands:`` settings section."""
        settings = (config or get_config()).registry_settings
        return cls(
            owner=owner,
            priority=settings.priority,
            case_sensitive=settings.case_sensitive,
            type_check=settings.type_check,
        )

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, source: Any, category: Any = None) -> List[CommandEntry]:
        """Register every marked member of ``source``.

        Args:
            source: A class, an instance, or a module. Instance methods
                found on a class are stored unbound and bound to a
                target at dispatch time.
            category: Only register markers of this category. None
                registers every category the members are marked with.

        Returns:
            The entries added, in scan order.

        Raises:
            DuplicateCommandError: An identifier already exists in its
                category, or appears twice within ``source``. Nothing
                from this call is registered in that case.
            RegistrySealedError: The registry has been sealed.
        """
        wanted = category_name(category) if category is not None else None
        entries = self._scan(source, wanted)
        self._commit(entries, _source_name(source))
        return entries

    def add(
        self,
        category: Any,
        identifier: str,
        handler: Callable[..., Any],
        *,
        needs_target: bool = False,
    ) -> CommandEntry:
        """Register a single handler without marker scanning.

        Args:
            category: Category for the identifier.
            identifier: Command name.
            handler: Any callable. With ``needs_target`` the callable is
                an unbound instance method and its first parameter is
                filled by binding at dispatch time.
        """
        entry = self._make_entry(
            category_name(category),
            identifier,
            handler,
            needs_target=needs_target,
            source=getattr(handler, "__module__", None),
        )
        self._commit([entry], entry.source)
        return entry

    def register_table(self, rows: Iterable[TableRow]) -> List[CommandEntry]:
        """Register an explicit ``(category, identifier, handler)`` table.

        The table is committed atomically: a duplicate anywhere in it
        leaves the registry unchanged.
        """
        entries = [
            self._make_entry(
                category_name(category),
                identifier,
                handler,
                source=getattr(handler, "__module__", None),
            )
            for category, identifier, handler in rows
        ]
        self._commit(entries, "table")
        return entries

    def seal(self) -> None:
        """Forbid further registration."""
        with self._lock:
            self._sealed = True
            commands = self._commands
        logger.info(
            "registry_sealed",
            commands=sum(len(cmds) for cmds in commands.values()),
            categories={name: len(cmds) for name, cmds in commands.items()},
        )

    @property
    def sealed(self) -> bool:
        return self._sealed

    def _scan(self, source: Any, wanted: Optional[str]) -> List[CommandEntry]:
        is_class = isinstance(source, type)
        source_name = _source_name(source)
        entries = []
        seen = set()
        for attr_name in dir(source):
            if attr_name.startswith("__"):
                continue
            try:
                raw = inspect.getattr_static(source, attr_name)
            except AttributeError:
                continue
            markers = get_markers(raw)
            if not markers:
                continue
            # Aliases and re-exports name the same function twice
            func = getattr(raw, "__func__", raw)
            if id(func) in seen:
                continue
            seen.add(id(func))

            member = getattr(source, attr_name)
            # Plain functions on a class are instance methods
            needs_target = is_class and inspect.isfunction(raw)
            for cat, identifier in markers.items():
                if wanted is not None and cat != wanted:
                    continue
                entries.append(
                    self._make_entry(
                        cat,
                        identifier,
                        member,
                        needs_target=needs_target,
                        source=source_name,
                    )
                )
        return entries

    def _make_entry(
        self,
        category: str,
        identifier: str,
        handler: Callable[..., Any],
        *,
        needs_target: bool = False,
        source: Optional[str] = None,
    ) -> CommandEntry:
        validate_identifier(identifier)
        return CommandEntry(
            category=category,
            command=identifier,
            handler=handler,
            signature=HandlerSignature.from_callable(handler, skip_first=needs_target),
            needs_target=needs_target,
            source=source,
        )

    def _commit(self, entries: List[CommandEntry], source: Optional[str]) -> None:
        with self._lock:
            if self._sealed:
                logger.error("command_registration_rejected", source=source, reason="sealed")
                raise RegistrySealedError(source=source)

            current = self._commands
            staged: Dict[Tuple[str, str], CommandEntry] = {}
            for entry in entries:
                key = (entry.category, self._key(entry.command))
                existing = current.get(entry.category, {}).get(key[1])
                if existing is not None or key in staged:
                    previous = existing or staged[key]
                    logger.error(
                        "command_registration_rejected",
                        command=entry.command,
                        category=entry.category,
                        handler=entry.qualname,
                        existing_handler=previous.qualname,
                        source=source,
                    )
                    raise DuplicateCommandError(
                        entry.command,
                        entry.category,
                        handler=entry.qualname,
                        existing_handler=previous.qualname,
                    )
                staged[key] = entry

            updated = dict(current)
            # New categories keep first-registration order
            for cat in dict.fromkeys(cat for cat, _ in staged):
                updated[cat] = dict(current.get(cat, {}))
            for (cat, key), entry in staged.items():
                updated[cat][key] = entry
                logger.debug(
                    "command_registered",
                    command=entry.command,
                    category=cat,
                    handler=entry.qualname,
                    arity=entry.signature.arity,
                    kind=entry.kind.value,
                )
            self._commands = updated

        logger.info("commands_registered", source=source, count=len(entries))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _key(self, identifier: str) -> str:
        return identifier if self.case_sensitive else identifier.casefold()

    @property
    def categories(self) -> Tuple[str, ...]:
        """Categories in category-agnostic search order."""
        return self._order(self._commands)

    def _order(self, commands: Dict[str, Dict[str, CommandEntry]]) -> Tuple[str, ...]:
        extra = tuple(name for name in commands if name not in self._priority)
        return self._priority + extra

    def lookup(self, identifier: str, category: Any = None) -> CommandEntry:
        """Return the CommandEntry for ``identifier``.

        Args:
            identifier: Command name.
            category: Restrict the search to one category. None searches
                every category in priority order.

        Raises:
            CommandNotFoundError: No matching registration.
        """
        key = self._key(identifier) if isinstance(identifier, str) else identifier
        commands = self._commands
        if category is not None:
            name = category_name(category)
            entry = commands.get(name, {}).get(key)
            if entry is None:
                raise CommandNotFoundError(identifier, name)
            return entry

        for name in self._order(commands):
            entry = commands.get(name, {}).get(key)
            if entry is not None:
                return entry
        raise CommandNotFoundError(identifier)

    def resolve(self, identifier: str, category: Any = None) -> Callable[..., Any]:
        """Return the handler registered for ``identifier``.

        The returned callable is exactly what was registered; for
        instance methods taken from a class it is the unbound function.
        """
        return self.lookup(identifier, category).handler

    def commands(self, category: Any = None) -> List[str]:
        """Sorted identifiers in ``category`` (or every category)."""
        commands = self._commands
        if category is not None:
            names = [category_name(category)]
        else:
            names = list(self._order(commands))
        found = set()
        for name in names:
            found.update(e.command for e in commands.get(name, {}).values())
        return sorted(found)

    def entries(self) -> List[CommandEntry]:
        """All entries, grouped by category in search order."""
        commands = self._commands
        result = []
        for name in self._order(commands):
            result.extend(commands.get(name, {}).values())
        return result

    def __contains__(self, identifier: object) -> bool:
        if not isinstance(identifier, str):
            return False
        key = self._key(identifier)
        return any(key in cmds for cmds in self._commands.values())

    def __len__(self) -> int:
        return sum(len(cmds) for cmds in self._commands.values())

    def __repr__(self) -> str:
        commands = self._commands
        counts = ", ".join(f"{name}={len(commands.get(name, {}))}" for name in self._order(commands))
        return f"{self.__class__.__name__}({counts})"

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def validate(
        self,
        identifier: str,
        arguments: Sequence[Any],
        *,
        category: Any = None,
    ) -> CommandEntry:
        """Resolve ``identifier`` and check ``arguments`` against it.

        Raises:
            CommandNotFoundError: Unknown identifier.
            ArgumentCountError: Wrong number of arguments.
            ArgumentTypeError: First argument whose type does not match.
        """
        entry = self._lookup_for_dispatch(identifier, category)
        try:
            entry.signature.check(arguments, self.type_check, command=entry.command)
        except CommandArgumentError as e:
            dispatch_logger.warning(
                "command_arguments_rejected",
                command=entry.command,
                category=entry.category,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise
        return entry

    async def dispatch(
        self,
        identifier: str,
        arguments: Sequence[Any] = (),
        *,
        category: Any = None,
        target: Any = None,
    ) -> Any:
        """Validate ``arguments`` and invoke the handler.

        Coroutine handlers are awaited; plain functions are called
        directly. The handler's return value is returned unchanged.

        Args:
            identifier: Command name.
            arguments: Positional arguments for the handler.
            category: Restrict lookup to one category.
            target: Instance to bind unbound instance-method handlers
                to. Defaults to the registry owner.
        """
        entry = self.validate(identifier, arguments, category=category)
        return await self._invoke(entry, tuple(arguments), target)

    async def dispatch_update(
        self,
        identifier: str,
        client: Any,
        update: Any,
        *,
        category: Any = None,
        target: Any = None,
    ) -> Any:
        """Invoke a handler with the fixed ``(client, update)`` pair.

        Arity and type checks are skipped; handlers used through this
        path are expected to take exactly ``(client, update)``.
        """
        entry = self._lookup_for_dispatch(identifier, category)
        return await self._invoke(entry, (client, update), target)

    def _lookup_for_dispatch(self, identifier: str, category: Any) -> CommandEntry:
        try:
            return self.lookup(identifier, category)
        except CommandNotFoundError:
            dispatch_logger.warning(
                "command_not_found",
                command=identifier,
                category=category_name(category) if category is not None else None,
            )
            raise

    async def _invoke(self, entry: CommandEntry, arguments: Tuple[Any, ...], target: Any) -> Any:
        if entry.needs_target:
            if target is None:
                target = self.owner
            if target is None:
                raise MissingTargetError(entry.command, handler=entry.qualname)

        dispatch_logger.info(
            "command_dispatch",
            command=entry.command,
            category=entry.category,
            handler=entry.qualname,
            args=len(arguments),
        )
        result = entry.bind(target)(*arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


def _source_name(source: Any) -> str:
    if isinstance(source, type) or inspect.ismodule(source):
        return getattr(source, "__qualname__", None) or source.__name__
    return type(source).__qualname__
