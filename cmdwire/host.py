"""Base class for bot objects whose own methods are command handlers.

Subclass CommandHost, mark methods with the decorators from
cmdwire.markers, and the instance registers its own class on
construction. Handlers are invoked on the host instance.

Example::

    class EchoBot(CommandHost):
        @text_command("echo")
        async def echo(self, client, update):
            await client.send_message(update.chat_id, update.text)

    bot = EchoBot()
    await bot.process_update("echo", client, update)
"""

from typing import Any, Iterable, List, Optional, Sequence

from .config import Config
from .models import CommandEntry
from .registry import CommandRegistry


class CommandHost:
    """Owns a CommandRegistry and is the target for its handlers.

    Args:
        config: Settings for the registry. None uses the registry
            defaults without touching the global config.
        sources: Extra classes/instances/modules to register after the
            host's own class.
    """

    def __init__(self, config: Optional[Config] = None, sources: Iterable[Any] = ()):
        if config is not None:
            self.registry = CommandRegistry.from_config(config, owner=self)
        else:
            self.registry = CommandRegistry(owner=self)
        self.registry.register(type(self))
        for source in sources:
            self.registry.register(source)

    def register_commands(self, source: Any, category: Any = None) -> List[CommandEntry]:
        """Register marked members of another class, instance or module."""
        return self.registry.register(source, category)

    async def process_command(
        self,
        command: str,
        arguments: Sequence[Any] = (),
        category: Any = None,
    ) -> Any:
        """Dispatch with argument validation; handlers run on this host."""
        return await self.registry.dispatch(command, arguments, category=category, target=self)

    async def process_update(
        self,
        command: str,
        client: Any,
        update: Any,
        category: Any = None,
    ) -> Any:
        """Dispatch the fixed (client, update) pair without validation."""
        return await self.registry.dispatch_update(
            command, client, update, category=category, target=self
        )
