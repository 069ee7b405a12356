"""cmdwire: command registration and dispatch for chat bots.

Handlers are tagged with text/callback/reply command markers,
registered into an explicit CommandRegistry at startup, and invoked by
identifier with argument validation.
"""

from .exceptions import (
    ArgumentCountError,
    ArgumentTypeError,
    CmdwireError,
    CommandArgumentError,
    CommandNotFoundError,
    ConfigurationError,
    DuplicateCommandError,
    InvalidCommandError,
    MarkerError,
    MissingTargetError,
    RegistrySealedError,
)
from .host import CommandHost
from .markers import callback_command, command, get_markers, reply_command, text_command
from .models import DEFAULT_PRIORITY, Category, CommandEntry
from .registry import CommandRegistry
from .signature import HandlerSignature

__all__ = [
    # Registry
    "CommandRegistry",
    "CommandHost",
    "CommandEntry",
    "HandlerSignature",
    "Category",
    "DEFAULT_PRIORITY",
    # Markers
    "command",
    "text_command",
    "callback_command",
    "reply_command",
    "get_markers",
    # Errors
    "CmdwireError",
    "DuplicateCommandError",
    "CommandNotFoundError",
    "CommandArgumentError",
    "ArgumentCountError",
    "ArgumentTypeError",
    "InvalidCommandError",
    "MarkerError",
    "MissingTargetError",
    "RegistrySealedError",
    "ConfigurationError",
]
