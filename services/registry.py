from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Iterator, List, Optional

import logging

if TYPE_CHECKING:
    from core.context import BotContext
    from core.invocation import Invocation


log = logging.getLogger(__name__)

Handler = Callable[["BotContext", "Invocation"], Awaitable[None]]


@dataclass
class CommandEntry:
    name: str
    handler: Handler
    mod_only: bool = False
    description: str = ""
    usage: str = ""
    category: str = "General"


class CommandRegistry:
    def __init__(self) -> None:
        self._commands: Dict[str, CommandEntry] = {}

    def register(
        self,
        name: str,
        handler: Handler,
        *,
        mod_only: bool = False,
        description: str = "",
        usage: str = "",
        category: str = "General",
    ) -> CommandEntry:
        key = name.lower()
        if key in self._commands:
            log.debug("Replacing handler for command %s", key)
        entry = CommandEntry(
            name=key,
            handler=handler,
            mod_only=mod_only,
            description=description,
            usage=usage or key,
            category=category,
        )
        self._commands[key] = entry
        return entry

    def get(self, name: str) -> Optional[CommandEntry]:
        return self._commands.get(name.lower())

    def names(self) -> List[str]:
        return sorted(self._commands)

    def entries(self) -> List[CommandEntry]:
        return [self._commands[name] for name in self.names()]

    def by_category(self) -> Dict[str, List[CommandEntry]]:
        grouped: Dict[str, List[CommandEntry]] = {}
        for entry in self.entries():
            grouped.setdefault(entry.category, []).append(entry)
        return grouped

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[CommandEntry]:
        return iter(self.entries())
