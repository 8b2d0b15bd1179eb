"""
Message Models

Leveled messages produced while a deployment runs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Iterator, List, Optional, Tuple


class Severity(Enum):
    """Severity of a deployment message."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Message:
    """A single leveled message."""

    severity: Severity
    text: str

    def to_dict(self) -> dict:
        return {"severity": self.severity.value, "text": self.text}

    def __str__(self) -> str:
        return f"[{self.severity.value.upper()}] {self.text}"


MessageListener = Callable[[Message], None]


class MessageLog:
    """
    Append-only, ordered message stream.

    An optional listener sees every message the moment it is appended,
    which lets the console renderer show progress while stages run.
    """

    def __init__(self, listener: Optional[MessageListener] = None):
        self._messages: List[Message] = []
        self._listener = listener

    def append(self, message: Message) -> None:
        self._messages.append(message)
        if self._listener is not None:
            self._listener(message)

    def extend(self, messages: Iterable[Message]) -> None:
        for message in messages:
            self.append(message)

    def info(self, text: str) -> None:
        self.append(Message(Severity.INFO, text))

    def warning(self, text: str) -> None:
        self.append(Message(Severity.WARNING, text))

    def error(self, text: str) -> None:
        self.append(Message(Severity.ERROR, text))

    @property
    def messages(self) -> Tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def has_errors(self) -> bool:
        return any(m.severity is Severity.ERROR for m in self._messages)

    @property
    def has_warnings(self) -> bool:
        return any(m.severity is Severity.WARNING for m in self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
