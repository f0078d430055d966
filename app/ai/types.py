from dataclasses import dataclass
from typing import Literal, Protocol, Sequence


Role = Literal["system", "user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


class AIClient(Protocol):
    @property
    def model(self) -> str: ...

    async def complete_json(self, messages: Sequence[ChatMessage]) -> str: ...
