from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    message: str


class MessageDispatcher(Protocol):
    def send(self, *, phone: str, template_id: str, template_data: dict, tracking_id: str) -> DispatchResult: ...
