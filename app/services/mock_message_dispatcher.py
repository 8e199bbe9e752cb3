from __future__ import annotations

from dataclasses import dataclass

from app.services.message_dispatcher import DispatchResult


@dataclass(frozen=True)
class SentMessage:
    phone: str
    template_id: str
    template_data: dict
    tracking_id: str


class MockMessageDispatcher:
    def __init__(self, failures: dict[str, str] | None = None) -> None:
        # phone -> failure message
        self.failures = failures or {}
        self.sent: list[SentMessage] = []

    def send(self, *, phone: str, template_id: str, template_data: dict, tracking_id: str) -> DispatchResult:
        self.sent.append(
            SentMessage(phone=phone, template_id=template_id, template_data=template_data, tracking_id=tracking_id)
        )
        if phone in self.failures:
            return DispatchResult(success=False, message=self.failures[phone])
        return DispatchResult(success=True, message='Success')
