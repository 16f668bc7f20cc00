"""Push channel port: best-effort delivery of a message to a recipient's devices.

The tracking core decides what to say and when; how the message reaches a
phone (FCM, APNs, a web push service) is the adapter's business.
"""

from abc import ABC, abstractmethod
from typing import Literal, NotRequired, TypedDict

SENT = "sent"
FAILED = "failed"


class DeliveryResult(TypedDict):
    message_id: str | None
    status: Literal["sent", "failed"]
    error: NotRequired[str]


class PushPort(ABC):
    @abstractmethod
    def send(
        self,
        recipient_id: str,
        title: str,
        body: str,
        data: dict | None = None,
    ) -> DeliveryResult:
        """Deliver to every device registered for ``recipient_id``.

        A refused delivery comes back as ``status == "failed"``; an
        unreachable provider may raise. Callers treat both as non-fatal.
        """
        ...
