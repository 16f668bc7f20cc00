"""Fake push adapter: keeps delivered pushes in memory."""

from uuid import uuid4

from tracking.channel.push_port import FAILED, SENT, DeliveryResult, PushPort


class FakePushAdapter(PushPort):
    def __init__(self):
        self.sent_pushes: list[dict] = []
        self.attempts = 0
        self.reset()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Push delivery failed",
        should_raise: bool = False,
    ):
        """``should_raise`` simulates an unreachable provider; ``should_succeed=False`` a refused delivery."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.should_raise = should_raise

    def send(
        self,
        recipient_id: str,
        title: str,
        body: str,
        data: dict | None = None,
    ) -> DeliveryResult:
        self.attempts += 1
        if self.should_raise:
            raise ConnectionError(self.failure_reason)
        if not self.should_succeed:
            return {"message_id": None, "status": FAILED, "error": self.failure_reason}

        message_id = f"push-{uuid4().hex[:12]}"
        self.sent_pushes.append(
            {
                "message_id": message_id,
                "recipient_id": recipient_id,
                "title": title,
                "body": body,
                "data": dict(data or {}),
            }
        )
        return {"message_id": message_id, "status": SENT}

    def pushes_for(self, recipient_id: str) -> list[dict]:
        return [p for p in self.sent_pushes if p["recipient_id"] == recipient_id]

    def reset(self):
        self.sent_pushes.clear()
        self.attempts = 0
        self.configure()
