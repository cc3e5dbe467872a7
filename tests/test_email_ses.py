from __future__ import annotations

from botocore.exceptions import ClientError

import opptrack.services.email_ses as email_ses


class FakeSes:
    def __init__(self, error_code: str | None = None):
        self.calls: list[dict] = []
        self.error_code = error_code

    def send_email(self, **kwargs):
        self.calls.append(kwargs)
        if self.error_code:
            raise ClientError({"Error": {"Code": self.error_code, "Message": "no"}}, "SendEmail")
        return {"MessageId": "msg-1"}


def test_sends_plain_text(monkeypatch):
    ses = FakeSes()
    monkeypatch.setattr(email_ses, "_sesv2", lambda: ses)

    out = email_ses.send_text_email(
        to_email=" a@example.com ", from_email="noreply@example.com", subject="2 deadlines\ncoming", text="body"
    )
    assert out == {"ok": True, "messageId": "msg-1"}
    sent = ses.calls[0]
    assert sent["Destination"] == {"ToAddresses": ["a@example.com"]}
    assert sent["Content"]["Simple"]["Subject"]["Data"] == "2 deadlines coming"
    assert sent["Content"]["Simple"]["Body"]["Text"]["Data"] == "body"


def test_missing_addresses_skip_ses(monkeypatch):
    ses = FakeSes()
    monkeypatch.setattr(email_ses, "_sesv2", lambda: ses)

    assert email_ses.send_text_email(to_email="", from_email="x@example.com", subject="s", text="t") == {
        "ok": False,
        "error": "missing_to_or_from",
    }
    assert ses.calls == []


def test_ses_rejection_is_a_result(monkeypatch):
    monkeypatch.setattr(email_ses, "_sesv2", lambda: FakeSes(error_code="MessageRejected"))
    out = email_ses.send_text_email(to_email="a@example.com", from_email="x@example.com", subject="s", text="t")
    assert out == {"ok": False, "error": "MessageRejected"}
