from __future__ import annotations

from functools import lru_cache
from typing import Any

import boto3
from botocore.exceptions import ClientError

from ..db.dynamodb.client import botocore_config
from ..observability.logging import get_logger
from ..settings import settings

log = get_logger("email_ses")

MAX_SUBJECT_LENGTH = 200


@lru_cache(maxsize=1)
def _sesv2():
    # Shared by the reminder worker threads.
    return boto3.client("sesv2", region_name=settings.aws_region, config=botocore_config())


def _utf8(data: str) -> dict[str, str]:
    return {"Data": data, "Charset": "UTF-8"}


def send_text_email(*, to_email: str, from_email: str, subject: str, text: str) -> dict[str, Any]:
    """
    Send a plain-text message through SES v2.

    Returns {"ok": True, "messageId": ...} or {"ok": False, "error": <reason>}.
    SES rejections (unverified sender, suppressed recipient) come back as a
    result; transport failures propagate.
    """
    recipient = str(to_email or "").strip()
    sender = str(from_email or "").strip()
    if not recipient or not sender:
        return {"ok": False, "error": "missing_to_or_from"}

    title = " ".join(str(subject or "").split())[:MAX_SUBJECT_LENGTH] or "Upcoming deadlines"
    body = str(text or "").strip() or "(no upcoming deadlines)"

    try:
        resp = _sesv2().send_email(
            FromEmailAddress=sender,
            Destination={"ToAddresses": [recipient]},
            Content={"Simple": {"Subject": _utf8(title), "Body": {"Text": _utf8(body)}}},
        )
    except ClientError as e:
        code = str(((e.response or {}).get("Error") or {}).get("Code") or "ClientError")
        log.warning("ses_send_rejected", code=code)
        return {"ok": False, "error": code}

    return {"ok": True, "messageId": (resp or {}).get("MessageId")}
