from __future__ import annotations

from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..observability.logging import get_logger
from ..settings import Settings, get_settings

log = get_logger("email")


def _sesv2_client(region: str):
    return boto3.client("sesv2", region_name=region)


class EmailService:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def send_text_email(self, *, to_email: str, subject: str, text: str) -> dict[str, Any]:
        to_ = str(to_email or "").strip()
        frm = str(self.settings.email_from or "").strip()
        subj = str(subject or "").strip()[:200] or "VNS Travel"
        body = str(text or "").strip() or "(empty)"
        if not to_ or not frm:
            log.info("email_skipped", reason="missing_to_or_from")
            return {"ok": False, "error": "missing_to_or_from"}

        try:
            resp = _sesv2_client(self.settings.aws_region).send_email(
                FromEmailAddress=frm,
                Destination={"ToAddresses": [to_]},
                Content={
                    "Simple": {
                        "Subject": {"Data": subj},
                        "Body": {"Text": {"Data": body}},
                    }
                },
            )
        except (BotoCoreError, ClientError) as e:
            log.warning("email_send_failed", error_type=type(e).__name__)
            return {"ok": False, "error": "send_failed"}

        msg_id = (resp or {}).get("MessageId") if isinstance(resp, dict) else None
        log.info("email_sent", message_id=msg_id)
        return {"ok": True, "messageId": msg_id}

    def send_otp_email(self, *, to_email: str, code: str, ttl_seconds: int) -> dict[str, Any]:
        minutes = max(1, int(ttl_seconds) // 60)
        text = (
            f"Your VNS Travel password reset code is {code}.\n\n"
            f"It expires in {minutes} minute{'s' if minutes != 1 else ''}. "
            "If you did not request a password reset, you can ignore this email."
        )
        return self.send_text_email(
            to_email=to_email, subject="Your password reset code", text=text
        )


def get_email_service() -> EmailService:
    return EmailService()
