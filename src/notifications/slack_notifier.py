"""
Slack Notifier for Review Trust
===============================

Sends admin alerts to Slack when a review is flagged as suspicious.

Configuration:
    SLACK_WEBHOOK_URL: Slack incoming webhook URL (from .env)
    ENABLE_NOTIFICATIONS: "true" to enable notifications (from .env)
"""

import os
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests

from .dispatcher import AdminNotifier, NotificationDispatchError

logger = logging.getLogger(__name__)

FLAG_LABELS = {
    "duplicate_content": "Duplicate of an earlier review",
    "low_effort_extreme_rating": "Extreme rating with almost no text",
    "rating_outlier": "Rating far from the event average",
    "burst_submission": "Many reviews in a short window",
    "generic_language": "Generic or templated wording",
    "new_account_rapid_review": "Brand-new account",
}


class SlackNotifier(AdminNotifier):
    """
    Sends Slack alerts for suspicious reviews.

    Uses Slack Incoming Webhooks for simple, stateless notifications.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        enabled: Optional[bool] = None,
        admin_url: str = "http://localhost:3000/admin/reviews",
    ):
        """
        Initialize Slack notifier.

        Args:
            webhook_url: Slack webhook URL (default: from SLACK_WEBHOOK_URL env var)
            enabled: Enable notifications (default: from ENABLE_NOTIFICATIONS env var)
            admin_url: Moderation queue linked from the alert
        """
        self.webhook_url = webhook_url or os.getenv("SLACK_WEBHOOK_URL", "")
        enabled_env = os.getenv("ENABLE_NOTIFICATIONS", "false").lower()
        self.enabled = enabled if enabled is not None else (enabled_env == "true")
        self.admin_url = admin_url

        if self.enabled and not self.webhook_url:
            logger.warning("Slack notifications enabled but SLACK_WEBHOOK_URL not set")
            self.enabled = False

    def is_configured(self) -> bool:
        """Check if notifier is properly configured."""
        return bool(self.enabled and self.webhook_url)

    def send_suspicious_review(self, payload: Dict[str, Any]) -> None:
        if not self.is_configured():
            logger.info(
                "Slack disabled, suspicious review %s not posted", payload.get("review_id"),
                extra={"review_id": payload.get("review_id")},
            )
            return

        try:
            response = requests.post(
                self.webhook_url,
                json=self._build_message(payload),
                timeout=10,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise NotificationDispatchError(f"Slack webhook failed: {e}") from e

        logger.info(f"Slack notification sent for review {payload.get('review_id')}")

    def _build_message(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Build Slack message payload."""
        review_id = payload.get("review_id", "???")
        score = payload.get("score", 0.0)
        flags = payload.get("flags", [])

        flag_lines = [f":warning: {FLAG_LABELS.get(flag, flag)} (`{flag}`)" for flag in flags]
        if not flag_lines:
            flag_lines = ["_Score above threshold, no individual signal triggered_"]

        blocks = [
            {
                "type": "header",
                "text": {
                    "type": "plain_text",
                    "text": ":rotating_light: Suspicious review flagged",
                    "emoji": True,
                }
            },
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": f"*Review:* `{review_id}`\n*Suspicion score:* {score:.2f}",
                }
            },
            {
                "type": "divider"
            },
            {
                "type": "section",
                "text": {
                    "type": "mrkdwn",
                    "text": "\n".join(flag_lines),
                }
            },
            {
                "type": "context",
                "elements": [
                    {
                        "type": "mrkdwn",
                        "text": f"Flagged: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M')} UTC",
                    }
                ]
            },
            {
                "type": "actions",
                "elements": [
                    {
                        "type": "button",
                        "text": {
                            "type": "plain_text",
                            "text": "Open moderation queue",
                            "emoji": True,
                        },
                        "url": self.admin_url,
                        "style": "primary",
                    }
                ]
            },
        ]

        return {"text": f"Suspicious review flagged: {review_id}", "blocks": blocks}
