"""Pushover notification support: match alerts and error alerting."""

from __future__ import annotations

import logging
import os

import requests

from matchwatch.preferences import KeyValueStore

logger = logging.getLogger(__name__)

PUSHOVER_MESSAGES_URL = "https://api.pushover.net/1/messages.json"
PUSHOVER_VALIDATE_URL = "https://api.pushover.net/1/users/validate.json"

PERMISSION_KEY = "notificationPermission"
GRANTED = "granted"
DENIED = "denied"


def _post(url: str, data: dict) -> requests.Response:
    resp = requests.post(url, data=data, timeout=10)
    resp.raise_for_status()
    return resp


class PushoverNotifier:
    """Notification sink delivering through Pushover.

    "Permission" means credentials are configured and the user key has been
    validated once; the outcome is remembered in the key-value store.
    """

    def __init__(self, store: KeyValueStore, user_key: str = "", api_token: str = "") -> None:
        self._store = store
        self.user_key = user_key
        self.api_token = api_token

    @property
    def configured(self) -> bool:
        return bool(self.user_key and self.api_token)

    def permission_granted(self) -> bool:
        return self.configured and self._store.get(PERMISSION_KEY) == GRANTED

    def request_permission(self) -> bool:
        if not self.configured:
            logger.warning("Pushover not configured (set PUSHOVER_USER_KEY and PUSHOVER_API_TOKEN)")
            return False
        try:
            resp = requests.post(
                PUSHOVER_VALIDATE_URL,
                data={"token": self.api_token, "user": self.user_key},
                timeout=10,
            )
        except requests.RequestException as e:
            logger.error("Could not reach Pushover to validate user key: %s", e)
            return False

        # Pushover answers 4xx with status 0 for an invalid user or token
        try:
            granted = resp.json().get("status") == 1
        except ValueError:
            granted = False
        if not granted and resp.status_code >= 500:
            logger.error("Pushover validation unavailable (HTTP %s)", resp.status_code)
            return False

        self._store.set(PERMISSION_KEY, GRANTED if granted else DENIED)
        return granted

    def emit(self, title: str, body: str, icon_url: str | None = None) -> bool:
        # Pushover icons are per application; icon_url is not sent
        if not self.permission_granted():
            logger.info("Notification permission not granted.")
            return False

        data = {
            "token": self.api_token,
            "user": self.user_key,
            "title": title,
            "message": body,
            "priority": 0,
        }
        try:
            _post(PUSHOVER_MESSAGES_URL, data)
        except requests.RequestException as e:
            logger.error("Failed to send Pushover notification: %s", e)
            return False
        logger.info("Pushover notification sent: %s", title)
        return True


def send_error_notification(message: str, title: str = "Match Watch Error") -> bool:
    """Send an operator error notification via Pushover.

    Reads PUSHOVER_USER_KEY and PUSHOVER_API_TOKEN from environment.
    Returns True if sent, False if credentials missing or send failed.
    """
    user_key = os.environ.get("PUSHOVER_USER_KEY", "")
    api_token = os.environ.get("PUSHOVER_API_TOKEN", "")

    if not user_key or not api_token:
        logger.warning("Pushover not configured (set PUSHOVER_USER_KEY and PUSHOVER_API_TOKEN)")
        return False

    try:
        _post(
            PUSHOVER_MESSAGES_URL,
            {
                "token": api_token,
                "user": user_key,
                "title": title,
                "message": message,
                "priority": 0,
            },
        )
    except requests.RequestException as e:
        logger.error("Failed to send Pushover notification: %s", e)
        return False
    logger.info("Pushover notification sent: %s", title)
    return True
