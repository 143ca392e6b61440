"""
Transactional email via the Resend API.

Resend API Documentation: https://resend.com/docs/api-reference/emails/send-email
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import requests

from ideagen.config import REQUEST_TIMEOUT, RESEND_API_KEY
from ideagen.errors import NotificationDispatchFailure


class Mailer(ABC):
    """Sends one HTML email and returns the provider's message id."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def send(self, from_addr: str, to: str, subject: str, html: str) -> Optional[str]:
        """
        Send an email.

        Returns:
            Provider message id.

        Raises:
            NotificationDispatchFailure: If the provider rejects the message.
        """
        pass


class ResendMailer(Mailer):

    API_URL = "https://api.resend.com/emails"

    def __init__(self, api_key: Optional[str] = None):
        self.api_key = api_key or RESEND_API_KEY

    @property
    def name(self) -> str:
        return "resend"

    def send(self, from_addr: str, to: str, subject: str, html: str) -> Optional[str]:
        try:
            response = requests.post(
                self.API_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={"from": from_addr, "to": [to], "subject": subject, "html": html},
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise NotificationDispatchFailure(to, str(e)) from e

        if response.status_code not in (200, 201):
            try:
                message = response.json().get("message", response.text)
            except ValueError:
                message = response.text
            raise NotificationDispatchFailure(to, f"Resend error ({response.status_code}): {message}")

        return response.json().get("id")


class MockMailer(Mailer):
    """Logs the email instead of sending it. Keeps a copy of every message."""

    MESSAGE_ID = "mock-email-id"

    def __init__(self):
        self.sent: List[Tuple[str, str, str, str]] = []

    @property
    def name(self) -> str:
        return "mock-mail"

    def send(self, from_addr: str, to: str, subject: str, html: str) -> Optional[str]:
        self.sent.append((from_addr, to, subject, html))
        print("[mock-mail] Email would be sent:")
        print(f"[mock-mail]   To: {to}")
        print(f"[mock-mail]   Subject: {subject}")
        print(f"[mock-mail]   From: {from_addr}")
        print(f"[mock-mail]   HTML: {html[:200]}...")
        return self.MESSAGE_ID
