"""
Email sending through the Resend HTTP API
"""
import logging
from dataclasses import dataclass
from typing import List, Union

import requests

from exceptions import ConfigurationError, EmailError

logger = logging.getLogger(__name__)


@dataclass
class EmailMessage:
    to: Union[str, List[str]]
    subject: str
    html: str
    from_name: str = 'SchoolDesk'

    @property
    def recipients(self):
        return [self.to] if isinstance(self.to, str) else list(self.to)


class EmailService:
    """Posts rendered messages to Resend; one request per message"""

    def __init__(self, api_key, from_address='onboarding@resend.dev',
                 api_url='https://api.resend.com/emails', session=None, timeout=15):
        self.api_key = api_key
        self.from_address = from_address
        self.api_url = api_url
        self.session = session or requests.Session()
        self.timeout = timeout

    def sender(self, name):
        return f"{name} <{self.from_address}>"

    def send(self, message: EmailMessage) -> dict:
        """Send one message and return the provider's JSON body (contains the message id)"""
        if not self.api_key:
            raise ConfigurationError('RESEND_API_KEY is not configured')
        if not message.recipients:
            raise EmailError('Email has no recipient')

        payload = {
            'from': self.sender(message.from_name),
            'to': message.recipients,
            'subject': message.subject,
            'html': message.html,
        }
        try:
            response = self.session.post(
                self.api_url,
                json=payload,
                headers={'Authorization': f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("Email to %s failed: %s", message.recipients, e)
            raise EmailError(f"Email request failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not 200 <= response.status_code < 300:
            detail = body.get('message') if isinstance(body, dict) else None
            logger.error("Resend rejected email to %s: %s", message.recipients,
                         detail or response.status_code)
            raise EmailError(detail or f"HTTP {response.status_code}", status_code=response.status_code)

        logger.info("Email sent to %s: %s", message.recipients, message.subject)
        return body
