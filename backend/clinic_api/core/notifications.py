from abc import ABC, abstractmethod
from loguru import logger
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from starlette.concurrency import run_in_threadpool

from clinic_api.core.errors import DeliveryError

invite_msg = '''
Your clinic has created a patient account for you.

Sign in with:
  Email: {email}
  Password: {password}

Please change your password after your first sign-in.

Warm regards,
Clinic Administration'''


class InviteMailer(ABC):
    @abstractmethod
    async def send_invite(self, to_email: str, name: str, login_email: str, password: str) -> None:
        pass


class SendGridInviteMailer(InviteMailer):
    def __init__(self, api_key: str, from_email: str):
        self.client = SendGridAPIClient(api_key)
        self.from_email = from_email

    async def send_invite(self, to_email: str, name: str, login_email: str, password: str) -> None:
        message = Mail(
            from_email=self.from_email,
            to_emails=to_email,
            subject=f"Welcome {name} - your patient account",
            plain_text_content=invite_msg.format(email=login_email, password=password)
        )
        try:
            response = await run_in_threadpool(self.client.send, message)
        except Exception as e:
            logger.error(f"Invite e-mail to {to_email} failed: {e}")
            raise DeliveryError() from e

        if response.status_code >= 300:
            logger.error(f"Invite e-mail to {to_email} rejected with status {response.status_code}")
            raise DeliveryError()

        logger.info(f"Invite e-mail sent to {to_email}")
