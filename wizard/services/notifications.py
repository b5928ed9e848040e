"""Invitation email dispatch through the mailer function."""

import logging

import httpx

from wizard.config import settings

logger = logging.getLogger(__name__)


class InvitationMailer:
    """Posts invitation requests to the configured email function."""

    def __init__(self, url: str = None):
        """Initialize with settings.INVITATION_EMAIL_URL by default."""
        self.url = url if url is not None else settings.INVITATION_EMAIL_URL

    def send_invitation(
        self,
        recipient_email: str,
        project_name: str,
        project_id,
        inviter_name: str,
        role: str,
    ) -> bool:
        """
        Send one invitation email.

        Returns:
            True if the function accepted the request. Failures are logged,
            not raised; the invitation row stays pending either way.
        """
        if not self.url:
            logger.info(f"INVITATION_EMAIL_URL not set, not emailing {recipient_email}")
            return False

        payload = {
            "recipientEmail": recipient_email,
            "projectName": project_name,
            "projectId": str(project_id),
            "inviterName": inviter_name,
            "role": role,
        }
        try:
            with httpx.Client(timeout=15.0) as client:
                response = client.post(self.url, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send invitation email to {recipient_email}: {e}", exc_info=True)
            return False

        logger.info(f"Invitation email sent to {recipient_email}")
        return True
