"""
Centralized Email Client for service-to-service email communication.

Other services hand templated messages to the Communications Service, which
owns every template and the actual delivery (email/SMS). This client handles:
- Service-role JWT authentication for inter-service calls
- Singleton pattern for reuse across a service's lifetime

Usage:
    from libs.common.emails.client import get_email_client

    email_client = get_email_client()

    await email_client.send_template(
        template_type="event_waitlist_promotion",
        to_email="member@example.com",
        template_data={"member_name": "Sam", "event_title": "Steel Match"},
    )
"""

from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


class EmailClient:
    """
    HTTP client for sending templated emails through the Communications Service.

    Templates live exclusively in the Communications Service, so there is no
    local fallback: if it is unreachable the send is logged and reported as
    failed.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0):
        settings = get_settings()
        self.base_url = base_url or settings.COMMUNICATIONS_SERVICE_URL
        self.timeout = timeout

    def _get_auth_headers(self) -> dict[str, str]:
        """
        Short-lived service-role JWT, matching what the Communications
        Service's email endpoints require.
        """
        from libs.auth.dependencies import _service_role_jwt

        token = _service_role_jwt("email_client")
        return {"Authorization": f"Bearer {token}"}

    async def send_template(
        self,
        template_type: str,
        to_email: str,
        template_data: dict[str, Any],
    ) -> bool:
        """
        Send a templated email through the Communications Service.

        Event registration template types:
        - event_registration_confirmed: Member holds a confirmed spot
        - event_waitlisted: Event was full, member added to the waitlist
        - event_registration_cancelled: Member cancelled (includes refund percent)
        - event_waitlist_promotion: Member moved off the waitlist
        - event_cancelled: The club cancelled the event

        Returns:
            True if email was sent successfully, False otherwise
        """
        payload = {
            "template_type": template_type,
            "to_email": to_email,
            "template_data": template_data,
        }

        try:
            headers = self._get_auth_headers()
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/email/template",
                    json=payload,
                    headers=headers,
                )
                if response.status_code == 200:
                    result = response.json()
                    return result.get("success", False)
                logger.error(
                    "Template email API returned %s: %s",
                    response.status_code,
                    response.text,
                )
                return False
        except httpx.RequestError as e:
            logger.error("Failed to connect to Communications Service: %s", e)
            logger.warning(
                "Template email '%s' could not be sent: Communications Service unreachable",
                template_type,
            )
            return False


# Singleton instance for convenience
_email_client: Optional[EmailClient] = None


def get_email_client() -> EmailClient:
    """Get or create the singleton EmailClient instance."""
    global _email_client
    if _email_client is None:
        _email_client = EmailClient()
    return _email_client
