"""Identity provider admin client (user invites and deletes)"""

import logging
from typing import Optional

import httpx

from ...config import IDENTITY_HTTP_TIMEOUT_SECONDS, SUPABASE_SERVICE_ROLE_KEY, SUPABASE_URL

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """The identity provider refused or could not be reached"""


class IdentityAdminClient:
    """Calls the auth admin API with the service role key"""

    def __init__(
        self,
        base_url: str = SUPABASE_URL,
        service_role_key: Optional[str] = SUPABASE_SERVICE_ROLE_KEY,
        timeout: float = IDENTITY_HTTP_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict:
        return {
            "apikey": self.service_role_key or "",
            "Authorization": f"Bearer {self.service_role_key}",
            "Content-Type": "application/json",
        }

    def _client(self) -> httpx.AsyncClient:
        if not self.base_url or not self.service_role_key:
            raise IdentityError("Identity admin API is not configured")
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def invite_user(self, email: str, metadata: dict) -> dict:
        """Invite by email (the provider sends the setup email). Returns the new user."""
        async with self._client() as http_client:
            try:
                response = await http_client.post(
                    f"{self.base_url}/auth/v1/invite",
                    json={"email": email, "data": metadata},
                    headers=self._headers(),
                )
            except httpx.HTTPError as e:
                logger.error(f"❌ Invite request failed: {e}")
                raise IdentityError("Could not reach the identity provider") from e

        if response.status_code not in (200, 201):
            logger.error(f"❌ Invite rejected ({response.status_code}): {response.text}")
            raise IdentityError(_error_message(response))

        user = response.json()
        user = user.get("user", user)
        if not user.get("id"):
            raise IdentityError("Invalid response from identity provider")
        logger.info(f"✅ Invited {email} as {user['id']}")
        return user

    async def delete_user(self, user_id: str) -> None:
        async with self._client() as http_client:
            try:
                response = await http_client.delete(
                    f"{self.base_url}/auth/v1/admin/users/{user_id}",
                    headers=self._headers(),
                )
            except httpx.HTTPError as e:
                raise IdentityError("Could not reach the identity provider") from e

        if response.status_code not in (200, 204):
            logger.error(f"❌ Delete of auth user {user_id} failed ({response.status_code}): {response.text}")
            raise IdentityError(_error_message(response))
        logger.info(f"🗑️ Auth user {user_id} deleted")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Identity provider returned {response.status_code}"
    if not isinstance(body, dict):
        return str(body)
    return body.get("msg") or body.get("message") or body.get("error_description") or body.get("error") or str(body)


def get_identity_client() -> IdentityAdminClient:
    return IdentityAdminClient()
