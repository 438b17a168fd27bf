"""
SSO verification: exchanges a session token for the caller's identity.
"""

import logging
from typing import Optional

import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class SSOVerificationError(Exception):
    """The token is missing, rejected or could not be verified"""


class SSOUser(BaseModel):
    id: str
    email: Optional[str] = None


class SSOClient:
    """GETs the verify endpoint with the token as a Bearer credential"""

    def __init__(self, verify_url: str, timeout: float = 5.0):
        self.verify_url = verify_url
        self.timeout = timeout

    def verify(self, token: Optional[str]) -> SSOUser:
        if not token:
            raise SSOVerificationError("No SSO token supplied")

        try:
            response = requests.get(
                self.verify_url,
                headers={'Authorization': f'Bearer {token}'},
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.warning(f"SSO verification failed: {e}")
            raise SSOVerificationError(f"SSO verification failed: {e}")
        except ValueError as e:
            raise SSOVerificationError(f"SSO endpoint returned invalid JSON: {e}")

        user = data.get('user', data) if isinstance(data, dict) else None
        if not isinstance(user, dict) or not user.get('id'):
            raise SSOVerificationError("SSO response has no user id")

        return SSOUser(id=str(user['id']), email=user.get('email'))
