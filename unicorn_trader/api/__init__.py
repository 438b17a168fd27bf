"""
HTTP surface and SSO verification.
"""

from .server import create_app
from .sso import SSOClient, SSOUser, SSOVerificationError

__all__ = ['create_app', 'SSOClient', 'SSOUser', 'SSOVerificationError']
