"""
Token authentication for staff clients.

Kept in its own module so settings can reference it without importing
any views during REST framework initialisation.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class TokenAuthentication(authentication.TokenAuthentication):
    """``Authorization: Token <key>`` that also refuses suspended accounts."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if getattr(user, 'status', 'active') == 'suspended':
            raise exceptions.AuthenticationFailed('Account suspended.')
        return user, token
