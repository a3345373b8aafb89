"""
Token authentication for the API.

Kept in its own module so ``REST_FRAMEWORK`` settings can reference it
without importing any view code.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions


class TokenAuthentication(authentication.TokenAuthentication):
    """``Authorization: Token <key>``; tokens of deactivated users are refused."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        if user.role != 'super_admin' and user.active_hospital_id and user.active_hospital.status != 'active':
            raise exceptions.AuthenticationFailed('Hospital is not active.')
        return user, token
