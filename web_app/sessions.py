"""Bearer-token sessions for signed-in users."""

import secrets
from typing import Dict, Optional


class SessionManager:
    """Maps opaque bearer tokens to user ids, in process memory.

    Only the user id is remembered; the role is read from the registry on
    every request so role changes and deletions take effect immediately.
    """

    def __init__(self):
        self._tokens: Dict[str, str] = {}

    def issue(self, user_id: str) -> str:
        token = secrets.token_urlsafe(32)
        self._tokens[token] = user_id
        return token

    def resolve(self, token: str) -> Optional[str]:
        return self._tokens.get(token)

    def revoke(self, token: str) -> bool:
        return self._tokens.pop(token, None) is not None

    def revoke_user(self, user_id: str) -> int:
        """Drop every token of a user; returns how many were dropped."""
        stale = [token for token, owner in self._tokens.items() if owner == user_id]
        for token in stale:
            del self._tokens[token]
        return len(stale)
