"""Credential hashing."""

import hmac

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password for storage.

    Args:
        password: Plain text password

    Returns:
        Hashed password
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, stored_credential: str) -> bool:
    """Verify a plain password against a stored credential.

    Snapshots exported by older deployments carry plain-text passwords; those
    are compared in constant time instead of being rejected.

    Args:
        plain_password: Plain text password
        stored_credential: Hash (or legacy plain text) to compare against

    Returns:
        True if passwords match, False otherwise
    """
    if not stored_credential:
        return False
    if pwd_context.identify(stored_credential) is None:
        return hmac.compare_digest(plain_password.encode(), stored_credential.encode())
    return pwd_context.verify(plain_password, stored_credential)
