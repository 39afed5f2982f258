"""
Supabase authentication.

Every book row belongs to the user who created it (``books.user_id``).
These helpers wrap the Supabase auth client to sign a user up, in and
out, and to find out who is signed in. The resulting user id is what the
repositories scope their queries by.
"""

import logging
from typing import Any, Optional

from .config import Config


logger = logging.getLogger(__name__)


class AuthError(RuntimeError):
    """Sign-up or sign-in was rejected, or no user is signed in."""


def _user_id(response: Any) -> str:
    user = getattr(response, "user", None)
    if user is None:
        raise AuthError("User not authenticated")
    return str(user.id)


def sign_up(client: Any, email: str, password: str) -> str:
    try:
        response = client.auth.sign_up({"email": email, "password": password})
    except Exception as exc:
        logger.error("Sign up failed for %s: %s", email, exc)
        raise AuthError(str(exc)) from exc
    return _user_id(response)


def sign_in(client: Any, email: str, password: str) -> str:
    """Sign in with email and password and return the user id."""
    try:
        response = client.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as exc:
        logger.error("Sign in failed for %s: %s", email, exc)
        raise AuthError(str(exc)) from exc
    user_id = _user_id(response)
    logger.info("Signed in as %s", user_id)
    return user_id


def sign_out(client: Any) -> None:
    try:
        client.auth.sign_out()
    except Exception as exc:
        raise AuthError(str(exc)) from exc


def current_user_id(client: Any) -> Optional[str]:
    """Id of the signed in user, or ``None`` without a session."""
    try:
        response = client.auth.get_user()
    except Exception as exc:
        logger.warning("Could not read the current user: %s", exc)
        return None
    if response is None or getattr(response, "user", None) is None:
        return None
    return str(response.user.id)


def resolve_user_id(config: Config, client: Any = None) -> Optional[str]:
    """Owner the repositories should scope books to.

    ``USER_ID`` wins when set. Otherwise, for the Supabase backend with
    ``SUPABASE_EMAIL``/``SUPABASE_PASSWORD`` configured, the service signs
    in as that user. ``None`` means books are not scoped to an owner.
    """
    if config.USER_ID:
        return config.USER_ID
    if client is not None and config.SUPABASE_EMAIL and config.SUPABASE_PASSWORD:
        return sign_in(client, config.SUPABASE_EMAIL, config.SUPABASE_PASSWORD)
    return None
