"""Auth token discovery for registry calls.

Priority:
1. Explicit token (CLI argument or API option)
2. ``ZE_SECRET_TOKEN`` / ``ZE_AUTH_TOKEN`` / ``ZE_TOKEN``
3. ``ZE_SERVER_TOKEN`` exchanged for an access token, using ``ZE_USER_EMAIL``
   (or the git author/committer email)
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from .config import first_env
from .constants import Constants
from .errors import ZephyrError

logger = logging.getLogger(__name__)


def get_env_token() -> Optional[str]:
    return first_env(Constants.ENV_TOKENS)


async def resolve_auth_token(client, token: Optional[str] = None) -> Optional[str]:
    """Return a usable bearer token, or None when no source provides one.

    A failed server-token exchange is logged and treated as "no token";
    callers decide whether that is fatal.
    """
    if token:
        return token

    env_token = get_env_token()
    if env_token:
        return env_token

    server_token = os.environ.get(Constants.ENV_SERVER_TOKEN)
    if not server_token:
        return None

    email = first_env(Constants.ENV_USER_EMAIL)
    if not email:
        logger.warning(
            "%s is set but no user email is available; set ZE_USER_EMAIL",
            Constants.ENV_SERVER_TOKEN,
        )
        return None

    try:
        return await client.exchange_server_token(server_token, email)
    except ZephyrError as exc:
        logger.warning("Server token exchange failed: %s", exc)
        return None
