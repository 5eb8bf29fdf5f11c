import os
import logging
from typing import Optional

from serpstat_mcp.auth.factory import create_auth_client
from serpstat_mcp.auth.clients.EnvironmentAuthClient import EnvironmentAuthClient

from .errors import MissingCredentialError

SERVICE_NAME = "serpstat"

logger = logging.getLogger(__name__)


def authenticate_and_save_serpstat_key(user_id: str) -> str:
    """Prompt for a Serpstat API key and store it for the user"""
    logger.info(f"Starting Serpstat authentication for user {user_id}...")

    auth_client = create_auth_client()
    api_key = input("Please enter your Serpstat API key: ").strip()

    if not api_key:
        raise ValueError("API key cannot be empty")

    auth_client.save_user_credentials(SERVICE_NAME, user_id, {"api_key": api_key})
    logger.info(
        f"Serpstat API key saved for user {user_id}. You can now run the server."
    )
    return api_key


def get_serpstat_credentials(user_id: str, api_key: Optional[str] = None) -> str:
    """Resolve the Serpstat API key for a user.

    The explicit key wins, then SERPSTAT_API_KEY, then the configured
    credential store.
    """
    if api_key:
        return api_key

    for auth_client in (EnvironmentAuthClient(), create_auth_client()):
        key = auth_client.get_api_key(SERVICE_NAME, user_id)
        if key:
            return key

    error_str = f"Serpstat API key not found for user {user_id}."
    if os.environ.get("ENVIRONMENT", "local") == "local":
        error_str += " Set SERPSTAT_API_KEY or run authentication first."
    logger.error(error_str)
    raise MissingCredentialError(error_str)
