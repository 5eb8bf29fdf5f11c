import os
import json
from pathlib import Path
from typing import Dict, Any, Optional, Union

from .BaseAuthClient import BaseAuthClient, CredentialsT

import logging

logger = logging.getLogger("LocalAuthClient")


class LocalAuthClient(BaseAuthClient[CredentialsT]):
    """
    Credential store backed by JSON files on the local disk.
    Used for local development, where `main.py auth` writes the API key.
    """

    def __init__(self, credentials_base_dir: Optional[str] = None):
        """
        Initialize the local file credential store

        Args:
            credentials_base_dir: Base directory to store user credentials
        """
        # Project root is the checkout that contains src/
        project_root = Path(__file__).parent.parent.parent.parent.parent

        self.credentials_base_dir = credentials_base_dir or os.environ.get(
            "SERPSTAT_CREDENTIALS_DIR",
            str(project_root / "local_auth" / "credentials"),
        )

    def _credentials_path(self, service_name: str, user_id: str) -> str:
        return os.path.join(
            self.credentials_base_dir, service_name, f"{user_id}_credentials.json"
        )

    def get_user_credentials(
        self, service_name: str, user_id: str
    ) -> Optional[CredentialsT]:
        """Retrieve user credentials from local file"""
        creds_path = self._credentials_path(service_name, user_id)

        if not os.path.exists(creds_path):
            logger.info(f"No stored {service_name} credentials at {creds_path}")
            return None

        with open(creds_path, "r") as f:
            return json.load(f)

    def save_user_credentials(
        self,
        service_name: str,
        user_id: str,
        credentials: Union[CredentialsT, Dict[str, Any]],
    ) -> None:
        """Save user credentials to local file"""
        creds_path = self._credentials_path(service_name, user_id)
        os.makedirs(os.path.dirname(creds_path), exist_ok=True)

        with open(creds_path, "w") as f:
            json.dump(credentials, f)

        logger.info(f"Saved {service_name} credentials for user {user_id}")
