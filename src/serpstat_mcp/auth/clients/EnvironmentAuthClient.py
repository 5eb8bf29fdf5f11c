import os
import logging
from typing import Dict, Optional

from .BaseAuthClient import BaseAuthClient

logger = logging.getLogger("EnvironmentAuthClient")


class EnvironmentAuthClient(BaseAuthClient[Dict[str, str]]):
    """
    Read-only credential store that takes API keys from process environment.
    The variable for a service is `<SERVICE>_API_KEY`, e.g. SERPSTAT_API_KEY.
    The key is shared by every user of the process.
    """

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        self.environ = os.environ if environ is None else environ

    @staticmethod
    def variable_name(service_name: str) -> str:
        return f"{service_name.upper()}_API_KEY"

    def get_user_credentials(
        self, service_name: str, user_id: str
    ) -> Optional[Dict[str, str]]:
        api_key = self.environ.get(self.variable_name(service_name), "").strip()
        if not api_key:
            return None
        return {"api_key": api_key}
