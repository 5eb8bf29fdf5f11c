import abc
from typing import Generic, Optional, TypeVar

# Whatever a store keeps per user, usually {"api_key": "..."}
CredentialsT = TypeVar("CredentialsT")


class BaseAuthClient(Generic[CredentialsT], abc.ABC):
    """
    Abstract base class for credential stores.
    A store maps (service, user) pairs to the API credentials that user supplied.
    """

    @abc.abstractmethod
    def get_user_credentials(
        self, service_name: str, user_id: str
    ) -> Optional[CredentialsT]:
        """
        Look up what was stored for a user of a service

        Args:
            service_name: Name of the service (e.g., "serpstat")
            user_id: Identifier for the user

        Returns:
            The stored credentials, or None when the user has none
        """

    def get_api_key(self, service_name: str, user_id: str) -> Optional[str]:
        """Stored API key, whether it was saved bare or as {"api_key": ...}"""
        credentials = self.get_user_credentials(service_name, user_id)
        if not credentials:
            return None
        if isinstance(credentials, str):
            return credentials
        return credentials.get("api_key") or None

    def save_user_credentials(
        self, service_name: str, user_id: str, credentials: CredentialsT
    ) -> None:
        """Persist credentials entered by the user. Read-only stores do not."""
        raise NotImplementedError(
            f"{type(self).__name__} cannot store credentials for {service_name}"
        )
