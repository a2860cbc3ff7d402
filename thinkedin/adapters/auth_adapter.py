"""Abstract base class for the authentication provider."""

from abc import ABC, abstractmethod
from typing import Optional


class AuthAdapter(ABC):
    """Sign-in/sign-out against an external provider.

    The rest of the system only consumes the stable account id.
    """

    @abstractmethod
    def sign_up(self, email: str, password: str) -> str:
        """Register a new account and sign it in.

        Returns:
            The account id

        Raises:
            AccountExistsError: E-mail already registered
            AuthError: Any other rejection
            StoreUnavailableError: Provider not reachable
        """
        ...

    @abstractmethod
    def sign_in(self, email: str, password: str) -> str:
        """Sign in with e-mail and password.

        Returns:
            The account id

        Raises:
            InvalidCredentialsError: Unknown e-mail or wrong password
            StoreUnavailableError: Provider not reachable
        """
        ...

    @abstractmethod
    def sign_out(self) -> None:
        ...

    @property
    @abstractmethod
    def current_account_id(self) -> Optional[str]:
        """Account id of the signed-in user, None when signed out."""
        ...

    @abstractmethod
    def id_token(self) -> Optional[str]:
        """Bearer token for store requests, None when signed out."""
        ...

    @abstractmethod
    def refresh(self) -> None:
        """Replace an expired ID token with a fresh one.

        Raises:
            AuthError: Signed out, or the refresh was refused
            StoreUnavailableError: Provider not reachable
        """
        ...
