"""Firebase Authentication adapter (Identity Toolkit REST API)."""

import logging
import threading
from typing import Optional

import requests

from thinkedin.adapters.auth_adapter import AuthAdapter
from thinkedin.core.exceptions import (
    AccountExistsError,
    AuthError,
    InvalidCredentialsError,
    StoreUnavailableError,
)

logger = logging.getLogger("thinkedin")

_CREDENTIAL_ERRORS = {
    "EMAIL_NOT_FOUND",
    "INVALID_PASSWORD",
    "INVALID_LOGIN_CREDENTIALS",
    "INVALID_EMAIL",
    "USER_DISABLED",
}


class FirebaseAuthAdapter(AuthAdapter):
    """E-mail/password auth against Firebase.

    Endpoints: POST {BASE_URL}/accounts:signUp and
    POST {BASE_URL}/accounts:signInWithPassword, both with ?key=<api key>.
    """

    BASE_URL = "https://identitytoolkit.googleapis.com/v1"
    TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

    def __init__(self, api_key: str, timeout: int = 15):
        self._api_key = api_key
        self._timeout = timeout
        self._lock = threading.RLock()
        self._account_id: Optional[str] = None
        self._id_token: Optional[str] = None
        self._refresh_token: Optional[str] = None

    def sign_up(self, email: str, password: str) -> str:
        data = self._post("accounts:signUp", email, password)
        account_id = self._store_session(data)
        logger.info(f"Registered account {account_id}")
        return account_id

    def sign_in(self, email: str, password: str) -> str:
        data = self._post("accounts:signInWithPassword", email, password)
        account_id = self._store_session(data)
        logger.info(f"Signed in account {account_id}")
        return account_id

    def sign_out(self) -> None:
        with self._lock:
            if self._account_id:
                logger.info(f"Signed out account {self._account_id}")
            self._account_id = None
            self._id_token = None
            self._refresh_token = None

    @property
    def current_account_id(self) -> Optional[str]:
        with self._lock:
            return self._account_id

    def id_token(self) -> Optional[str]:
        with self._lock:
            return self._id_token

    def refresh(self) -> None:
        """Exchange the refresh token for a new ID token.

        Endpoint: POST {TOKEN_URL}?key=<api key>, form-encoded
        grant_type=refresh_token. ID tokens expire after one hour.

        Raises:
            AuthError: Signed out, or the provider refused the refresh token
            StoreUnavailableError: Provider not reachable
        """
        with self._lock:
            refresh_token = self._refresh_token
        if not refresh_token:
            raise AuthError("No session to refresh")

        try:
            response = requests.post(
                self.TOKEN_URL,
                params={"key": self._api_key},
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                timeout=self._timeout,
            )
        except requests.Timeout:
            raise StoreUnavailableError(f"Token refresh timed out after {self._timeout}s")
        except requests.RequestException as e:
            raise StoreUnavailableError(f"Token refresh failed: {e}")

        if response.status_code >= 500:
            raise StoreUnavailableError(f"Token service returned HTTP {response.status_code}")
        if response.status_code != 200:
            code = self._error_code(response)
            raise AuthError(f"Token refresh rejected: {code or response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise AuthError(f"Malformed token response: {e}")
        if not data.get("id_token"):
            raise AuthError("Token response did not contain an id token")

        with self._lock:
            # a sign_out() during the request wins
            if self._refresh_token != refresh_token:
                return
            self._id_token = data["id_token"]
            self._refresh_token = data.get("refresh_token") or refresh_token
        logger.debug(f"Refreshed ID token of account {self.current_account_id}")

    def _store_session(self, data: dict) -> str:
        account_id = data.get("localId")
        if not account_id:
            raise AuthError("Auth response did not contain an account id")
        with self._lock:
            self._account_id = account_id
            self._id_token = data.get("idToken")
            self._refresh_token = data.get("refreshToken")
        return account_id

    def _post(self, endpoint: str, email: str, password: str) -> dict:
        url = f"{self.BASE_URL}/{endpoint}"
        payload = {"email": email, "password": password, "returnSecureToken": True}

        try:
            response = requests.post(
                url, params={"key": self._api_key}, json=payload, timeout=self._timeout
            )
        except requests.Timeout:
            raise StoreUnavailableError(f"Auth request timed out after {self._timeout}s")
        except requests.ConnectionError as e:
            raise StoreUnavailableError(f"Cannot connect to auth provider: {e}")
        except requests.RequestException as e:
            raise StoreUnavailableError(f"Auth request failed: {e}")

        if response.status_code == 400:
            code = self._error_code(response)
            if code == "EMAIL_EXISTS":
                raise AccountExistsError()
            if code in _CREDENTIAL_ERRORS:
                raise InvalidCredentialsError()
            raise AuthError(f"Auth provider rejected request: {code or 'unknown'}")
        if response.status_code >= 500:
            raise StoreUnavailableError(f"Auth provider returned HTTP {response.status_code}")
        if response.status_code != 200:
            raise AuthError(f"Auth provider returned HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise AuthError(f"Malformed auth response: {e}")

    @staticmethod
    def _error_code(response) -> str:
        """Extract e.g. 'EMAIL_EXISTS' from {"error": {"message": "EMAIL_EXISTS : ..."}}."""
        try:
            message = response.json().get("error", {}).get("message", "")
        except ValueError:
            return ""
        return message.split(" ", 1)[0].strip()
