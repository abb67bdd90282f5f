# calendar_oauth.py

import logging
from pathlib import Path

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow, InstalledAppFlow
from googleapiclient.discovery import build

from auth_store import TokenStore
from db.database import read_json
from state import AuthResult, AuthStatus, CredentialsError

logger = logging.getLogger("agenda.oauth")

SCOPES = [
    "https://www.googleapis.com/auth/calendar.readonly"
]

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

WEB_FLOW = "web"
LOCAL_FLOW = "local"


def build_calendar_service(credentials):
    return build("calendar", "v3", credentials=credentials, cache_discovery=False)


def is_invalid_grant(exc: Exception) -> bool:
    """Google revoked or expired the refresh token."""
    return isinstance(exc, RefreshError) and "invalid_grant" in str(exc)


class CalendarAuthManager:
    """
    Redirect-based (web) authorization flow.

    NO_CREDENTIALS      -> credentials.json absent or unusable
    NEEDS_AUTHORIZATION -> identity present, no usable token.json
    AUTHORIZED          -> token loaded into google Credentials

    Stateless between the login URL and the callback: no PKCE verifier,
    and the OAuth `state` travels in a cookie set by the HTTP layer.
    """

    flow_name = WEB_FLOW

    def __init__(self, credentials_path: Path, token_store: TokenStore, redirect_uri: str):
        self.credentials_path = Path(credentials_path)
        self.token_store = token_store
        # Fixed: Google rejects any callback not registered for the client
        self.redirect_uri = redirect_uri

    # -------------------------------
    # App identity
    # -------------------------------
    def load_client_config(self) -> dict:
        if not self.credentials_path.exists():
            raise CredentialsError(
                AuthStatus.CREDENTIALS_MISSING,
                "Arquivo 'credentials.json' ausente. Vá em Configurações e faça o upload.",
            )

        try:
            raw = read_json(self.credentials_path)
        except (OSError, ValueError):
            raw = None

        # Google issues the file with either a "web" or an "installed" section
        client_type = None
        if isinstance(raw, dict):
            client_type = next(
                (k for k in ("web", "installed") if isinstance(raw.get(k), dict)),
                None,
            )

        if not client_type or not all(raw[client_type].get(k) for k in ("client_id", "client_secret")):
            raise CredentialsError(
                AuthStatus.CREDENTIALS_INVALID,
                "Arquivo 'credentials.json' corrompido/inválido.",
            )

        keys = dict(raw[client_type])
        keys.setdefault("auth_uri", AUTH_URI)
        keys.setdefault("token_uri", TOKEN_URI)
        return {client_type: keys}

    @staticmethod
    def _client_keys(client_config: dict) -> dict:
        return client_config.get("web") or client_config.get("installed")

    def build_client(self) -> Flow:
        client_config = self.load_client_config()

        # No PKCE verifier: the callback may be served by a fresh Flow
        return Flow.from_client_config(
            client_config,
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    # -------------------------------
    # Authorization code flow
    # -------------------------------
    def build_authorization_request(self) -> tuple[str, str]:
        """
        (auth_url, state). The Flow is not kept, so the caller owns the
        state and must compare it with the one echoed to the callback.
        """
        flow = self.build_client()

        # offline + consent: Google only returns a refresh token on forced consent
        return flow.authorization_url(
            access_type="offline",
            prompt="consent",
        )

    def build_authorization_url(self) -> str:
        auth_url, _ = self.build_authorization_request()
        return auth_url

    def exchange_code(self, code: str) -> Credentials:
        flow = self.build_client()
        flow.fetch_token(code=code)

        credentials = flow.credentials
        self.token_store.save(credentials)
        logger.info("Calendar authorized, token saved")
        return credentials

    # -------------------------------
    # Stored token
    # -------------------------------
    def _stored_credentials(self, client_config: dict) -> Credentials | None:
        try:
            info = self.token_store.load()
        except (OSError, ValueError) as e:
            logger.warning(f"Stored token unreadable, login required | {e}")
            return None

        if info is None:
            return None

        keys = self._client_keys(client_config)
        info = {
            **info,
            "client_id": keys["client_id"],
            "client_secret": keys["client_secret"],
        }
        info.setdefault("token_uri", keys.get("token_uri", TOKEN_URI))

        try:
            return Credentials.from_authorized_user_info(info, SCOPES)
        except (ValueError, TypeError) as e:
            logger.warning(f"Stored token invalid, login required | {e}")
            return None

    def _missing_token(self) -> AuthResult:
        return AuthResult(AuthStatus.AUTH_REQUIRED, message=AuthStatus.AUTH_REQUIRED.value)

    def load_authorized_client(self) -> AuthResult:
        # No token means login first; identity problems surface on the auth URL
        if not self.token_store.exists():
            return self._missing_token()

        try:
            client_config = self.load_client_config()
        except CredentialsError as e:
            return AuthResult(e.status, message=str(e))

        credentials = self._stored_credentials(client_config)
        if credentials is None:
            return self._missing_token()

        return AuthResult(AuthStatus.AUTHORIZED, credentials=credentials)

    def persist_if_refreshed(self, credentials: Credentials, previous_token: str | None) -> None:
        if credentials.token and credentials.token != previous_token:
            self.token_store.save(credentials)
            logger.info("Access token refreshed and saved")

    def invalidate(self) -> bool:
        removed = self.token_store.delete()
        if removed:
            logger.info(f"Token removed: {self.token_store.path}")
        return removed


class LocalCalendarAuthManager(CalendarAuthManager):
    """
    Desktop variant: when no usable token exists, opens the operator's
    browser on a loopback consent page and blocks until it completes.
    """

    flow_name = LOCAL_FLOW

    def _missing_token(self) -> AuthResult:
        try:
            client_config = self.load_client_config()
        except CredentialsError as e:
            return AuthResult(e.status, message=str(e))

        logger.info("Starting interactive browser login")

        flow = InstalledAppFlow.from_client_config(client_config, scopes=SCOPES)
        credentials = flow.run_local_server(
            port=0,
            access_type="offline",
            prompt="consent",
        )

        self.token_store.save(credentials)
        return AuthResult(AuthStatus.AUTHORIZED, credentials=credentials)


def get_auth_manager(config, token_store: TokenStore | None = None) -> CalendarAuthManager:
    token_store = token_store or TokenStore(config.token_path)

    if config.AUTHORIZATION_FLOW == LOCAL_FLOW:
        manager_cls = LocalCalendarAuthManager
    elif config.AUTHORIZATION_FLOW == WEB_FLOW:
        manager_cls = CalendarAuthManager
    else:
        raise RuntimeError(f"AUTHORIZATION_FLOW must be 'web' or 'local', got {config.AUTHORIZATION_FLOW!r}")

    return manager_cls(config.credentials_path, token_store, config.redirect_uri)
