# Overview: Credential back ends behind a single interface (local bcrypt store, managed identity service).

"""
Identity Providers

WHY: The storefront used to keep two parallel auth stores. Here there is
one session boundary (session_service) and one interface for checking
credentials, with two implementations:

- LocalIdentityProvider: bcrypt hashes in our users table.
- ManagedIdentityProvider: delegates the credential check to an external
  GoTrue-compatible identity service over HTTP, then upserts the
  application profile row keyed by the external user id.

Both return our User row; neither issues tokens.
"""

from __future__ import annotations

import httpx
from flask import current_app

from ..extensions import db
from ..models import User
from tarpprint.time_utils import utcnow


class IdentityServiceError(Exception):
    """The managed identity service failed or answered with something unusable."""


class IdentityProvider:
    """Interface shared by every credential back end."""

    name = "base"

    def authenticate(self, email: str, password: str) -> User | None:
        raise NotImplementedError

    def register(
        self,
        *,
        email: str,
        password: str,
        name: str,
        phone: str | None = None,
        address: str | None = None,
    ) -> User:
        raise NotImplementedError


def _find_by_email(email: str) -> User | None:
    return db.session.query(User).filter(db.func.lower(User.email) == email.lower()).first()


class LocalIdentityProvider(IdentityProvider):
    name = "local"

    def authenticate(self, email: str, password: str) -> User | None:
        from .auth_service import verify_password

        user = _find_by_email(email)
        if not user:
            return None
        if not verify_password(password, user.password_hash):
            return None
        return user

    def register(self, *, email, password, name, phone=None, address=None) -> User:
        from .auth_service import create_user

        return create_user(
            email=email,
            password=password,
            name=name,
            role="customer",
            phone=phone,
            address=address,
        )


class ManagedIdentityProvider(IdentityProvider):
    """
    Adapter for a GoTrue-style service.

    Endpoints used:
    - POST {base}/auth/v1/token?grant_type=password  {email, password}
    - POST {base}/auth/v1/signup                     {email, password, data}
    """
    name = "managed"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not base_url:
            raise IdentityServiceError("MANAGED_AUTH_URL is not configured")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "apikey": self._api_key,
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
        )

    def _post(self, path: str, payload: dict, params: dict | None = None) -> httpx.Response:
        try:
            with self._client() as client:
                return client.post(path, json=payload, params=params)
        except httpx.HTTPError as exc:
            raise IdentityServiceError(f"Identity service request failed: {exc.__class__.__name__}") from exc

    @staticmethod
    def _extract_user(body: dict) -> dict:
        account = body.get("user") if isinstance(body.get("user"), dict) else body
        if not isinstance(account, dict) or not account.get("id"):
            raise IdentityServiceError("Identity service response has no user id")
        return account

    def _upsert_profile(self, account: dict, *, name=None, phone=None, address=None) -> User:
        external_id = str(account["id"])
        email = (account.get("email") or "").strip().lower()
        metadata = account.get("user_metadata") or {}

        user = db.session.query(User).filter_by(external_id=external_id).first()
        if user is None and email:
            # First managed login for a profile created before the switch
            user = _find_by_email(email)

        now = utcnow()
        if user is None:
            user = User(
                email=email,
                name=name or metadata.get("name") or email.split("@")[0],
                role="customer",
                phone=phone or metadata.get("phone"),
                address=address or metadata.get("address"),
                password_hash=None,
                created_at=now,
            )
            db.session.add(user)

        user.external_id = external_id
        user.auth_provider = self.name
        if email:
            user.email = email
        user.updated_at = now
        db.session.commit()
        return user

    def authenticate(self, email: str, password: str) -> User | None:
        response = self._post(
            "/auth/v1/token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        if response.status_code in (400, 401, 422):
            return None
        if response.status_code >= 300:
            raise IdentityServiceError(f"Identity service returned HTTP {response.status_code}")
        return self._upsert_profile(self._extract_user(response.json()))

    def register(self, *, email, password, name, phone=None, address=None) -> User:
        from .auth_service import AuthError

        if _find_by_email(email):
            raise AuthError("Email already exists", 409)

        response = self._post(
            "/auth/v1/signup",
            {
                "email": email,
                "password": password,
                "data": {"name": name, "phone": phone, "address": address},
            },
        )
        if response.status_code in (400, 422):
            message = ""
            try:
                body = response.json()
                message = str(body.get("msg") or body.get("error_description") or body.get("message") or "")
            except ValueError:
                pass
            if "already" in message.lower():
                raise AuthError("Email already exists", 409)
            raise AuthError("Registration rejected by identity service", 400)
        if response.status_code >= 300:
            raise IdentityServiceError(f"Identity service returned HTTP {response.status_code}")

        return self._upsert_profile(
            self._extract_user(response.json()), name=name, phone=phone, address=address
        )


def get_identity_provider() -> IdentityProvider:
    """Provider selected by AUTH_PROVIDER; a pre-built instance in config wins (tests)."""
    configured = current_app.config.get("IDENTITY_PROVIDER_INSTANCE")
    if configured is not None:
        return configured

    kind = current_app.config.get("AUTH_PROVIDER", "local")
    if kind == "local":
        return LocalIdentityProvider()
    if kind == "managed":
        return ManagedIdentityProvider(
            base_url=current_app.config.get("MANAGED_AUTH_URL", ""),
            api_key=current_app.config.get("MANAGED_AUTH_API_KEY", ""),
            timeout=current_app.config.get("MANAGED_AUTH_TIMEOUT_SECONDS", 10.0),
        )
    raise IdentityServiceError(f"Unknown AUTH_PROVIDER: {kind}")
