"""
OAuth2 authorization-code client (relying party side only).

- builds the authorization request stored in the flow-state cookie
- exchanges the callback code for a provider access token
- fetches the user attributes (email, name) from the userinfo endpoint

HTTP goes through httpx. Provider failures raise OAuth2LoginError and are
not retried; the user restarts the login.
"""
from __future__ import annotations

import logging
import secrets
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx

from utils.exceptions import OAuth2LoginError
from utils.oauth2_types import AuthorizationRequest, ClientRegistration

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class OAuth2Client:
    def __init__(self, registrations: Mapping[str, ClientRegistration],
                 timeout: float = DEFAULT_TIMEOUT_SECONDS,
                 transport: Optional[httpx.BaseTransport] = None):
        self.registrations = dict(registrations)
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_config(cls, config: Mapping[str, Any], transport: Optional[httpx.BaseTransport] = None) -> "OAuth2Client":
        registrations = {
            registration_id: ClientRegistration.from_mapping(registration_id, data)
            for registration_id, data in (config.get("OAUTH2_CLIENTS") or {}).items()
            if data.get("client_id")
        }
        return cls(registrations, timeout=config.get("OAUTH2_HTTP_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
                   transport=transport)

    def registration(self, registration_id: str) -> ClientRegistration:
        registration = self.registrations.get(registration_id)
        if registration is None:
            raise OAuth2LoginError(f"Unknown login provider '{registration_id}'", code="unknown_provider")
        return registration

    def build_authorization_request(self, registration_id: str, redirect_uri: str) -> AuthorizationRequest:
        registration = self.registration(registration_id)
        nonce = secrets.token_urlsafe(24) if "openid" in registration.scopes else None
        return AuthorizationRequest(
            registration_id=registration_id,
            authorization_uri=registration.authorization_uri,
            client_id=registration.client_id,
            redirect_uri=redirect_uri,
            scopes=registration.scopes,
            state=secrets.token_urlsafe(32),
            nonce=nonce,
        )

    @staticmethod
    def authorization_url(auth_request: AuthorizationRequest) -> str:
        params = {
            "response_type": "code",
            "client_id": auth_request.client_id,
            "redirect_uri": auth_request.redirect_uri,
            "scope": " ".join(auth_request.scopes),
            "state": auth_request.state,
        }
        if auth_request.nonce:
            params["nonce"] = auth_request.nonce
        separator = "&" if "?" in auth_request.authorization_uri else "?"
        return f"{auth_request.authorization_uri}{separator}{urlencode(params)}"

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, transport=self.transport)

    def exchange_code(self, auth_request: AuthorizationRequest, code: str) -> str:
        registration = self.registration(auth_request.registration_id)
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": auth_request.redirect_uri,
            "client_id": registration.client_id,
            "client_secret": registration.client_secret,
        }
        body = self._request_json("POST", registration.token_uri, data=form,
                                  headers={"Accept": "application/json"})
        access_token = body.get("access_token")
        if not access_token:
            raise OAuth2LoginError("Token response has no access_token", code="invalid_token_response")
        return access_token

    def fetch_user_attributes(self, registration_id: str, access_token: str) -> Dict[str, Any]:
        registration = self.registration(registration_id)
        attributes = self._request_json(
            "GET",
            registration.user_info_uri,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )
        # Normalize provider-specific attribute names
        return {
            **attributes,
            "email": attributes.get(registration.email_attribute),
            "name": attributes.get(registration.name_attribute),
        }

    def _request_json(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            with self._client() as client:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("oauth2 provider error method=%s url=%s status=%s",
                           method, url, exc.response.status_code)
            raise OAuth2LoginError("Login provider rejected the request", code="provider_error") from exc
        except httpx.HTTPError as exc:
            logger.warning("oauth2 provider unreachable method=%s url=%s error=%s", method, url, exc)
            raise OAuth2LoginError("Login provider unreachable", code="provider_unreachable") from exc
        except ValueError as exc:
            raise OAuth2LoginError("Login provider sent invalid JSON", code="provider_error") from exc
        if not isinstance(body, dict):
            raise OAuth2LoginError("Login provider sent an unexpected payload", code="provider_error")
        return body
