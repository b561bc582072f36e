"""
Auth component wiring.

Everything is built once per app in init_auth() and kept in
app.extensions["auth"]; views fetch components with component(name).
The Signer (and so the key) is derived exactly once here.
"""
from __future__ import annotations

from flask import Flask, current_app

from models.refresh_token_store import RefreshTokenStore
from models.user_directory import UserDirectory
from utils.auth_filter import AuthenticationFilter, RoutePolicy
from utils.cookie_state import CookieStateRepository
from utils.oauth2_client import OAuth2Client
from utils.oauth2_login import OAuth2LoginCompletionHandler
from utils.security import Signer, TokenCodec
from utils.token_service import AccessTokenRefreshService

EXTENSION_KEY = "auth"


def init_auth(app: Flask, oauth2_transport=None) -> dict:
    config = app.config
    token_codec = TokenCodec(Signer.from_config(config))
    refresh_tokens = RefreshTokenStore()
    users = UserDirectory()
    cookie_state = CookieStateRepository(
        config["SECRET_KEY"],
        cookie_name=config["OAUTH2_AUTH_REQUEST_COOKIE_NAME"],
        max_age=config["OAUTH2_AUTH_REQUEST_COOKIE_MAX_AGE"],
        secure=config["COOKIE_SECURE"],
    )
    components = {
        "token_codec": token_codec,
        "refresh_tokens": refresh_tokens,
        "users": users,
        "cookie_state": cookie_state,
        "oauth2_client": OAuth2Client.from_config(config, transport=oauth2_transport),
        "login_handler": OAuth2LoginCompletionHandler(
            token_codec,
            refresh_tokens,
            users,
            cookie_state,
            refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
            access_ttl=config["ACCESS_TOKEN_EXPIRES"],
            success_path=config["LOGIN_SUCCESS_PATH"],
            refresh_cookie_name=config["REFRESH_TOKEN_COOKIE_NAME"],
            secure_cookies=config["COOKIE_SECURE"],
        ),
        "refresh_service": AccessTokenRefreshService(
            token_codec, refresh_tokens, users, access_ttl=config["ACCESS_TOKEN_EXPIRES"]
        ),
    }
    app.extensions[EXTENSION_KEY] = components

    # Order matters: the filter must run before the policy that reads its result
    app.before_request(AuthenticationFilter(token_codec))
    app.before_request(RoutePolicy(config["PROTECTED_PREFIXES"], config["PUBLIC_PATHS"]))
    return components


def component(name: str):
    return current_app.extensions[EXTENSION_KEY][name]
