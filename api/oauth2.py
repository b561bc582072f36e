"""
External login blueprint (OAuth2 authorization-code flow, client side):
- GET /oauth2/authorization/<registration_id>  start: flow cookie + redirect to provider
- GET /login/oauth2/code/<registration_id>     callback: state check, code exchange, login

Flow failures send the browser back to the login page with an error code;
nothing is retried.
"""
from __future__ import annotations

import hmac
import logging
from urllib.parse import urlencode

from flask import Blueprint, request, redirect, url_for, current_app
from sqlalchemy.exc import SQLAlchemyError

from utils.exceptions import AuthError, FlowStateAbsent, OAuth2LoginError
from .extensions import component

logger = logging.getLogger(__name__)

bp = Blueprint("oauth2", __name__)


@bp.get("/oauth2/authorization/<registration_id>")
def authorize(registration_id: str):
    """
    Start an external login
    ---
    tags:
      - OAuth2
    parameters:
      - in: path
        name: registration_id
        type: string
        required: true
    responses:
      302:
        description: Redirect to the provider's authorization endpoint
    """
    client = component("oauth2_client")
    redirect_uri = url_for("oauth2.callback", registration_id=registration_id, _external=True)
    auth_request = client.build_authorization_request(registration_id, redirect_uri)
    response = redirect(client.authorization_url(auth_request))
    component("cookie_state").save(auth_request, request, response)
    logger.info("oauth2 login started registration_id=%s", registration_id)
    return response


@bp.get("/login/oauth2/code/<registration_id>")
def callback(registration_id: str):
    """
    Provider callback: finish the external login
    ---
    tags:
      - OAuth2
    parameters:
      - in: path
        name: registration_id
        type: string
        required: true
      - in: query
        name: code
        type: string
      - in: query
        name: state
        type: string
    responses:
      302:
        description: Redirect to the success path with ?token=<access token>, or to the login page with ?error=
    """
    provider_error = request.args.get("error")
    if provider_error:
        raise OAuth2LoginError(f"Provider returned error '{provider_error}'", code="access_denied")

    auth_request = component("cookie_state").load(request)
    if auth_request is None:
        raise FlowStateAbsent()
    if auth_request.registration_id != registration_id:
        raise OAuth2LoginError("Callback does not match the pending login", code="invalid_state")
    state = request.args.get("state", "")
    if not hmac.compare_digest(state.encode(), auth_request.state.encode()):
        raise OAuth2LoginError("State parameter mismatch", code="invalid_state")
    code = request.args.get("code")
    if not code:
        raise OAuth2LoginError("Authorization code missing", code="missing_code")

    client = component("oauth2_client")
    provider_token = client.exchange_code(auth_request, code)
    attributes = client.fetch_user_attributes(registration_id, provider_token)
    return component("login_handler").on_authentication_success(attributes)


def _back_to_login(code: str):
    login_path = current_app.config["LOGIN_PATH"]
    response = redirect(f"{login_path}?{urlencode({'error': code})}")
    component("cookie_state").clear(response)
    return response


@bp.errorhandler(AuthError)
def login_failed(err: AuthError):
    code = getattr(err, "code", None) or err.__class__.__name__
    logger.warning("oauth2 login failed path=%s code=%s reason=%s", request.path, code, err.message)
    return _back_to_login(code)


@bp.errorhandler(SQLAlchemyError)
def login_store_failed(err: SQLAlchemyError):
    # Store errors (lock or statement timeout) end the flow like any other failure
    logger.exception("oauth2 login aborted by store error path=%s", request.path, exc_info=err)
    return _back_to_login("login_failed")
