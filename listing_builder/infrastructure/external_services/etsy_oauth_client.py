"""HTTP client for the Etsy OAuth 2.0 endpoints."""
from urllib.parse import urlencode

import httpx
import structlog

from listing_builder.application.interfaces.authorization_server import (
    AuthorizationServer,
    MalformedTokenResponseError,
    TokenExchangeError,
)
from listing_builder.config import settings

logger = structlog.get_logger(__name__)


def _provider_message(response: httpx.Response) -> str:
    status_line = f"{response.status_code} {response.reason_phrase}".strip()
    try:
        body = response.json()
    except ValueError:
        return status_line
    if not isinstance(body, dict):
        return status_line
    error = body.get("error")
    description = body.get("error_description")
    if error and description:
        return f"{error}: {description}"
    return error or description or status_line


class EtsyOAuthClient(AuthorizationServer):
    """Builds the consent URL and performs the PKCE code exchange."""

    def __init__(
        self,
        client_id: str = settings.etsy_client_id,
        redirect_uri: str = settings.redirect_uri,
        scopes: list[str] | None = None,
        auth_url: str = settings.etsy_auth_url,
        token_url: str = settings.etsy_token_url,
        timeout: float = settings.http_timeout,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client_id = client_id
        self._redirect_uri = redirect_uri
        self._scopes = scopes if scopes is not None else list(settings.etsy_scopes)
        self._auth_url = auth_url
        self._token_url = token_url
        self._timeout = timeout
        self._transport = transport

    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "scope": " ".join(self._scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self._auth_url}?{urlencode(params)}"

    async def exchange_code(self, code: str, code_verifier: str) -> str:
        """
        POST <token_url> (form-encoded) -> {"access_token": "...", ...}
        """
        form = {
            "grant_type": "authorization_code",
            "client_id": self._client_id,
            "redirect_uri": self._redirect_uri,
            "code": code,
            "code_verifier": code_verifier,
        }

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(self._token_url, data=form)
            except httpx.RequestError as exc:
                logger.error("token_exchange_unreachable", error=str(exc))
                raise TokenExchangeError(
                    None,
                    f"{exc}. This may be due to a network issue; check your "
                    "connection and disable any ad-blockers, then try again.",
                ) from exc

        if response.is_error:
            message = _provider_message(response)
            logger.error(
                "token_exchange_failed",
                status_code=response.status_code,
                provider_message=message,
            )
            raise TokenExchangeError(response.status_code, message)

        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedTokenResponseError() from exc
        if not isinstance(data, dict) or not data.get("access_token"):
            raise MalformedTokenResponseError()

        logger.info("token_exchanged", token_type=data.get("token_type"))
        return data["access_token"]
