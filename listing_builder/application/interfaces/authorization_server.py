from abc import ABC, abstractmethod


class AuthorizationError(Exception):
    """Base for everything that can go wrong while obtaining a token."""


class TokenExchangeError(AuthorizationError):
    """The token endpoint answered with an error, or could not be reached."""

    def __init__(self, status_code: int | None, provider_message: str) -> None:
        self.status_code = status_code
        self.provider_message = provider_message
        super().__init__(f"Failed to fetch access token: {provider_message}")


class MalformedTokenResponseError(AuthorizationError):
    def __init__(self) -> None:
        super().__init__("API response did not include an access_token.")


class AuthorizationServer(ABC):
    """Port for the OAuth 2.0 authorization server."""

    @abstractmethod
    def build_authorization_url(self, state: str, code_challenge: str) -> str:
        ...

    @abstractmethod
    async def exchange_code(self, code: str, code_verifier: str) -> str:
        """Trade an authorization code for an access token."""
        ...
