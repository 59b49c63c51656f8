import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from listing_builder.api.dependencies import (
    get_begin_authorization_use_case,
    get_complete_authorization_use_case,
    get_credential_store,
    get_log_out_use_case,
)
from listing_builder.api.schemas.auth_responses import (
    AuthorizationErrorResponse,
    SessionStatusResponse,
)
from listing_builder.application.interfaces.authorization_server import AuthorizationError
from listing_builder.application.interfaces.key_value_store import StorageUnavailableError
from listing_builder.application.services.credential_store import CredentialStore
from listing_builder.application.use_cases.begin_authorization import BeginAuthorization
from listing_builder.application.use_cases.complete_authorization import (
    CompleteAuthorization,
)
from listing_builder.application.use_cases.log_out import LogOut
from listing_builder.config import settings

logger = structlog.get_logger(__name__)
router = APIRouter(tags=["auth"])

REDIRECT_URI_HINT = (
    "The Callback URL registered for your app in the Etsy developer console "
    "must match {redirect_uri} exactly, including the trailing slash."
)


@router.get("/auth/login")
async def login(
    use_case: BeginAuthorization = Depends(get_begin_authorization_use_case),
) -> RedirectResponse:
    """Send the browser to Etsy's consent screen."""
    try:
        url = use_case.execute()
    except StorageUnavailableError as exc:
        logger.error("login_storage_unavailable", error=str(exc))
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return RedirectResponse(url)


@router.get(
    "/",
    response_model=SessionStatusResponse,
    responses={
        400: {"model": AuthorizationErrorResponse},
        503: {"model": AuthorizationErrorResponse},
    },
)
async def landing(
    request: Request,
    credentials: CredentialStore = Depends(get_credential_store),
    use_case: CompleteAuthorization = Depends(get_complete_authorization_use_case),
):
    """
    The registered redirect URI. Completes the login when Etsy sends the
    browser back with ?code= or ?error=, otherwise reports the session state.
    """
    params = request.query_params
    if "code" not in params and "error" not in params:
        return SessionStatusResponse(authenticated=credentials.is_authenticated)

    try:
        await use_case.execute(dict(params))
    except AuthorizationError as exc:
        return _authorization_error(status.HTTP_400_BAD_REQUEST, exc)
    except StorageUnavailableError as exc:
        logger.error("token_save_failed", error=str(exc))
        return _authorization_error(
            status.HTTP_503_SERVICE_UNAVAILABLE,
            exc,
            detail=f"Logged in with Etsy, but the token could not be saved: {exc}",
        )
    # Drop code and state from the address bar
    return RedirectResponse(request.url.path, status_code=status.HTTP_303_SEE_OTHER)


def _authorization_error(
    status_code: int, exc: Exception, detail: str | None = None
) -> JSONResponse:
    message = detail or str(exc)
    lowered = message.lower()
    hint = None
    # Etsy rejects any redirect_uri that differs from the registered Callback URL
    if "redirect" in lowered and "permitted" in lowered:
        hint = REDIRECT_URI_HINT.format(redirect_uri=settings.redirect_uri)
    return JSONResponse(
        status_code=status_code,
        content=AuthorizationErrorResponse(
            detail=message, error_type=type(exc).__name__, hint=hint
        ).model_dump(),
    )


@router.post("/auth/logout", response_model=SessionStatusResponse)
async def logout(use_case: LogOut = Depends(get_log_out_use_case)) -> SessionStatusResponse:
    use_case.execute()
    return SessionStatusResponse(authenticated=False)
