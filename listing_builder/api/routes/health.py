from fastapi import APIRouter, Depends

from listing_builder.api.dependencies import get_credential_store
from listing_builder.application.services.credential_store import CredentialStore
from listing_builder.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    credentials: CredentialStore = Depends(get_credential_store),
) -> dict:  # type: ignore[type-arg]
    """Liveness plus whether a token is loaded."""
    return {
        "status": "healthy" if settings.etsy_client_id else "degraded",
        "client_id_configured": bool(settings.etsy_client_id),
        "authenticated": credentials.is_authenticated,
    }
