"""
FastAPI dependency injection wiring.

The app serves a single shop owner, so the stores, the credential store and
the submission workflow are process-wide singletons. Tests swap any of them
through app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends

from listing_builder.application.interfaces.authorization_server import AuthorizationServer
from listing_builder.application.interfaces.key_value_store import KeyValueStore
from listing_builder.application.interfaces.marketplace_api import MarketplaceApi
from listing_builder.application.services.credential_store import CredentialStore
from listing_builder.application.use_cases.begin_authorization import BeginAuthorization
from listing_builder.application.use_cases.complete_authorization import CompleteAuthorization
from listing_builder.application.use_cases.log_out import LogOut
from listing_builder.application.use_cases.submit_listing import SubmitListing
from listing_builder.config import settings
from listing_builder.domain.entities.listing_submission import DraftListingDefaults
from listing_builder.infrastructure.external_services.etsy_api_client import EtsyApiClient
from listing_builder.infrastructure.external_services.etsy_oauth_client import EtsyOAuthClient
from listing_builder.infrastructure.messaging.progress_publisher import InMemoryProgressPublisher
from listing_builder.infrastructure.storage.in_memory_store import InMemoryKeyValueStore
from listing_builder.infrastructure.storage.json_file_store import JsonFileKeyValueStore


# ---- Storage ---------------------------------------------------------------

@lru_cache
def get_transient_store() -> KeyValueStore:
    return InMemoryKeyValueStore()


@lru_cache
def get_durable_store() -> KeyValueStore:
    return JsonFileKeyValueStore(settings.token_store_path)


@lru_cache
def get_credential_store() -> CredentialStore:
    store = CredentialStore(get_durable_store())
    store.load()
    return store


# ---- External services -----------------------------------------------------

def get_authorization_server() -> AuthorizationServer:
    return EtsyOAuthClient()


def get_marketplace_api() -> MarketplaceApi:
    return EtsyApiClient()


@lru_cache
def get_progress_publisher() -> InMemoryProgressPublisher:
    return InMemoryProgressPublisher()


# ---- Use cases -------------------------------------------------------------

def get_begin_authorization_use_case(
    transient: KeyValueStore = Depends(get_transient_store),
    auth_server: AuthorizationServer = Depends(get_authorization_server),
) -> BeginAuthorization:
    return BeginAuthorization(transient, auth_server)


def get_complete_authorization_use_case(
    transient: KeyValueStore = Depends(get_transient_store),
    auth_server: AuthorizationServer = Depends(get_authorization_server),
    credentials: CredentialStore = Depends(get_credential_store),
) -> CompleteAuthorization:
    return CompleteAuthorization(transient, auth_server, credentials)


def get_log_out_use_case(
    credentials: CredentialStore = Depends(get_credential_store),
) -> LogOut:
    return LogOut(credentials)


def _draft_defaults() -> DraftListingDefaults:
    return DraftListingDefaults(
        quantity=settings.listing_quantity,
        price=settings.listing_price,
        when_made=settings.listing_when_made,
        taxonomy_id=settings.listing_taxonomy_id,
        shop_section_id=settings.listing_shop_section_id,
    )


@lru_cache
def get_submit_listing_use_case() -> SubmitListing:
    # One workflow per process: its state machine is what serialises submissions
    return SubmitListing(
        get_marketplace_api(),
        get_credential_store(),
        get_progress_publisher(),
        _draft_defaults(),
    )
