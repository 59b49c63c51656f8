"""Unit tests for application use cases. All ports are mocked."""
from unittest.mock import AsyncMock, MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest

from listing_builder.application.interfaces.authorization_server import (
    MalformedTokenResponseError,
    TokenExchangeError,
)
from listing_builder.application.interfaces.key_value_store import StorageUnavailableError
from listing_builder.application.interfaces.marketplace_api import (
    AccountInfo,
    EtsyApiError,
)
from listing_builder.application.services.credential_store import CredentialStore
from listing_builder.application.use_cases.begin_authorization import (
    STATE_STORAGE_KEY,
    VERIFIER_STORAGE_KEY,
    BeginAuthorization,
)
from listing_builder.application.use_cases.complete_authorization import (
    AuthorizationDeniedError,
    CompleteAuthorization,
    MissingVerifierError,
    StateMismatchError,
)
from listing_builder.application.use_cases.log_out import LogOut
from listing_builder.application.use_cases.submit_listing import (
    SESSION_EXPIRED_MESSAGE,
    NoShopAssociatedError,
    SubmissionInProgressError,
    SubmitListing,
    is_session_expired,
)
from listing_builder.domain.entities.auth_session import derive_code_challenge
from listing_builder.domain.entities.listing_submission import (
    ListingSubmission,
    UploadPayload,
)
from listing_builder.domain.enums.submission_step import SubmissionStep
from listing_builder.domain.events.submission_events import (
    SubmissionFailed,
    SubmissionInProgress,
    SubmissionSucceeded,
)
from listing_builder.infrastructure.external_services.etsy_oauth_client import EtsyOAuthClient
from listing_builder.infrastructure.storage.in_memory_store import InMemoryKeyValueStore


def _make_credentials(token: str | None = "tok") -> CredentialStore:
    store = CredentialStore(InMemoryKeyValueStore())
    if token:
        store.save(token)
    return store


def _make_auth_server(token: str = "new-token") -> MagicMock:
    server = MagicMock()
    server.build_authorization_url = MagicMock(return_value="https://etsy.test/oauth?x=1")
    server.exchange_code = AsyncMock(return_value=token)
    return server


def _make_api(listing_id: int = 555) -> MagicMock:
    api = MagicMock()
    api.get_me = AsyncMock(return_value=AccountInfo(user_id=7, shop_id=42))
    api.create_listing = AsyncMock(return_value=listing_id)
    api.upload_image = AsyncMock(return_value=None)
    api.upload_file = AsyncMock(return_value=None)
    return api


def _make_publisher() -> MagicMock:
    pub = MagicMock()
    pub.publish = AsyncMock()
    return pub


def _make_submission(**overrides) -> ListingSubmission:  # type: ignore[no-untyped-def]
    defaults = dict(
        title="My Cool Print!",
        description="Printable wall art.",
        tags=["poster", "wall art"],
        image_1=UploadPayload("one.png", b"1", "image/png"),
        image_2=UploadPayload("two.png", b"2", "image/png"),
        archive=UploadPayload("pack.zip", b"PK", "application/zip"),
    )
    defaults.update(overrides)
    return ListingSubmission(**defaults)


def _published(publisher: MagicMock) -> list:  # type: ignore[type-arg]
    return [call.args[0] for call in publisher.publish.await_args_list]


class TestBeginAuthorization:
    def test_stores_secrets_and_returns_url(self) -> None:
        transient = InMemoryKeyValueStore()
        server = _make_auth_server()
        url = BeginAuthorization(transient, server).execute()

        assert url == "https://etsy.test/oauth?x=1"
        verifier = transient.get(VERIFIER_STORAGE_KEY)
        state = transient.get(STATE_STORAGE_KEY)
        assert verifier and state
        server.build_authorization_url.assert_called_once_with(
            state=state, code_challenge=derive_code_challenge(verifier)
        )

    def test_builds_pkce_authorization_url(self) -> None:
        transient = InMemoryKeyValueStore()
        client = EtsyOAuthClient(
            client_id="keystring",
            redirect_uri="http://localhost:8000/",
            scopes=["listings_w", "shops_r"],
            auth_url="https://www.etsy.com/oauth/connect",
        )
        url = BeginAuthorization(transient, client).execute()

        parsed = urlparse(url)
        query = {k: v[0] for k, v in parse_qs(parsed.query).items()}
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://www.etsy.com/oauth/connect"
        assert query["response_type"] == "code"
        assert query["client_id"] == "keystring"
        assert query["redirect_uri"] == "http://localhost:8000/"
        assert query["scope"] == "listings_w shops_r"
        assert query["state"] == transient.get(STATE_STORAGE_KEY)
        assert query["code_challenge"] == derive_code_challenge(transient.get(VERIFIER_STORAGE_KEY))
        assert query["code_challenge_method"] == "S256"

    def test_storage_failure_propagates(self) -> None:
        transient = MagicMock()
        transient.set.side_effect = StorageUnavailableError("blocked")
        server = _make_auth_server()
        with pytest.raises(StorageUnavailableError):
            BeginAuthorization(transient, server).execute()
        server.build_authorization_url.assert_not_called()


class TestCompleteAuthorization:
    def _setup(self, state: str | None = "s1", verifier: str | None = "abc"):  # type: ignore[no-untyped-def]
        transient = InMemoryKeyValueStore()
        if state:
            transient.set(STATE_STORAGE_KEY, state)
        if verifier:
            transient.set(VERIFIER_STORAGE_KEY, verifier)
        server = _make_auth_server()
        credentials = _make_credentials(None)
        return transient, server, credentials, CompleteAuthorization(transient, server, credentials)

    @pytest.mark.asyncio
    async def test_exchanges_code_and_saves_token(self) -> None:
        transient, server, credentials, use_case = self._setup()
        token = await use_case.execute({"code": "xyz", "state": "s1"})

        assert token == "new-token"
        assert credentials.token == "new-token"
        server.exchange_code.assert_awaited_once_with("xyz", "abc")
        assert transient.get(STATE_STORAGE_KEY) is None
        assert transient.get(VERIFIER_STORAGE_KEY) is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "stored, returned",
        [("s1", "s2"), ("s1", None), (None, "s1"), ("s1", ""), ("abc", "ABC")],
    )
    async def test_state_mismatch_rejected_without_network(
        self, stored: str | None, returned: str | None
    ) -> None:
        transient, server, credentials, use_case = self._setup(state=stored)
        params = {"code": "xyz"}
        if returned is not None:
            params["state"] = returned

        with pytest.raises(StateMismatchError):
            await use_case.execute(params)

        server.exchange_code.assert_not_called()
        assert transient.get(STATE_STORAGE_KEY) is None
        assert transient.get(VERIFIER_STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_provider_error_is_authorization_denied(self) -> None:
        _, server, _, use_case = self._setup()
        with pytest.raises(AuthorizationDeniedError) as exc_info:
            await use_case.execute(
                {"state": "s1", "error": "access_denied", "error_description": "User declined"}
            )
        assert exc_info.value.description == "User declined"
        server.exchange_code.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_code_without_error(self) -> None:
        _, _, _, use_case = self._setup()
        with pytest.raises(AuthorizationDeniedError) as exc_info:
            await use_case.execute({"state": "s1"})
        assert "No authorization code" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_verifier(self) -> None:
        _, server, _, use_case = self._setup(verifier=None)
        with pytest.raises(MissingVerifierError):
            await use_case.execute({"code": "xyz", "state": "s1"})
        server.exchange_code.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error", [TokenExchangeError(400, "invalid_grant"), MalformedTokenResponseError()]
    )
    async def test_exchange_failure_cleans_up_and_logs_out(self, error: Exception) -> None:
        transient, server, credentials, use_case = self._setup()
        credentials.save("stale")
        server.exchange_code = AsyncMock(side_effect=error)

        with pytest.raises(type(error)):
            await use_case.execute({"code": "xyz", "state": "s1"})

        assert credentials.token is None
        assert transient.get(STATE_STORAGE_KEY) is None
        assert transient.get(VERIFIER_STORAGE_KEY) is None

    @pytest.mark.asyncio
    async def test_second_callback_with_same_state_is_rejected(self) -> None:
        _, server, _, use_case = self._setup()
        await use_case.execute({"code": "xyz", "state": "s1"})
        with pytest.raises(StateMismatchError):
            await use_case.execute({"code": "xyz", "state": "s1"})
        server.exchange_code.assert_awaited_once()


class TestLogOut:
    def test_logout_twice_same_as_once(self) -> None:
        credentials = _make_credentials("tok")
        use_case = LogOut(credentials)
        use_case.execute()
        use_case.execute()
        assert credentials.token is None
        assert credentials.is_authenticated is False


class TestSubmitListing:
    @pytest.mark.asyncio
    async def test_runs_all_steps_in_order(self) -> None:
        api = _make_api()
        publisher = _make_publisher()
        use_case = SubmitListing(api, _make_credentials(), publisher)
        submission = _make_submission()

        result = await use_case.execute(submission)

        assert isinstance(result, SubmissionSucceeded)
        assert result.listing_id == 555
        assert "555" in result.message
        api.get_me.assert_awaited_once_with("tok")
        shop_id, payload, token = api.create_listing.await_args.args
        assert shop_id == 42
        assert payload["sku"] == ["my_cool_print"]
        assert token == "tok"
        assert [c.args[2] for c in api.upload_image.await_args_list] == [1, 2]
        assert api.upload_image.await_args_list[0].args[1] is submission.image_1
        assert api.upload_image.await_args_list[1].args[1] is submission.image_2
        api.upload_file.assert_awaited_once_with(555, submission.archive, "tok")
        assert use_case.step is SubmissionStep.IDLE

    @pytest.mark.asyncio
    async def test_publishes_progress_for_every_step(self) -> None:
        publisher = _make_publisher()
        use_case = SubmitListing(_make_api(), _make_credentials(), publisher)
        await use_case.execute(_make_submission())

        events = _published(publisher)
        steps = [e.step for e in events if isinstance(e, SubmissionInProgress)]
        assert steps == [
            SubmissionStep.FETCHING_ACCOUNT,
            SubmissionStep.CREATING_DRAFT,
            SubmissionStep.UPLOADING_IMAGE_1,
            SubmissionStep.UPLOADING_IMAGE_2,
            SubmissionStep.UPLOADING_ARCHIVE,
        ]
        assert isinstance(events[-1], SubmissionSucceeded)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("tags", [[], [f"t{i}" for i in range(14)]])
    async def test_validation_failure_never_calls_api(self, tags: list[str]) -> None:
        api = _make_api()
        use_case = SubmitListing(api, _make_credentials(), _make_publisher())
        result = await use_case.execute(_make_submission(tags=tags))

        assert isinstance(result, SubmissionFailed)
        assert result.failed_step is SubmissionStep.IDLE
        assert result.is_auth_expired is False
        api.get_me.assert_not_called()
        assert use_case.step is SubmissionStep.IDLE

    @pytest.mark.asyncio
    async def test_missing_file_rejected(self) -> None:
        api = _make_api()
        use_case = SubmitListing(api, _make_credentials(), _make_publisher())
        result = await use_case.execute(_make_submission(archive=None))
        assert isinstance(result, SubmissionFailed)
        assert "upload all files" in result.message
        api.get_me.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_file_rejected_even_when_validate_is_skipped(self) -> None:
        api = _make_api()
        use_case = SubmitListing(api, _make_credentials(), _make_publisher())
        with patch.object(ListingSubmission, "validate"):
            result = await use_case.execute(_make_submission(image_2=None))
        assert isinstance(result, SubmissionFailed)
        assert "upload all files" in result.message
        api.get_me.assert_not_called()
        assert use_case.step is SubmissionStep.IDLE

    @pytest.mark.asyncio
    async def test_no_shop_fails_before_draft(self) -> None:
        api = _make_api()
        api.get_me = AsyncMock(return_value=AccountInfo(user_id=7, shop_id=None))
        credentials = _make_credentials()
        use_case = SubmitListing(api, credentials, _make_publisher())

        result = await use_case.execute(_make_submission())

        assert isinstance(result, SubmissionFailed)
        assert result.failed_step is SubmissionStep.FETCHING_ACCOUNT
        assert "Could not find a shop" in result.message
        api.create_listing.assert_not_called()
        assert credentials.token == "tok"

    @pytest.mark.asyncio
    async def test_image_two_500_leaves_token_and_reports_draft(self) -> None:
        api = _make_api(listing_id=555)
        api.upload_image = AsyncMock(
            side_effect=[None, EtsyApiError(500, "Internal error", "Internal Server Error")]
        )
        credentials = _make_credentials()
        publisher = _make_publisher()
        use_case = SubmitListing(api, credentials, publisher)

        result = await use_case.execute(_make_submission())

        assert isinstance(result, SubmissionFailed)
        assert result.failed_step is SubmissionStep.UPLOADING_IMAGE_2
        assert result.draft_listing_id == 555
        assert result.is_auth_expired is False
        assert result.message.startswith("Failed to upload preview image 2:")
        assert "Internal error" in result.message
        assert credentials.token == "tok"
        api.upload_file.assert_not_called()
        assert use_case.step is SubmissionStep.FAILED
        assert not any(isinstance(e, SubmissionSucceeded) for e in _published(publisher))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failing", ["get_me", "create_listing", "upload_image", "upload_file"])
    async def test_401_at_any_step_clears_token(self, failing: str) -> None:
        api = _make_api()
        setattr(api, failing, AsyncMock(side_effect=EtsyApiError(401, "unauthorized", "Unauthorized")))
        credentials = _make_credentials()
        use_case = SubmitListing(api, credentials, _make_publisher())

        result = await use_case.execute(_make_submission())

        assert isinstance(result, SubmissionFailed)
        assert result.is_auth_expired is True
        assert result.message == SESSION_EXPIRED_MESSAGE
        assert credentials.token is None

    @pytest.mark.asyncio
    async def test_token_message_counts_as_expired(self) -> None:
        api = _make_api()
        api.create_listing = AsyncMock(side_effect=EtsyApiError(400, "invalid_token", "Bad Request"))
        credentials = _make_credentials()
        result = await SubmitListing(api, credentials, _make_publisher()).execute(_make_submission())

        assert isinstance(result, SubmissionFailed)
        assert result.is_auth_expired is True
        assert credentials.token is None

    @pytest.mark.asyncio
    async def test_without_token_fails_as_expired(self) -> None:
        api = _make_api()
        result = await SubmitListing(api, _make_credentials(None), _make_publisher()).execute(
            _make_submission()
        )
        assert isinstance(result, SubmissionFailed)
        assert result.is_auth_expired is True
        api.get_me.assert_not_called()

    @pytest.mark.asyncio
    async def test_token_cleared_mid_run_stops_next_step(self) -> None:
        api = _make_api()
        credentials = _make_credentials()

        async def _upload_and_logout(*args, **kwargs) -> None:  # type: ignore[no-untyped-def]
            credentials.clear()

        api.upload_image = AsyncMock(side_effect=_upload_and_logout)
        result = await SubmitListing(api, credentials, _make_publisher()).execute(_make_submission())

        assert isinstance(result, SubmissionFailed)
        assert result.failed_step is SubmissionStep.UPLOADING_IMAGE_2
        # The in-flight call kept the token it captured
        assert api.upload_image.await_args_list[0].args[3] == "tok"
        assert api.upload_image.await_count == 1

    @pytest.mark.asyncio
    async def test_can_resubmit_after_failure(self) -> None:
        api = _make_api()
        api.get_me = AsyncMock(
            side_effect=[EtsyApiError(503, "busy", "Service Unavailable"), AccountInfo(7, 42)]
        )
        use_case = SubmitListing(api, _make_credentials(), _make_publisher())

        first = await use_case.execute(_make_submission())
        second = await use_case.execute(_make_submission())

        assert isinstance(first, SubmissionFailed)
        assert isinstance(second, SubmissionSucceeded)

    @pytest.mark.asyncio
    async def test_rejects_concurrent_submission(self) -> None:
        api = _make_api()
        use_case = SubmitListing(api, _make_credentials(), _make_publisher())
        seen: list[Exception] = []

        async def _reenter(token: str) -> AccountInfo:
            try:
                await use_case.execute(_make_submission())
            except SubmissionInProgressError as exc:
                seen.append(exc)
            return AccountInfo(user_id=7, shop_id=42)

        api.get_me = AsyncMock(side_effect=_reenter)
        result = await use_case.execute(_make_submission())

        assert isinstance(result, SubmissionSucceeded)
        assert len(seen) == 1
        assert seen[0].step is SubmissionStep.FETCHING_ACCOUNT


class TestIsSessionExpired:
    def test_401_is_expired(self) -> None:
        assert is_session_expired(EtsyApiError(401, "nope")) is True

    def test_500_is_not_expired(self) -> None:
        assert is_session_expired(EtsyApiError(500, "boom")) is False

    def test_token_mention_is_expired(self) -> None:
        assert is_session_expired(RuntimeError("Access Token expired")) is True

    def test_no_shop_is_not_expired(self) -> None:
        assert is_session_expired(NoShopAssociatedError(1)) is False
