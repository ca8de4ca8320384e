"""Unit tests for FormService.

Covers required-field validation, the submission window and the public
submit flow with its per-action execution records.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest

from plura.exception import BadRequestError, ResourceNotFoundError, TenantIsolationError
from plura.service.form_service import (
    FormService,
    validate_required_fields,
    window_start,
)
from tests.conftest import OTHER_AGENCY_ID, TEST_SUBACCOUNT_ID, make_mock_subaccount

FORM_ID = UUID("99999999-9999-9999-9999-999999999999")
AUTOMATION_ID = UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
SUBMISSION_ID = UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
WEBHOOK_ID = "cccccccc-cccc-cccc-cccc-cccccccccccc"


def _field(name: str, label: str = "", required: bool = False) -> SimpleNamespace:
    return SimpleNamespace(name=name, label=label, required=required)


def _action(action_type: str) -> SimpleNamespace:
    return SimpleNamespace(type=action_type, config={})


def _form(actions=None, success_url=None, link_active=True) -> SimpleNamespace:
    automation = SimpleNamespace(id=AUTOMATION_ID, actions=actions or [])
    return SimpleNamespace(
        id=FORM_ID,
        fields=[_field("email", "Email", required=True), _field("name")],
        automations=[SimpleNamespace(is_active=link_active, automation=automation)],
        success_url=success_url,
    )


@pytest.fixture
def form_repo() -> MagicMock:
    repo = MagicMock()
    repo.get_published_by_webhook_id = AsyncMock(return_value=_form())
    repo.get_published_by_id = AsyncMock(return_value=None)
    repo.list_filtered = AsyncMock(return_value=([], 0))
    repo.list_ids = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def submission_repo() -> MagicMock:
    repo = MagicMock()
    repo.create = AsyncMock(return_value=SimpleNamespace(id=SUBMISSION_ID))
    repo.record_execution = AsyncMock()
    repo.mark_processed = AsyncMock()
    repo.list_for_forms = AsyncMock(return_value=([], 0))
    return repo


@pytest.fixture
def action_runner() -> MagicMock:
    runner = MagicMock()
    runner.supports = MagicMock(side_effect=lambda t: t != "SEND_SMS")
    runner.run = AsyncMock(return_value={"success": True, "emailSent": True})
    return runner


@pytest.fixture
def service(
    form_repo: MagicMock,
    submission_repo: MagicMock,
    subaccount_repo: MagicMock,
    action_runner: MagicMock,
) -> FormService:
    return FormService(
        form_repo=form_repo,
        submission_repo=submission_repo,
        subaccount_repo=subaccount_repo,
        action_runner=action_runner,
        public_url="https://app.example.com/",
    )


class TestValidateRequiredFields:
    """Tests for validate_required_fields."""

    def test_filled_form_passes(self) -> None:
        validate_required_fields(_form(), {"email": "lead@example.com"})

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_required_field(self, value) -> None:
        """Blank required values fail with the field label."""
        with pytest.raises(BadRequestError) as exc_info:
            validate_required_fields(_form(), {"email": value})

        assert exc_info.value.code == "VALIDATION_FAILED"
        assert exc_info.value.message == "Field 'Email' is required"


class TestWindowStart:
    """Tests for window_start."""

    NOW = datetime(2026, 4, 30, tzinfo=timezone.utc)

    def test_known_ranges(self) -> None:
        assert window_start("30d", self.NOW) == datetime(2026, 3, 31, tzinfo=timezone.utc)
        assert window_start("90d", self.NOW) == datetime(2026, 1, 30, tzinfo=timezone.utc)

    def test_unknown_range_falls_back_to_a_week(self) -> None:
        assert window_start("1y", self.NOW) == datetime(2026, 4, 23, tzinfo=timezone.utc)
        assert window_start(None, self.NOW) == datetime(2026, 4, 23, tzinfo=timezone.utc)


class TestSubmit:
    """Tests for FormService.submit."""

    async def test_stores_submission_and_runs_actions(
        self,
        service: FormService,
        form_repo: MagicMock,
        submission_repo: MagicMock,
        action_runner: MagicMock,
    ) -> None:
        """Each supported action runs once and is recorded as a success."""
        form_repo.get_published_by_webhook_id.return_value = _form(
            actions=[_action("SEND_EMAIL"), _action("SEND_SMS")]
        )

        body, success_url = await service.submit(
            WEBHOOK_ID, {"email": "lead@example.com"}, ip_address=None, user_agent="ua"
        )

        assert success_url is None
        assert body["submissionId"] == str(SUBMISSION_ID)
        assert [r["actionType"] for r in body["automations"]] == ["SEND_EMAIL"]
        submission_repo.create.assert_awaited_once_with(
            form_id=FORM_ID,
            data={"email": "lead@example.com"},
            ip_address="unknown",
            user_agent="ua",
            source="web",
        )
        submission_repo.record_execution.assert_awaited_once_with(
            SUBMISSION_ID,
            AUTOMATION_ID,
            "success",
            result={"success": True, "emailSent": True},
            error_message=None,
        )
        submission_repo.mark_processed.assert_awaited_once_with(SUBMISSION_ID)

    async def test_failing_action_does_not_stop_the_rest(
        self,
        service: FormService,
        form_repo: MagicMock,
        submission_repo: MagicMock,
        action_runner: MagicMock,
    ) -> None:
        """An exception is recorded as a failed execution and the loop continues."""
        form_repo.get_published_by_webhook_id.return_value = _form(
            actions=[_action("CALL_WEBHOOK"), _action("CREATE_CONTACT")]
        )
        action_runner.run = AsyncMock(
            side_effect=[RuntimeError("timeout"), {"success": True}]
        )

        body, _ = await service.submit(WEBHOOK_ID, {"email": "a@b.c"}, "1.2.3.4", None)

        statuses = [c.args[2] for c in submission_repo.record_execution.await_args_list]
        assert statuses == ["failed", "success"]
        assert submission_repo.record_execution.await_args_list[0].kwargs == {
            "error_message": "timeout"
        }
        assert len(body["automations"]) == 1

    async def test_inactive_link_is_skipped(
        self, service: FormService, form_repo: MagicMock, action_runner: MagicMock
    ) -> None:
        """Automations linked but switched off do not run."""
        form_repo.get_published_by_webhook_id.return_value = _form(
            actions=[_action("SEND_EMAIL")], link_active=False
        )

        await service.submit(WEBHOOK_ID, {"email": "a@b.c"}, None, None)

        action_runner.run.assert_not_awaited()

    async def test_returns_success_url(
        self, service: FormService, form_repo: MagicMock
    ) -> None:
        """The form's success URL is handed back for the redirect."""
        form_repo.get_published_by_webhook_id.return_value = _form(
            success_url="https://example.com/thanks"
        )

        _, success_url = await service.submit(WEBHOOK_ID, {"email": "a@b.c"}, None, None)

        assert success_url == "https://example.com/thanks"

    async def test_unknown_webhook(self, service: FormService, form_repo: MagicMock) -> None:
        """No published form for the webhook is a 404."""
        form_repo.get_published_by_webhook_id.return_value = None

        with pytest.raises(ResourceNotFoundError):
            await service.submit(WEBHOOK_ID, {}, None, None)

    @pytest.mark.parametrize("webhook_id", ["%", "_", "%25", "wh_1", ""])
    async def test_non_uuid_webhook_is_not_looked_up(
        self, service: FormService, form_repo: MagicMock, webhook_id: str
    ) -> None:
        """Ids that cannot appear in a webhook URL never reach the query."""
        with pytest.raises(ResourceNotFoundError):
            await service.submit(webhook_id, {"email": "a@b.c"}, None, None)

        form_repo.get_published_by_webhook_id.assert_not_awaited()

    async def test_webhook_id_is_canonicalised(
        self, service: FormService, form_repo: MagicMock
    ) -> None:
        """Uppercase ids match the lowercase UUID stored in the URL."""
        await service.submit(WEBHOOK_ID.upper(), {"email": "a@b.c"}, None, None)

        form_repo.get_published_by_webhook_id.assert_awaited_once_with(WEBHOOK_ID)

    async def test_missing_required_field_stores_nothing(
        self, service: FormService, submission_repo: MagicMock
    ) -> None:
        """Validation runs before the submission is stored."""
        with pytest.raises(BadRequestError):
            await service.submit(WEBHOOK_ID, {"name": "Ann"}, None, None)

        submission_repo.create.assert_not_awaited()


class TestGetFormFields:
    """Tests for FormService.get_form_fields."""

    async def test_fields_in_display_order(
        self, service: FormService, form_repo: MagicMock
    ) -> None:
        """Fields come back sorted by their order position."""
        fields = [
            SimpleNamespace(
                id=UUID(int=order),
                name=name,
                label=name.title(),
                type="text",
                required=False,
                placeholder=None,
                default_value=None,
                options=None,
                validation=None,
                order=order,
            )
            for name, order in [("phone", 2), ("email", 0), ("name", 1)]
        ]
        form_repo.get_published_by_id.return_value = SimpleNamespace(
            id=FORM_ID,
            name="Contact",
            description=None,
            webhook_url=f"https://app.example.com/api/forms/{WEBHOOK_ID}/submit",
            fields=fields,
        )

        result = await service.get_form_fields(str(FORM_ID))

        form_repo.get_published_by_id.assert_awaited_once_with(FORM_ID)
        assert result["form"]["name"] == "Contact"
        assert [f["name"] for f in result["fields"]] == ["email", "name", "phone"]

    async def test_unpublished_form_is_not_found(self, service: FormService) -> None:
        with pytest.raises(ResourceNotFoundError):
            await service.get_form_fields(str(FORM_ID))

    async def test_malformed_id(self, service: FormService, form_repo: MagicMock) -> None:
        with pytest.raises(BadRequestError, match="formId"):
            await service.get_form_fields("form-1")

        form_repo.get_published_by_id.assert_not_awaited()


class TestListing:
    """Tests for FormService.list_forms and list_submissions."""

    async def test_list_forms_without_owner_filters_by_creator(
        self, service: FormService, form_repo: MagicMock, token_session
    ) -> None:
        """Without an owner only the caller's own forms are listed."""
        await service.list_forms(token_session, status="published")

        kwargs = form_repo.list_filtered.await_args.kwargs
        assert kwargs["created_by"] == token_session.user_id
        assert kwargs["status"] == "PUBLISHED"

    async def test_list_forms_for_subaccount(
        self, service: FormService, form_repo: MagicMock, token_session
    ) -> None:
        """An owned subaccount lifts the creator filter."""
        await service.list_forms(token_session, subaccount_id=TEST_SUBACCOUNT_ID)

        assert form_repo.list_filtered.await_args.kwargs["created_by"] is None

    async def test_foreign_subaccount_is_rejected(
        self, service: FormService, subaccount_repo: MagicMock, token_session
    ) -> None:
        """Another tenant's subaccount cannot be listed."""
        subaccount_repo.get_by_id = AsyncMock(
            return_value=make_mock_subaccount(agency_id=OTHER_AGENCY_ID)
        )

        with pytest.raises(TenantIsolationError):
            await service.list_forms(token_session, subaccount_id=TEST_SUBACCOUNT_ID)

    async def test_create_form_requires_name(
        self, service: FormService, token_session
    ) -> None:
        with pytest.raises(BadRequestError, match="Form name is required"):
            await service.create_form(token_session, {})

    async def test_list_submissions_all_forms(
        self,
        service: FormService,
        form_repo: MagicMock,
        submission_repo: MagicMock,
        token_session,
    ) -> None:
        """formId "all" does not narrow the form set."""
        form_repo.list_ids.return_value = [FORM_ID]

        result = await service.list_submissions(token_session, form_id="all")

        assert result == ([], 0)
        assert form_repo.list_ids.await_args.kwargs["form_id"] is None
        assert submission_repo.list_for_forms.await_args.args[0] == [FORM_ID]
