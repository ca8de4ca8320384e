"""Unit tests for the automation action runners."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import httpx
import pytest

from plura.service.form_actions import FormActionRunner, render_template

SUBACCOUNT_ID = UUID("33333333-3333-3333-3333-333333333333")


def _form(**overrides) -> SimpleNamespace:
    values = {
        "email_subject": None,
        "email_body": None,
        "subaccount_id": SUBACCOUNT_ID,
        "individual_id": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _action(action_type: str, config=None) -> SimpleNamespace:
    return SimpleNamespace(type=action_type, config=config)


def _runner(handler=None, submission_repo=None) -> FormActionRunner:
    transport = httpx.MockTransport(handler or (lambda request: httpx.Response(200)))
    return FormActionRunner(
        submission_repo=submission_repo or MagicMock(),
        http_client_factory=lambda: httpx.AsyncClient(transport=transport),
    )


class TestRenderTemplate:
    """Tests for render_template."""

    def test_replaces_placeholders(self) -> None:
        assert render_template("Hi {{name}}, age {{age}}", {"name": "Ann", "age": 30}) == (
            "Hi Ann, age 30"
        )

    def test_unknown_placeholders_are_left(self) -> None:
        assert render_template("Hi {{name}}", {}) == "Hi {{name}}"


class TestSendEmail:
    """Tests for the SEND_EMAIL runner."""

    async def test_action_config_wins_over_form_defaults(self) -> None:
        """The action subject is rendered against the submission."""
        result = await _runner().run(
            _action("SEND_EMAIL", {"subject": "Welcome {{name}}"}),
            {"name": "Ann", "email": "ann@example.com"},
            _form(email_subject="Ignored"),
        )

        assert result == {
            "success": True,
            "emailSent": True,
            "recipient": "ann@example.com",
            "subject": "Welcome Ann",
        }

    async def test_falls_back_to_default_subject(self) -> None:
        result = await _runner().run(_action("SEND_EMAIL"), {}, _form())

        assert result["subject"] == "Form Submission"
        assert result["recipient"] is None


class TestCreateContact:
    """Tests for the CREATE_CONTACT runner."""

    async def test_creates_contact_for_form_owner(self) -> None:
        """The contact is filed under the form's subaccount."""
        submission_repo = MagicMock()
        submission_repo.create_contact = AsyncMock(
            return_value=SimpleNamespace(
                id=UUID("cccccccc-cccc-cccc-cccc-cccccccccccc"), email="ann@example.com"
            )
        )

        result = await _runner(submission_repo=submission_repo).run(
            _action("CREATE_CONTACT"), {"fullName": "Ann", "email": "ann@example.com"}, _form()
        )

        submission_repo.create_contact.assert_awaited_once_with(
            name="Ann",
            email="ann@example.com",
            subaccount_id=SUBACCOUNT_ID,
            individual_id=None,
        )
        assert result["contactCreated"] is True
        assert result["contactId"] == "cccccccc-cccc-cccc-cccc-cccccccccccc"


class TestCallWebhook:
    """Tests for the CALL_WEBHOOK runner."""

    async def test_posts_form_data(self) -> None:
        """The payload carries the form data and source, with custom headers."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["token"] = request.headers.get("x-token")
            seen["body"] = json.loads(request.content)
            return httpx.Response(202)

        result = await _runner(handler).run(
            _action(
                "CALL_WEBHOOK",
                {"url": "https://hooks.example.com/lead", "headers": {"X-Token": "t"}},
            ),
            {"email": "ann@example.com"},
            _form(),
        )

        assert result == {
            "success": True,
            "status": 202,
            "webhookUrl": "https://hooks.example.com/lead",
        }
        assert seen["token"] == "t"
        assert seen["body"]["formData"] == {"email": "ann@example.com"}
        assert seen["body"]["source"] == "automation-form"

    async def test_error_status_is_a_failure(self) -> None:
        result = await _runner(lambda request: httpx.Response(500)).run(
            _action("CALL_WEBHOOK", {"url": "https://hooks.example.com"}), {}, _form()
        )

        assert result["success"] is False
        assert result["status"] == 500

    async def test_missing_url(self) -> None:
        result = await _runner().run(_action("CALL_WEBHOOK", {}), {}, _form())

        assert result == {"success": False, "error": "Webhook URL not configured"}

    async def test_transport_error_is_reported(self) -> None:
        """Connection failures become a failed result instead of raising."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        result = await _runner(handler).run(
            _action("CALL_WEBHOOK", {"url": "https://hooks.example.com"}), {}, _form()
        )

        assert result["success"] is False
        assert "refused" in result["error"]


class TestDispatch:
    """Tests for supports and run dispatch."""

    @pytest.mark.parametrize(
        "action_type,expected",
        [("SEND_EMAIL", True), ("CREATE_CONTACT", True), ("CALL_WEBHOOK", True), ("SMS", False)],
    )
    def test_supports(self, action_type: str, expected: bool) -> None:
        assert _runner().supports(action_type) is expected

    async def test_unknown_type_is_skipped(self) -> None:
        result = await _runner().run(_action("SMS"), {}, _form())

        assert result == {"skipped": True, "reason": "Unknown action type: SMS"}
