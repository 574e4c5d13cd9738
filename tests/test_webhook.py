"""Tests for webhook verification, result quality gates and competitor fan-out."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from app.models.analysis import STATUS_DONE, STATUS_PENDING
from app.research.provider import ResearchServiceError
from app.schemas.webhook import TaskRunEvent
from app.services.analysis_store import AnalysisStore
from app.services.webhook import (
    ERROR_ANALYSIS_FAILED,
    ERROR_EMPTY_STRINGS,
    ERROR_NO_COMPETITORS,
    ERROR_NOT_A_COMPANY,
    ERROR_UNEXPECTED_FORMAT,
    MissingHostnameError,
    compute_signature,
    competitor_hostnames,
    evaluate_result,
    handle_task_run_event,
    verify_webhook_signature,
)
from tests.helpers import (
    company_content,
    make_analysis,
    make_done_analysis,
    signed_webhook_headers,
    status_event,
    task_result,
)
from tests.test_constants import TEST_WEBHOOK_SECRET

CALLBACK = "https://competitors.test/webhook"


def _event(**kwargs) -> TaskRunEvent:
    return TaskRunEvent.model_validate(status_event(**kwargs))


# ---------------------------------------------------------------------------
# Signature verification
# ---------------------------------------------------------------------------


class TestVerifySignature:
    body = '{"type":"task_run.status"}'

    def _sig(self, secret: str = TEST_WEBHOOK_SECRET, body: str | None = None) -> str:
        return compute_signature(secret, "wh_1", "1757500000", body or self.body)

    def test_valid_signature(self):
        assert verify_webhook_signature(TEST_WEBHOOK_SECRET, "wh_1", "1757500000", self.body, f"v1,{self._sig()}")

    def test_any_candidate_may_match(self):
        header = f"v1,bogus v1,{self._sig()}"
        assert verify_webhook_signature(TEST_WEBHOOK_SECRET, "wh_1", "1757500000", self.body, header)

    def test_unsupported_version_rejected(self):
        assert not verify_webhook_signature(TEST_WEBHOOK_SECRET, "wh_1", "1757500000", self.body, f"v2,{self._sig()}")

    def test_tampered_body_rejected(self):
        tampered = self.body.replace("status", "statuz")
        assert not verify_webhook_signature(TEST_WEBHOOK_SECRET, "wh_1", "1757500000", tampered, f"v1,{self._sig()}")

    def test_wrong_secret_rejected(self):
        assert not verify_webhook_signature(TEST_WEBHOOK_SECRET, "wh_1", "1757500000", self.body, f"v1,{self._sig('other')}")

    def test_tampered_timestamp_rejected(self):
        assert not verify_webhook_signature(TEST_WEBHOOK_SECRET, "wh_1", "1757500001", self.body, f"v1,{self._sig()}")

    def test_empty_secret_rejects_everything(self):
        assert not verify_webhook_signature("", "wh_1", "1757500000", self.body, f"v1,{self._sig('')}")

    def test_bytes_and_text_bodies_sign_alike(self):
        assert compute_signature(TEST_WEBHOOK_SECRET, "wh_1", "1757500000", self.body.encode("utf-8")) == self._sig()


# ---------------------------------------------------------------------------
# Quality gates
# ---------------------------------------------------------------------------


class TestEvaluateResult:
    def test_success_extracts_fields(self):
        outcome = evaluate_result(task_result())
        assert outcome.succeeded
        assert json.loads(outcome.result)["output"]["content"]["company_name"] == "Acme Corp"
        assert outcome.extra_fields == {
            "company_name": "Acme Corp",
            "category": "Developer Tools",
            "business_description": "Acme builds rockets for coyotes.",
            "industry_sector": "Aerospace",
            "keywords": "rockets, anvils",
        }

    def test_non_json_output(self):
        outcome = evaluate_result(task_result(content="plain text", output_type="text"))
        assert outcome.error == ERROR_UNEXPECTED_FORMAT
        assert outcome.result is None

    def test_company_does_not_fit(self):
        outcome = evaluate_result(task_result(company_content(company_fits_criteria=False)))
        assert outcome.error == ERROR_NOT_A_COMPANY
        assert outcome.result is None

    def test_empty_string_stores_result_with_error(self):
        outcome = evaluate_result(task_result(company_content(pricing_summary="")))
        assert outcome.error == ERROR_EMPTY_STRINGS
        assert outcome.result is not None
        assert outcome.extra_fields == {}

    def test_nested_empty_string_is_caught(self):
        competitors = [{"name": "Beta", "hostname": "", "description": "x"}]
        outcome = evaluate_result(task_result(company_content(competitors=competitors)))
        assert outcome.error == ERROR_EMPTY_STRINGS

    def test_competitors_gate_only_when_required(self):
        result = task_result(company_content(competitors=[]))
        assert evaluate_result(result).succeeded
        assert evaluate_result(result, require_competitors=True).error == ERROR_NO_COMPETITORS

    def test_missing_company_name_is_not_written(self):
        content = company_content()
        del content["company_name"]
        outcome = evaluate_result(task_result(content))
        assert outcome.succeeded
        assert "company_name" not in outcome.extra_fields


class TestCompetitorHostnames:
    def test_normalizes_dedupes_and_excludes_parent(self):
        content = company_content(
            competitors=[
                {"name": "B", "hostname": "https://www.Beta.com/"},
                {"name": "B2", "hostname": "beta.com"},
                {"name": "Self", "hostname": "acme.com"},
                {"name": "Bad", "hostname": "not a host"},
                {"name": "NoHost"},
                {"name": "C", "hostname": "gamma.io"},
            ]
        )
        assert competitor_hostnames(content, exclude="acme.com") == ["beta.com", "gamma.io"]


# ---------------------------------------------------------------------------
# Event handling
# ---------------------------------------------------------------------------


class TestHandleTaskRunEvent:
    async def test_completed_event_stores_result(self, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        provider.get_task_run_result.return_value = task_result()

        await handle_task_run_event(store, provider, _event(), callback_url=CALLBACK)

        row = store.get("acme.com")
        assert row.status == STATUS_DONE
        assert row.error is None
        assert row.company_name == "Acme Corp"
        assert row.keywords == "rockets, anvils"
        provider.get_task_run_result.assert_awaited_once_with("run_1")
        provider.create_task_run.assert_not_called()

    async def test_duplicate_delivery_is_idempotent(self, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        provider.get_task_run_result.return_value = task_result()

        await handle_task_run_event(store, provider, _event(), callback_url=CALLBACK)
        first = store.get("acme.com")
        snapshot = (first.status, first.result, first.error, first.company_name, first.category)
        await handle_task_run_event(store, provider, _event(), callback_url=CALLBACK)
        second = store.get("acme.com")
        assert (second.status, second.result, second.error, second.company_name, second.category) == snapshot

    async def test_duplicate_deep_delivery_fans_out_once(self, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        provider.get_task_run_result.return_value = task_result(
            company_content(competitors=[{"name": "Beta Rockets", "hostname": "beta.com"}])
        )
        event = _event(is_deep=True)

        await handle_task_run_event(store, provider, event, callback_url=CALLBACK)
        await handle_task_run_event(store, provider, event, callback_url=CALLBACK)

        assert provider.create_task_run.await_count == 1
        assert store.get("beta.com").status == STATUS_PENDING

    async def test_missing_provider_terminalizes(self, store: AnalysisStore):
        store.create(make_analysis("acme.com"))

        await handle_task_run_event(store, None, _event(is_deep=True), callback_url=CALLBACK)

        row = store.get("acme.com")
        assert row.status == STATUS_DONE
        assert row.error == "Error fetching result: research service is not configured"

    async def test_quality_gate_failure(self, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        provider.get_task_run_result.return_value = task_result(company_content(executive_summary=""))

        await handle_task_run_event(store, provider, _event(is_deep=True), callback_url=CALLBACK)

        row = store.get("acme.com")
        assert row.status == STATUS_DONE
        assert row.error == ERROR_EMPTY_STRINGS
        assert row.result is not None
        provider.create_task_run.assert_not_called()

    async def test_failed_event_stores_message(self, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        await handle_task_run_event(
            store, provider, _event(status="failed", error="Processor crashed"), callback_url=CALLBACK
        )
        row = store.get("acme.com")
        assert row.status == STATUS_DONE
        assert row.error == "Processor crashed"
        provider.get_task_run_result.assert_not_called()

    async def test_failed_event_default_message(self, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        await handle_task_run_event(store, provider, _event(status="failed"), callback_url=CALLBACK)
        assert store.get("acme.com").error == ERROR_ANALYSIS_FAILED

    async def test_fetch_error_terminalizes(self, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        provider.get_task_run_result.side_effect = ResearchServiceError("Research service returned HTTP 500")

        await handle_task_run_event(store, provider, _event(), callback_url=CALLBACK)

        row = store.get("acme.com")
        assert row.status == STATUS_DONE
        assert row.error == "Error fetching result: Research service returned HTTP 500"

    async def test_completed_without_hostname_raises(self, store: AnalysisStore, provider: MagicMock):
        with pytest.raises(MissingHostnameError):
            await handle_task_run_event(store, provider, _event(hostname=None), callback_url=CALLBACK)

    async def test_running_status_is_ignored(self, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        await handle_task_run_event(store, provider, _event(status="running"), callback_url=CALLBACK)
        assert store.get("acme.com").status == STATUS_PENDING

    async def test_other_event_types_are_ignored(self, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        event = TaskRunEvent.model_validate({"type": "task_run.progress", "data": {"status": "completed"}})
        await handle_task_run_event(store, provider, event, callback_url=CALLBACK)
        assert store.get("acme.com").status == STATUS_PENDING


class TestFanOut:
    @pytest.fixture
    def deep_result(self) -> dict:
        return task_result(
            company_content(
                competitors=[
                    {"name": "Alpha", "hostname": "alpha.com", "description": "New."},
                    {"name": "Bravo", "hostname": "bravo.com", "description": "Fresh."},
                    {"name": "Charlie", "hostname": "charlie.com", "description": "Errored."},
                ]
            )
        )

    async def test_submits_only_new_or_errored_competitors(
        self, store: AnalysisStore, provider: MagicMock, deep_result: dict
    ):
        store.create(make_analysis("acme.com", username="alice"))
        store.create(make_done_analysis("bravo.com"))
        store.create(make_done_analysis("charlie.com", error="Analysis failed"))
        provider.get_task_run_result.return_value = deep_result

        await handle_task_run_event(
            store, provider, _event(is_deep=True, username="alice"), callback_url=CALLBACK
        )

        submitted = {c.kwargs["metadata"]["hostname"] for c in provider.create_task_run.call_args_list}
        assert submitted == {"alpha.com", "charlie.com"}
        for call in provider.create_task_run.call_args_list:
            assert call.kwargs["metadata"]["is_deep"] is False
            assert call.kwargs["metadata"]["username"] == "alice"
            assert call.kwargs["webhook_url"] == CALLBACK

        assert store.get("alpha.com").status == STATUS_PENDING
        assert store.get("alpha.com").username == "alice"
        charlie = store.get("charlie.com")
        assert charlie.status == STATUS_PENDING and charlie.error is None
        assert store.get("bravo.com").status == STATUS_DONE
        assert store.get("acme.com").status == STATUS_DONE

    async def test_stale_competitor_is_resubmitted(
        self, store: AnalysisStore, provider: MagicMock, deep_result: dict
    ):
        store.create(make_analysis("acme.com"))
        store.create(make_done_analysis("alpha.com", created_at="2025-01-01T00:00:00.000Z"))
        store.create(make_done_analysis("bravo.com"))
        store.create(make_done_analysis("charlie.com"))
        provider.get_task_run_result.return_value = deep_result

        await handle_task_run_event(store, provider, _event(is_deep=True), callback_url=CALLBACK)

        submitted = [c.kwargs["metadata"]["hostname"] for c in provider.create_task_run.call_args_list]
        assert submitted == ["alpha.com"]

    async def test_non_deep_analysis_does_not_fan_out(
        self, store: AnalysisStore, provider: MagicMock, deep_result: dict
    ):
        store.create(make_analysis("alpha.com"))
        provider.get_task_run_result.return_value = deep_result

        await handle_task_run_event(store, provider, _event(hostname="alpha.com"), callback_url=CALLBACK)

        provider.create_task_run.assert_not_called()

    async def test_run_metadata_takes_precedence(
        self, store: AnalysisStore, provider: MagicMock, deep_result: dict
    ):
        store.create(make_analysis("acme.com"))
        deep_result["run"]["metadata"] = {"hostname": "acme.com", "is_deep": "true", "username": "bob"}
        provider.get_task_run_result.return_value = deep_result

        await handle_task_run_event(store, provider, _event(is_deep=False), callback_url=CALLBACK)

        assert provider.create_task_run.await_count == 3
        assert {c.kwargs["metadata"]["username"] for c in provider.create_task_run.call_args_list} == {"bob"}

    async def test_one_failed_submission_does_not_block_others(
        self, store: AnalysisStore, provider: MagicMock, deep_result: dict
    ):
        store.create(make_analysis("acme.com"))
        provider.get_task_run_result.return_value = deep_result

        async def create(**kwargs):
            if kwargs["metadata"]["hostname"] == "bravo.com":
                raise ResearchServiceError("rate limited")
            return f"run_{kwargs['metadata']['hostname']}"

        provider.create_task_run.side_effect = create

        await handle_task_run_event(store, provider, _event(is_deep=True), callback_url=CALLBACK)

        assert store.get("alpha.com").status == STATUS_PENDING
        assert store.get("bravo.com") is None
        assert store.get("charlie.com").status == STATUS_PENDING
        assert store.get("acme.com").error is None


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------


class TestWebhookRoute:
    def _post(self, client: TestClient, payload: dict, headers: dict | None = None):
        body = json.dumps(payload)
        return client.post("/webhook", content=body, headers=headers or signed_webhook_headers(body))

    def test_valid_completed_event(self, client_with_db: TestClient, store: AnalysisStore, provider: MagicMock):
        store.create(make_analysis("acme.com"))
        provider.get_task_run_result.return_value = task_result()
        with patch("app.api.webhook.get_research_provider", return_value=provider):
            response = self._post(client_with_db, status_event())
        assert response.status_code == 200
        assert response.text == "OK"
        assert store.get("acme.com").status == STATUS_DONE

    def test_missing_headers(self, client_with_db: TestClient):
        response = client_with_db.post("/webhook", content="{}", headers={"webhook-id": "wh_1"})
        assert response.status_code == 400

    def test_tampered_body_is_rejected_without_side_effects(
        self, client_with_db: TestClient, store: AnalysisStore, provider: MagicMock
    ):
        store.create(make_analysis("acme.com"))
        headers = signed_webhook_headers(json.dumps(status_event(status="failed")))
        tampered = status_event(status="failed", error="forged")
        with patch("app.api.webhook.get_research_provider", return_value=provider):
            response = self._post(client_with_db, tampered, headers=headers)
        assert response.status_code == 401
        assert store.get("acme.com").status == STATUS_PENDING
        provider.get_task_run_result.assert_not_called()

    def test_recomputed_signature_is_accepted(
        self, client_with_db: TestClient, store: AnalysisStore, provider: MagicMock
    ):
        store.create(make_analysis("acme.com"))
        payload = status_event(status="failed", error="Out of credits")
        with patch("app.api.webhook.get_research_provider", return_value=provider):
            response = self._post(client_with_db, payload)
        assert response.status_code == 200
        assert store.get("acme.com").error == "Out of credits"

    def test_missing_hostname_is_400(self, client_with_db: TestClient, provider: MagicMock):
        with patch("app.api.webhook.get_research_provider", return_value=provider):
            response = self._post(client_with_db, status_event(hostname=None))
        assert response.status_code == 400
        assert "hostname" in response.text

    def test_invalid_payload_is_400(self, client_with_db: TestClient):
        body = "not json"
        response = client_with_db.post("/webhook", content=body, headers=signed_webhook_headers(body))
        assert response.status_code == 400

    def test_get_is_not_allowed(self, client_with_db: TestClient):
        response = client_with_db.get("/webhook")
        assert response.status_code == 405

    def test_undecodable_body_with_bad_signature_is_401(self, client_with_db: TestClient):
        headers = {"webhook-id": "wh_1", "webhook-timestamp": "1757500000", "webhook-signature": "v1,AAAA"}
        response = client_with_db.post("/webhook", content=b"\xff\xfe{}", headers=headers)
        assert response.status_code == 401

    def test_signed_undecodable_body_is_400(self, client_with_db: TestClient):
        body = b"\xff\xfe{}"
        headers = {
            "webhook-id": "wh_1",
            "webhook-timestamp": "1757500000",
            "webhook-signature": f"v1,{compute_signature(TEST_WEBHOOK_SECRET, 'wh_1', '1757500000', body)}",
        }
        response = client_with_db.post("/webhook", content=body, headers=headers)
        assert response.status_code == 400
        assert response.text == "Invalid payload"

    def test_unconfigured_provider_terminalizes_row(self, client_with_db: TestClient, store: AnalysisStore):
        store.create(make_analysis("acme.com"))
        with patch(
            "app.api.webhook.get_research_provider",
            side_effect=ValueError("PARALLEL_API_KEY is required for the research provider."),
        ):
            response = self._post(client_with_db, status_event())
        assert response.status_code == 200
        row = store.get("acme.com")
        assert row.status == STATUS_DONE
        assert row.error.startswith("Error fetching result:")
