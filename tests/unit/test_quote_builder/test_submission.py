"""
Unit tests for quote submission and cache reconciliation
"""

import pytest
import json

from quote_builder.submission import (
    SubmissionState, QuoteSubmission, QuoteSubmitter, reconcile_cached_quotes,
    get_cached_quotes, upsert_quote
)
from session_store import MemorySessionStore, encode_stored_value
from utils.exceptions import SubmissionError, ReconciliationError, ErrorCodes
from tests.mocks import MockQuoteEndpoint, FailingSessionStore


def _stored_user(store, key="user"):
    return json.loads(store.get(key))


@pytest.mark.unit
class TestReconcileCachedQuotes:
    """Test cases for reconcile_cached_quotes"""

    def test_replaces_quotes_of_matching_company(self):
        """Test the server quote list replaces the cached one and is persisted"""
        store = MemorySessionStore({"user": encode_stored_value({"Companies": [{"CompanyID": 9, "Quotes": []}]})})

        result = reconcile_cached_quotes(store, {"Quotes": [{"CompanyID": 9, "QuoteID": 101}]})

        assert result.value is True
        assert not result.degraded
        assert _stored_user(store)["Companies"][0]["Quotes"] == [{"CompanyID": 9, "QuoteID": 101}]

    def test_ids_compared_as_strings(self):
        """Test company ids match across number and string forms"""
        store = MemorySessionStore({"user": encode_stored_value({
            "Companies": [{"CompanyID": "9"}, {"CompanyID": 10, "Quotes": ["old"]}]
        })})

        reconcile_cached_quotes(store, {"Quotes": [{"CompanyID": 9, "QuoteID": 1}]})

        companies = _stored_user(store)["Companies"]
        assert companies[0]["Quotes"] == [{"CompanyID": 9, "QuoteID": 1}]
        assert companies[1]["Quotes"] == ["old"]

    def test_falls_back_to_resolved_company(self):
        """Test the resolved company id is used when quotes carry none"""
        store = MemorySessionStore({"user": encode_stored_value({"Companies": [{"CompanyID": 5}, {"CompanyID": 9}]})})

        reconcile_cached_quotes(store, {"Quotes": [{"QuoteID": 3}]}, resolved_company_id=9)

        companies = _stored_user(store)["Companies"]
        assert "Quotes" not in companies[0]
        assert companies[1]["Quotes"] == [{"QuoteID": 3}]

    def test_returned_company_wins_over_resolved(self):
        """Test the first returned quote's company is preferred"""
        store = MemorySessionStore({"user": encode_stored_value({"Companies": [{"CompanyID": 5}, {"CompanyID": 9}]})})

        reconcile_cached_quotes(store, {"Quotes": [{"CompanyID": 5}]}, resolved_company_id=9)

        assert _stored_user(store)["Companies"][0]["Quotes"] == [{"CompanyID": 5}]

    def test_partner_user_is_written_back_under_user(self):
        """Test the reconciled record is always stored under the user slot"""
        store = MemorySessionStore({"partnerUser": encode_stored_value({"Companies": [{"CompanyID": 9}]})})

        reconcile_cached_quotes(store, {"Quotes": [{"CompanyID": 9}]})

        assert _stored_user(store)["Companies"][0]["Quotes"] == [{"CompanyID": 9}]

    @pytest.mark.parametrize("response", [None, {}, {"Quotes": []}, {"Quotes": "x"}, "ok", [1]])
    def test_no_quotes_no_write(self, response):
        """Test nothing is written without a non-empty quote list"""
        store = MemorySessionStore({"user": encode_stored_value({"Companies": [{"CompanyID": 9}]})})
        before = store.get("user")

        result = reconcile_cached_quotes(store, response, resolved_company_id=9)

        assert result.value is False
        assert store.get("user") == before

    def test_no_cached_user(self, memory_store):
        """Test reconciliation is skipped without a cached user"""
        result = reconcile_cached_quotes(memory_store, {"Quotes": [{"CompanyID": 9}]})

        assert result.value is False
        assert not result.degraded
        assert list(memory_store.keys()) == []

    @pytest.mark.parametrize("user", [{"CustomerID": 1}, {"Companies": "none"}])
    def test_user_without_company_list(self, user):
        """Test users without a company list are left alone"""
        store = MemorySessionStore({"user": encode_stored_value(user)})

        assert reconcile_cached_quotes(store, {"Quotes": [{"CompanyID": 9}]}).value is False
        assert _stored_user(store) == user

    def test_no_target_company(self):
        """Test nothing is written without any company id"""
        store = MemorySessionStore({"user": encode_stored_value({"Companies": [{"CompanyID": 9}]})})

        assert reconcile_cached_quotes(store, {"Quotes": [{"QuoteID": 1}]}).value is False

    def test_unmatched_company_still_persists(self):
        """Test the user is rewritten even if no company matched"""
        store = MemorySessionStore({"user": {"Companies": [{"CompanyID": 4}]}})

        result = reconcile_cached_quotes(store, {"Quotes": [{"CompanyID": 9}]})

        assert result.value is True
        assert _stored_user(store) == {"Companies": [{"CompanyID": 4}]}

    def test_corrupt_user_is_reported(self):
        """Test an unreadable cached user becomes a reconciliation error"""
        store = MemorySessionStore({"user": "{corrupt"})

        result = reconcile_cached_quotes(store, {"Quotes": [{"CompanyID": 9}]})

        assert result.value is False
        assert isinstance(result.degradations[0], ReconciliationError)
        assert result.error_codes() == [ErrorCodes.RECONCILE_NO_USER]
        assert store.get("user") == "{corrupt"

    def test_write_failure_is_reported(self):
        """Test storage write failures are caught"""
        store = FailingSessionStore(
            {"user": encode_stored_value({"Companies": [{"CompanyID": 9}]})},
            fail_writes=["user"]
        )

        result = reconcile_cached_quotes(store, {"Quotes": [{"CompanyID": 9}]})

        assert result.value is False
        assert result.error_codes() == [ErrorCodes.RECONCILE_WRITE_FAILED]
        assert result.degradations[0].__cause__ is not None


@pytest.mark.unit
class TestQuoteSubmitter:
    """Test cases for QuoteSubmitter"""

    @pytest.mark.asyncio
    async def test_returns_raw_response(self, user_store, sample_plan):
        """Test the raw server body is returned unchanged"""
        response = {"QuoteID": 1, "QuoteCode": "Q-1"}
        endpoint = MockQuoteEndpoint(response)
        submitter = QuoteSubmitter(user_store, endpoint)

        assert await submitter.upsert_quote(sample_plan) is response

        submission = submitter.last_submission
        assert submission.history == [
            SubmissionState.BUILDING, SubmissionState.SUBMITTING, SubmissionState.SUCCEEDED
        ]
        assert submission.succeeded
        assert submission.reconciliation is None

    @pytest.mark.asyncio
    async def test_submits_built_payload(self, user_store, sample_plan):
        """Test the endpoint receives the wire payload"""
        endpoint = MockQuoteEndpoint({})

        await upsert_quote(sample_plan, user_store, endpoint)

        payload = endpoint.payloads[0]
        assert payload["SelectedCompany"] == {"CompanyID": 5, "CompanyName": "Acme"}
        assert payload["QuoteID"] is None
        assert isinstance(payload["ServiceDetails"][0]["ProfessionalFee"], float)

    @pytest.mark.asyncio
    async def test_reconciles_after_success(self, user_store, sample_plan):
        """Test returned quotes land on the resolved company"""
        quotes = [{"QuoteID": 101, "CompanyID": 5}]
        submitter = QuoteSubmitter(user_store, MockQuoteEndpoint({"Quotes": quotes}))

        await submitter.upsert_quote(sample_plan)

        submission = submitter.last_submission
        assert submission.history == [
            SubmissionState.BUILDING, SubmissionState.SUBMITTING, SubmissionState.SUCCEEDED,
            SubmissionState.RECONCILING, SubmissionState.SUCCEEDED
        ]
        assert submission.reconciliation.value is True
        assert get_cached_quotes(user_store, 5) == quotes
        assert get_cached_quotes(user_store, 9) == []

    @pytest.mark.asyncio
    async def test_reconciliation_uses_resolved_company(self, user_store, sample_plan):
        """Test quotes without a company id go to the resolved company"""
        sample_plan["SelectedCompany"] = {"CompanyID": 9, "CompanyName": "Beta"}

        await upsert_quote(sample_plan, user_store, MockQuoteEndpoint({"Quotes": [{"QuoteID": 7}]}))

        assert get_cached_quotes(user_store, "9") == [{"QuoteID": 7}]

    @pytest.mark.asyncio
    async def test_submission_error_is_reraised_unchanged(self, user_store, sample_plan):
        """Test endpoint errors propagate as they are"""
        error = SubmissionError("Invalid company", ErrorCodes.SUBMISSION_HTTP_ERROR, status=422)
        endpoint = MockQuoteEndpoint()
        endpoint.configure_failure(error)
        submitter = QuoteSubmitter(user_store, endpoint)

        with pytest.raises(SubmissionError) as exc_info:
            await submitter.upsert_quote(sample_plan)

        assert exc_info.value is error
        submission = submitter.last_submission
        assert submission.state == SubmissionState.FAILED
        assert submission.error is error
        assert not submission.succeeded

    @pytest.mark.asyncio
    async def test_failure_leaves_cache_untouched(self, user_store, sample_plan):
        """Test a failed submission does not write the session"""
        before = user_store.get("user")
        endpoint = MockQuoteEndpoint()
        endpoint.configure_failure(ConnectionError("reset"))

        with pytest.raises(ConnectionError):
            await upsert_quote(sample_plan, user_store, endpoint)

        assert user_store.get("user") == before

    @pytest.mark.asyncio
    async def test_reconciliation_failure_does_not_fail_submission(self, sample_user, sample_plan):
        """Test a failed cache write never surfaces to the caller"""
        store = FailingSessionStore({"user": encode_stored_value(sample_user)}, fail_writes=["user"])
        response = {"Quotes": [{"CompanyID": 5}]}
        submitter = QuoteSubmitter(store, MockQuoteEndpoint(response))

        assert await submitter.upsert_quote(sample_plan) is response

        submission = submitter.last_submission
        assert submission.state == SubmissionState.SUCCEEDED
        assert SubmissionState.FAILED not in submission.history
        assert submission.reconciliation.error_codes() == [ErrorCodes.RECONCILE_WRITE_FAILED]

    @pytest.mark.asyncio
    async def test_history_is_bounded(self, memory_store):
        """Test only the most recent submissions are kept"""
        submitter = QuoteSubmitter(memory_store, MockQuoteEndpoint({}), history_size=2)

        for _ in range(3):
            await submitter.upsert_quote({})

        assert len(submitter.submissions) == 2

    @pytest.mark.asyncio
    async def test_double_submit_is_not_deduplicated(self, user_store, sample_plan):
        """Test every call reaches the endpoint"""
        endpoint = MockQuoteEndpoint({})

        await upsert_quote(sample_plan, user_store, endpoint)
        await upsert_quote(sample_plan, user_store, endpoint)

        assert endpoint.upsert_quote.await_count == 2
        assert endpoint.payloads[0] == endpoint.payloads[1]

    def test_submission_record(self):
        """Test the submission state machine record"""
        submission = QuoteSubmission()
        assert submission.state == SubmissionState.BUILDING
        assert QuoteSubmitter(MemorySessionStore(), MockQuoteEndpoint()).last_submission is None

        submission.transition(SubmissionState.SUBMITTING)
        submission.transition(SubmissionState.FAILED)
        assert submission.history[-1] == SubmissionState.FAILED


@pytest.mark.unit
class TestGetCachedQuotes:
    """Test cases for get_cached_quotes"""

    def test_missing_everything(self, memory_store):
        """Test no user means no quotes"""
        assert get_cached_quotes(memory_store, 5) == []

    def test_returns_copy(self):
        """Test callers get their own list"""
        store = MemorySessionStore({"user": {"Companies": [{"CompanyID": 5, "Quotes": [1, 2]}]}})

        quotes = get_cached_quotes(store, "5")
        quotes.append(3)

        assert get_cached_quotes(store, 5) == [1, 2]

    def test_non_list_quotes(self):
        """Test malformed quote lists read as empty"""
        store = MemorySessionStore({"user": {"Companies": [{"CompanyID": 5, "Quotes": "x"}]}})

        assert get_cached_quotes(store, 5) == []
