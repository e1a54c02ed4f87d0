"""
Quote submission and local cache reconciliation.

upsert_quote builds the payload, posts it and, when the backend answers with a
quote list, copies that list onto the matching company of the cached session
user. Only the network call decides success: a failed reconciliation is logged
and recorded, never raised.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, List, Mapping, Optional, Protocol

from utils import quote_logger, quote_metrics, log_execution
from utils.exceptions import ReconciliationError, ErrorCodes
from session_store import BaseSessionStore, encode_stored_value

from .constants import USER_STORAGE_KEYS, USER_WRITE_KEY
from .payload import QuoteDraft, build_quote_draft
from .result import StageResult


class QuoteEndpoint(Protocol):
    """报价创建接口"""

    async def upsert_quote(self, payload: Mapping[str, Any]) -> Any:
        ...


class SubmissionState(str, Enum):
    """单次提交的状态"""
    BUILDING = "building"
    SUBMITTING = "submitting"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    RECONCILING = "reconciling"


@dataclass
class QuoteSubmission:
    """单次提交记录"""
    state: SubmissionState = SubmissionState.BUILDING
    history: List[SubmissionState] = field(default_factory=lambda: [SubmissionState.BUILDING])
    draft: Optional[QuoteDraft] = None
    response: Any = None
    error: Optional[BaseException] = None
    reconciliation: Optional[StageResult[bool]] = None

    def transition(self, state: SubmissionState) -> None:
        self.state = state
        self.history.append(state)

    @property
    def succeeded(self) -> bool:
        return SubmissionState.SUCCEEDED in self.history


def _same_company(company: Any, company_id: Any) -> bool:
    return isinstance(company, Mapping) and str(company.get("CompanyID")) == str(company_id)


def reconcile_cached_quotes(store: BaseSessionStore, response: Any,
                            resolved_company_id: Any = None) -> StageResult[bool]:
    """把后端返回的报价列表写回缓存用户的对应公司，值表示是否写入了存储"""
    quotes = response.get("Quotes") if isinstance(response, Mapping) else None
    if not isinstance(quotes, list) or not quotes:
        return StageResult(False)

    try:
        stored_user, source_key, read_error = store.read_first_mapping(USER_STORAGE_KEYS)
        if stored_user is None:
            if read_error is not None:
                raise ReconciliationError(
                    f"Cached user could not be read: {read_error.message}",
                    ErrorCodes.RECONCILE_NO_USER
                ) from read_error
            quote_logger.info("[Reconcile] No cached user, skipping quote reconciliation")
            return StageResult(False)

        first_quote = quotes[0] if isinstance(quotes[0], Mapping) else {}
        target_company_id = first_quote.get("CompanyID") or resolved_company_id
        companies = stored_user.get("Companies")
        if not isinstance(companies, list) or not target_company_id:
            quote_logger.info("[Reconcile] Cached user has no companies or no target company, skipping")
            return StageResult(False)

        stored_user["Companies"] = [
            {**company, "Quotes": quotes} if _same_company(company, target_company_id) else company
            for company in companies
        ]
        store.set(USER_WRITE_KEY, encode_stored_value(stored_user))

        quote_logger.info(
            f"[Reconcile] Cached {len(quotes)} quotes for company {target_company_id} "
            f"(read from '{source_key}')"
        )
        return StageResult(True)

    except Exception as e:
        error = e if isinstance(e, ReconciliationError) else ReconciliationError(
            f"Failed updating quotes in session store: {e}",
            ErrorCodes.RECONCILE_WRITE_FAILED
        )
        if error is not e:
            error.__cause__ = e
        quote_metrics.increment("reconcile_failed")
        quote_logger.error(f"[Reconcile] {error}")
        return StageResult(False, [error])


def get_cached_quotes(store: BaseSessionStore, company_id: Any) -> List[Any]:
    """读取缓存用户中某公司的报价列表"""
    stored_user, _, _ = store.read_first_mapping(USER_STORAGE_KEYS)
    companies = stored_user.get("Companies") if stored_user else None
    if not isinstance(companies, list):
        return []

    for company in companies:
        if _same_company(company, company_id):
            quotes = company.get("Quotes")
            return list(quotes) if isinstance(quotes, list) else []
    return []


class QuoteSubmitter:
    """报价提交器，绑定会话存储和报价接口"""

    def __init__(self, store: BaseSessionStore, endpoint: QuoteEndpoint, history_size: int = 50):
        self.store = store
        self.endpoint = endpoint
        self.submissions: Deque[QuoteSubmission] = deque(maxlen=history_size)

    @property
    def last_submission(self) -> Optional[QuoteSubmission]:
        return self.submissions[-1] if self.submissions else None

    @log_execution("QuoteBuilder", "upsert_quote")
    async def upsert_quote(self, plan: Mapping[str, Any]) -> Any:
        """构建并提交报价，返回后端原始响应体；提交错误原样抛出"""
        submission = QuoteSubmission()
        self.submissions.append(submission)

        submission.draft = build_quote_draft(plan, self.store)
        payload = submission.draft.to_wire()

        submission.transition(SubmissionState.SUBMITTING)
        try:
            response = await self.endpoint.upsert_quote(payload)
        except BaseException as e:
            submission.error = e
            submission.transition(SubmissionState.FAILED)
            quote_metrics.increment("submission_failed")
            raise

        submission.response = response
        submission.transition(SubmissionState.SUCCEEDED)
        quote_metrics.increment("submission_succeeded")

        if isinstance(response, Mapping) and isinstance(response.get("Quotes"), list) and response["Quotes"]:
            submission.transition(SubmissionState.RECONCILING)
            submission.reconciliation = reconcile_cached_quotes(
                self.store, response, submission.draft.company.CompanyID
            )
            # 缓存同步结果不影响提交结果
            submission.transition(SubmissionState.SUCCEEDED)

        return response


async def upsert_quote(plan: Mapping[str, Any], store: BaseSessionStore, endpoint: QuoteEndpoint) -> Any:
    """构建、提交报价并同步本地缓存"""
    return await QuoteSubmitter(store, endpoint).upsert_quote(plan)
