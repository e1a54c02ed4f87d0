"""
报价构建模块包
从会话状态和计划选择推导标准报价载荷，提交并同步本地缓存
"""

from .constants import USER_STORAGE_KEYS, USER_WRITE_KEY, SELECTED_COMPANY_KEY, COMPANY_ID_KEY
from .result import StageResult
from .models import (
    QuoteCompany,
    QuoteCustomer,
    QuoteAgent,
    MailQuoteCustomer,
    CanonicalLineItem,
    QuotePayload
)
from .identity import Identity, resolve_identity, identity_from_user
from .company import resolve_company, set_selected_company, get_company_id_from_storage
from .line_items import parse_decimal, normalize_service, normalize_services
from .payload import QuoteDraft, build_quote_draft, build_quote_payload
from .submission import (
    SubmissionState,
    QuoteSubmission,
    QuoteSubmitter,
    reconcile_cached_quotes,
    get_cached_quotes,
    upsert_quote
)
