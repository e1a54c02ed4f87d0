"""
Company resolution and the stored company selection.

The billing company is taken from, in order: the plan, the stored
"selectedCompany" entry, the session user's first company. When all three
yield no usable CompanyID the quote carries an empty company.
"""

from typing import Any, Mapping, Optional

from utils import quote_logger
from utils.exceptions import ResolutionDegradation, ErrorCodes
from session_store import BaseSessionStore, encode_stored_value

from .constants import SELECTED_COMPANY_KEY, COMPANY_ID_KEY, USER_STORAGE_KEYS
from .identity import first_mapping
from .models import QuoteCompany
from .result import StageResult


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def company_label(company: Mapping[str, Any]) -> str:
    """公司显示名: BusinessName 优先，其次 CompanyName"""
    return _text(company.get("BusinessName") or company.get("CompanyName") or "")


def resolve_company(plan: Mapping[str, Any], user: Optional[Mapping[str, Any]],
                    store: BaseSessionStore) -> StageResult[QuoteCompany]:
    """按优先级解析报价公司，从不抛出"""
    degradations = []

    # 优先级1: 计划中携带的公司
    plan_company = plan.get("SelectedCompany")
    if isinstance(plan_company, Mapping) and plan_company.get("CompanyID"):
        quote_logger.debug(f"[Company] Using plan company {plan_company.get('CompanyID')}")
        return StageResult(QuoteCompany(
            CompanyID=plan_company["CompanyID"],
            CompanyName=_text(plan_company.get("CompanyName") or "")
        ))

    # 优先级2: 会话中保存的公司选择
    stored, read_error = store.read_mapping(SELECTED_COMPANY_KEY)
    if read_error is not None:
        degradations.append(read_error)
    if stored and stored.get("CompanyID"):
        quote_logger.debug(f"[Company] Using stored selection {stored.get('CompanyID')}")
        return StageResult(QuoteCompany(
            CompanyID=stored["CompanyID"],
            CompanyName=_text(stored.get("CompanyName") or "")
        ), degradations)

    # 优先级3: 用户的第一家公司
    first = first_mapping(user.get("Companies")) if user else None
    if first is not None:
        quote_logger.debug(f"[Company] Using first user company {first.get('CompanyID')}")
        return StageResult(QuoteCompany(
            CompanyID=first.get("CompanyID"),
            CompanyName=company_label(first)
        ), degradations)

    degradations.append(ResolutionDegradation(
        "No company could be resolved for the quote",
        ErrorCodes.RESOLUTION_NO_COMPANY
    ))
    quote_logger.warning("[Company] No company resolved, quote will carry an empty company")
    return StageResult(QuoteCompany(CompanyID=None, CompanyName=""), degradations)


def set_selected_company(store: BaseSessionStore, company: Optional[Mapping[str, Any]]) -> bool:
    """保存当前选择的公司，缺少 CompanyID 时不写入"""
    if not isinstance(company, Mapping) or not company.get("CompanyID"):
        quote_logger.warning("[Company] Invalid company object provided, selection not saved")
        return False

    company_id = company["CompanyID"]
    store.set(SELECTED_COMPANY_KEY, encode_stored_value({
        "CompanyID": company_id,
        "CompanyName": company_label(company),
    }))
    store.set(COMPANY_ID_KEY, str(company_id))
    quote_logger.info(f"[Company] Selected company switched to {company_id}")
    return True


def get_company_id_from_storage(store: BaseSessionStore) -> Any:
    """读取当前公司ID: 保存的选择优先，其次用户的第一家公司"""
    stored, _ = store.read_mapping(SELECTED_COMPANY_KEY)
    if stored and stored.get("CompanyID"):
        return stored["CompanyID"]

    user, _, _ = store.read_first_mapping(USER_STORAGE_KEYS)
    first = first_mapping(user.get("Companies")) if user else None
    if first is not None:
        return first.get("CompanyID")
    return None
