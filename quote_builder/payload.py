"""
Quote payload assembly.

build_quote_draft only reads from the session store, so the payload is a pure
function of (plan, session state): identical inputs give identical payloads.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Tuple

from utils import quote_logger, quote_metrics
from utils.exceptions import PortalError
from session_store import BaseSessionStore

from .company import resolve_company
from .constants import (
    GUEST_CUSTOMER_ID, GUEST_CUSTOMER_NAME, GUEST_EMAIL,
    DEFAULT_AGENT_ID, DEFAULT_AGENT_NAME, DEFAULT_FRANCHISEE_ID,
    SOURCE_OF_SALE_ASSOCIATE, SOURCE_OF_SALE_WEBSITE, QUOTE_REMARKS, QUOTE_STATUS_DRAFT
)
from .identity import Identity, resolve_identity
from .line_items import normalize_services
from .models import QuoteAgent, QuoteCompany, QuoteCustomer, MailQuoteCustomer, QuotePayload


@dataclass
class QuoteDraft:
    """报价草稿: 载荷及各阶段的中间结果"""
    payload: QuotePayload
    identity: Identity
    company: QuoteCompany
    degradations: List[PortalError] = field(default_factory=list)

    def to_wire(self):
        return self.payload.to_wire()


def _join_name(*parts: Any) -> str:
    return " ".join(str(part) for part in parts if part).strip()


def build_customers(identity: Identity) -> Tuple[QuoteCustomer, MailQuoteCustomer]:
    """构建报价客户和邮件收件人，没有会话客户时使用访客身份"""
    user = identity.user or {}
    customer_id = user.get("CustomerID")

    if not customer_id:
        return (
            QuoteCustomer(CustomerID=GUEST_CUSTOMER_ID, CustomerName=GUEST_CUSTOMER_NAME),
            MailQuoteCustomer(CustomerID=GUEST_CUSTOMER_ID, CustomerName=GUEST_CUSTOMER_NAME, Email=GUEST_EMAIL),
        )

    first_name = user.get("FirstName")
    last_name = user.get("LastName")
    customer = QuoteCustomer(
        CustomerID=customer_id,
        CustomerName=_join_name(first_name, last_name) or GUEST_CUSTOMER_NAME
    )
    mail_customer = MailQuoteCustomer(
        CustomerID=customer_id,
        CustomerName=f"{first_name or ''} {last_name or ''}".strip(),
        Email=str(user.get("Email") or identity.email or GUEST_EMAIL)
    )
    return customer, mail_customer


def build_agent(identity: Identity) -> QuoteAgent:
    agent_name = identity.agent_name or DEFAULT_AGENT_NAME
    return QuoteAgent(
        EmployeeID=identity.agent_id or DEFAULT_AGENT_ID,
        EmployeeName=agent_name if isinstance(agent_name, str) else str(agent_name)
    )


def build_quote_draft(plan: Mapping[str, Any], store: BaseSessionStore) -> QuoteDraft:
    """从计划选择和会话状态构建报价草稿"""
    if not isinstance(plan, Mapping):
        raise TypeError(f"plan must be a mapping, got {type(plan).__name__}")

    identity_result = resolve_identity(store)
    identity = identity_result.value
    company_result = resolve_company(plan, identity.user, store)
    items_result = normalize_services(plan.get("services"))

    customer, mail_customer = build_customers(identity)
    is_associate = plan.get("isAssociate")

    payload = QuotePayload(
        ParentQuoteID=None,
        QuoteID=None,
        SelectedCompany=company_result.value,
        SelectedCustomer=customer,
        QuoteCRE=build_agent(identity),
        FranchiseeID=identity.franchisee_id or DEFAULT_FRANCHISEE_ID,
        SourceOfSale=SOURCE_OF_SALE_ASSOCIATE if is_associate else SOURCE_OF_SALE_WEBSITE,
        Remarks=QUOTE_REMARKS,
        IsIndividual=0,
        PackageID=plan.get("id") or plan.get("packageId"),
        PackageName=plan.get("name") or plan.get("PackageName") or plan.get("packageName"),
        IsMonthly=0,
        QuoteStatus=QUOTE_STATUS_DRAFT,
        ServiceDetails=items_result.value,
        IsDirect=1,
        MailQuoteCustomers=[mail_customer],
        isAssociate=is_associate,
        AssociateID=plan.get("AssociateID"),
    )

    degradations = identity_result.degradations + company_result.degradations + items_result.degradations
    for error in degradations:
        quote_metrics.increment(f"degraded.{error.error_code}")

    quote_logger.info(
        f"[Payload] Built quote for company {payload.SelectedCompany.CompanyID} "
        f"with {len(payload.ServiceDetails)} line items ({len(degradations)} fallbacks applied)"
    )
    return QuoteDraft(
        payload=payload,
        identity=identity,
        company=company_result.value,
        degradations=degradations,
    )


def build_quote_payload(plan: Mapping[str, Any], store: BaseSessionStore) -> QuotePayload:
    """只返回报价载荷"""
    return build_quote_draft(plan, store).payload
