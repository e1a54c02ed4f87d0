"""
Identity resolution: who is acting, which agent services them, which franchisee
they belong to.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence

from utils import quote_logger
from utils.exceptions import ResolutionDegradation, ErrorCodes
from session_store import BaseSessionStore

from .constants import USER_STORAGE_KEYS
from .result import StageResult


@dataclass(frozen=True)
class Identity:
    """会话身份"""
    user: Optional[Dict[str, Any]] = None
    agent_id: Any = None
    agent_name: Any = ""
    franchisee_id: Any = None
    email: Any = ""
    source_key: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            "user": self.user,
            "agentId": self.agent_id,
            "agentName": self.agent_name,
            "franchiseeId": self.franchisee_id,
            "email": self.email,
        }


def first_mapping(items: Any) -> Optional[Mapping[str, Any]]:
    """取列表的第一个元素（必须是字典），否则返回 None"""
    if isinstance(items, Sequence) and not isinstance(items, (str, bytes)) and items:
        first = items[0]
        if isinstance(first, Mapping):
            return first
    return None


def identity_from_user(user: Optional[Mapping[str, Any]], source_key: Optional[str] = None) -> Identity:
    """从已解码的用户记录中提取身份，任何层级缺失都得到空值"""
    if not user:
        return Identity()

    first_company = first_mapping(user.get("Companies"))
    first_agent = first_mapping(first_company.get("Agents")) if first_company else None

    return Identity(
        user=dict(user),
        agent_id=(first_agent.get("EmployeeID") if first_agent else None) or None,
        agent_name=(first_agent.get("EmployeeName") if first_agent else None) or "",
        franchisee_id=user.get("FranchiseeId") or user.get("FranchiseeID") or None,
        email=user.get("Email") or "",
        source_key=source_key,
    )


def resolve_identity(store: BaseSessionStore,
                     keys: Sequence[str] = USER_STORAGE_KEYS) -> StageResult[Identity]:
    """解析会话身份，从不抛出"""
    user, source_key, read_error = store.read_first_mapping(keys)
    degradations = [read_error] if read_error is not None else []

    if user is None:
        degradations.append(ResolutionDegradation(
            "No session user found, guest identity will be used",
            ErrorCodes.RESOLUTION_NO_USER,
            {"keys": list(keys)}
        ))
        quote_logger.info(f"[Identity] No session user under {list(keys)}")
        return StageResult(Identity(), degradations)

    identity = identity_from_user(user, source_key)
    if identity.agent_id is None:
        degradations.append(ResolutionDegradation(
            "Session user has no agent on its first company",
            ErrorCodes.RESOLUTION_NO_AGENT,
            {"source_key": source_key}
        ))

    quote_logger.debug(
        f"[Identity] Resolved user from '{source_key}' "
        f"(agent={identity.agent_id}, franchisee={identity.franchisee_id})"
    )
    return StageResult(identity, degradations)
