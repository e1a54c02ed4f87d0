"""
Line-item normalization.

Service records arrive with either flat or yearly fee fields (packages and
individual services come from different screens). Each fee is resolved on its
own: flat field, then yearly field, then the fixed default.
"""

import math
import re
from decimal import Decimal
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from utils import quote_logger
from utils.exceptions import ResolutionDegradation, ErrorCodes

from .constants import DEFAULT_PROFESSIONAL_FEE, DEFAULT_VENDOR_FEE, DEFAULT_GOVT_FEE, DEFAULT_TOTAL
from .models import CanonicalLineItem
from .result import StageResult

# 行项目字段 -> (候选源字段, 默认值)
FEE_SOURCES: Tuple[Tuple[str, Tuple[str, ...], float], ...] = (
    ("ProfessionalFee", ("ProfessionalFee", "ProfessionalFeeYearly"), DEFAULT_PROFESSIONAL_FEE),
    ("VendorFee", ("VendorFee", "VendorFeeYearly"), DEFAULT_VENDOR_FEE),
    ("GovtFee", ("GovernmentFee", "GovernmentFeeYearly"), DEFAULT_GOVT_FEE),
    ("Total", ("TotalFee", "TotalFeeYearly"), DEFAULT_TOTAL),
)

_DECIMAL_PREFIX = re.compile(r'[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def parse_decimal(value: Any) -> Optional[float]:
    """解析十进制数，只取字符串的数字前缀；无法得到有限数值时返回 None"""
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        try:
            number = float(value)
        except (ValueError, OverflowError):
            return None
    elif isinstance(value, str):
        match = _DECIMAL_PREFIX.match(value.strip())
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None

    if math.isnan(number) or math.isinf(number):
        return None
    return number


def resolve_fee(service: Mapping[str, Any], candidates: Sequence[str], default: float) -> Tuple[float, bool]:
    """按候选字段顺序解析费用，返回 (费用, 是否使用了默认值)"""
    for field_name in candidates:
        number = parse_decimal(service.get(field_name))
        if number is not None:
            return number, False
    return float(default), True


def normalize_service(service: Any) -> Tuple[CanonicalLineItem, List[str]]:
    """标准化单个服务，返回行项目及使用了默认值的字段"""
    if not isinstance(service, Mapping):
        quote_logger.warning(f"[LineItems] Service record is a {type(service).__name__}, using defaults")
        service = {}

    fees = {}
    defaulted = []
    for item_field, candidates, default in FEE_SOURCES:
        fees[item_field], used_default = resolve_fee(service, candidates, default)
        if used_default:
            defaulted.append(item_field)

    item = CanonicalLineItem(
        ServiceID=service.get("ServiceID"),
        ItemName=service.get("ServiceName"),
        **fees
    )
    return item, defaulted


def normalize_services(services: Any) -> StageResult[List[CanonicalLineItem]]:
    """一对一标准化服务列表，保持顺序"""
    if not isinstance(services, Sequence) or isinstance(services, (str, bytes)):
        services = []

    items = []
    degradations = []
    for index, service in enumerate(services):
        item, defaulted = normalize_service(service)
        items.append(item)
        if defaulted:
            degradations.append(ResolutionDegradation(
                f"Service {item.ServiceID} has no usable {', '.join(defaulted)}, defaults applied",
                ErrorCodes.RESOLUTION_NO_FEE,
                {"index": index, "service_id": item.ServiceID, "fields": defaulted}
            ))

    if degradations:
        quote_logger.info(f"[LineItems] Default fees applied to {len(degradations)} of {len(items)} services")
    return StageResult(items, degradations)
