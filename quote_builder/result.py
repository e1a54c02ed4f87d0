"""
Stage results.

Each resolution stage collapses its failures into a best-effort value at the
stage boundary. The discarded errors stay attached to the result so callers
and tests can see what was degraded without anything being raised.
"""

from dataclasses import dataclass, field
from typing import Generic, List, TypeVar

from utils.exceptions import PortalError

T = TypeVar('T')


@dataclass
class StageResult(Generic[T]):
    """阶段结果: 最终值 + 被丢弃的错误"""
    value: T
    degradations: List[PortalError] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.degradations)

    def error_codes(self) -> List[str]:
        return [error.error_code for error in self.degradations]
