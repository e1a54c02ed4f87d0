"""
Quote wire models.
Pydantic models whose field names are the keys the quote endpoint expects.
"""

from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    CONTRACTOR_FEE, GST_PERCENT, DISCOUNT, ROUNDING, ADVANCE_AMOUNT, PENDING_AMOUNT,
    QUOTE_STATUS_DRAFT
)


class WireModel(BaseModel):
    """报价线上模型基类"""
    model_config = ConfigDict(extra="forbid")

    def to_wire(self) -> Dict[str, Any]:
        """导出为提交给后端的字典"""
        return self.model_dump()


class QuoteCompany(WireModel):
    """报价所属公司"""
    CompanyID: Any = Field(None, description="公司ID，全部回退失败时为 None")
    CompanyName: str = Field("", description="公司名称")


class QuoteCustomer(WireModel):
    """报价客户"""
    CustomerID: Any = Field(..., description="客户ID")
    CustomerName: str = Field(..., description="客户名称")


class QuoteAgent(WireModel):
    """客户关系专员"""
    EmployeeID: Any = Field(..., description="员工ID")
    EmployeeName: str = Field("", description="员工名称")


class MailQuoteCustomer(WireModel):
    """报价邮件收件客户"""
    CustomerID: Any = Field(..., description="客户ID")
    CustomerName: str = Field(..., description="客户名称")
    Email: str = Field(..., description="邮箱")


class CanonicalLineItem(WireModel):
    """标准化的报价行项目"""
    ServiceID: Any = Field(None, description="服务ID")
    ItemName: Any = Field(None, description="服务名称")
    ProfessionalFee: float = Field(..., description="专业服务费")
    VendorFee: float = Field(..., description="供应商费用")
    GovtFee: float = Field(..., description="政府规费")
    ContractorFee: int = Field(CONTRACTOR_FEE, description="承包商费用")
    GSTPercent: int = Field(GST_PERCENT, description="GST 税率（百分比）")
    Discount: int = Field(DISCOUNT, description="折扣")
    Rounding: int = Field(ROUNDING, description="舍入")
    Total: float = Field(..., description="合计")
    AdvanceAmount: int = Field(ADVANCE_AMOUNT, description="预付金额")
    PendingAmount: int = Field(PENDING_AMOUNT, description="待付金额")


class QuotePayload(WireModel):
    """提交到报价创建接口的完整报价"""
    ParentQuoteID: None = Field(None, description="父报价ID，新建时恒为 None")
    QuoteID: None = Field(None, description="报价ID，新建时恒为 None")

    SelectedCompany: QuoteCompany
    SelectedCustomer: QuoteCustomer
    QuoteCRE: QuoteAgent

    FranchiseeID: Any
    SourceOfSale: str
    Remarks: str
    IsIndividual: int = 0

    PackageID: Any = None
    PackageName: Any = None

    IsMonthly: int = 0
    QuoteStatus: str = QUOTE_STATUS_DRAFT

    ServiceDetails: List[CanonicalLineItem] = Field(default_factory=list)

    IsDirect: int = 1
    MailQuoteCustomers: List[MailQuoteCustomer]

    isAssociate: Optional[Any] = None
    AssociateID: Optional[Any] = None

    # 计划中缺失时不出现在请求体中
    OMIT_WHEN_ABSENT: ClassVar[Tuple[str, ...]] = ("PackageID", "isAssociate", "AssociateID")

    def to_wire(self) -> Dict[str, Any]:
        wire = self.model_dump()
        for key in self.OMIT_WHEN_ABSENT:
            if wire[key] is None:
                del wire[key]
        return wire
