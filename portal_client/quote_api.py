"""
Quote endpoints of the portal backend.
"""

from typing import Any, Mapping

from utils import client_logger

from .base_client import BasePortalClient


class QuoteApi(BasePortalClient):
    """报价接口"""

    def __init__(self, store, api_config=None):
        super().__init__(store, api_config, name="QuoteApi")

    async def upsert_quote(self, payload: Mapping[str, Any]) -> Any:
        """提交报价，返回后端原始响应体"""
        company = payload.get('SelectedCompany') or {}
        client_logger.info(f"[{self.name}] Submitting quote for company {company.get('CompanyID')}")
        return await self.post_json(self.api_config.upsert_quote_path, payload)

    async def request_quote(self, deal_id: Any) -> Any:
        """为商机申请报价（合作伙伴发起）"""
        client_logger.info(f"[{self.name}] Requesting quote for deal {deal_id}")
        return await self.post_json(
            self.api_config.request_quote_path,
            {"id": deal_id, "associate_request": 1}
        )
