"""
base portal client class.
Owns the aiohttp session, the JSON headers and the bearer token lookup shared by
every backend endpoint wrapper.
"""

import asyncio
import json
from typing import Any, Dict, Mapping, Optional

import aiohttp

from utils import client_logger, client_metrics, config_manager, PortalApiConfig
from utils.exceptions import SubmissionError, ErrorCodes
from session_store import BaseSessionStore


class BasePortalClient:
    """门户后端客户端基类"""

    def __init__(self, store: BaseSessionStore, api_config: Optional[PortalApiConfig] = None,
                 name: str = "PortalClient"):
        self.name = name
        self.store = store
        self.api_config = api_config or config_manager.get_portal_api_config()
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """按需创建HTTP会话"""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(
                total=self.api_config.timeout_total,
                connect=self.api_config.timeout_connect
            )
            connector = aiohttp.TCPConnector(limit=self.api_config.max_connections)
            self.session = aiohttp.ClientSession(
                timeout=timeout,
                connector=connector,
                headers={'Content-Type': 'application/json'}
            )
            client_logger.debug(f"[{self.name}] HTTP session created for {self.api_config.base_url}")
        return self.session

    async def close(self):
        """关闭HTTP会话"""
        if self.session is not None:
            await self.session.close()
            self.session = None
            client_logger.info(f"[{self.name}] HTTP session closed")

    def _build_url(self, path: str) -> str:
        return f"{self.api_config.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _auth_headers(self) -> Dict[str, str]:
        """从会话存储中取第一个非空令牌作为 Bearer 认证头"""
        for key in self.api_config.token_keys:
            token = self.store.get(key)
            if isinstance(token, str) and token.strip():
                return {'Authorization': f"Bearer {token.strip()}"}
        return {}

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> Any:
        """读取响应体，JSON 优先，否则返回原始文本"""
        text = await response.text()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            return text

    @staticmethod
    def _extract_message(body: Any) -> Optional[str]:
        """提取后端返回的可读错误信息"""
        if isinstance(body, Mapping):
            for key in ('message', 'Message', 'error'):
                value = body.get(key)
                if isinstance(value, str) and value:
                    return value
        elif isinstance(body, str) and body:
            return body
        return None

    async def post_json(self, path: str, payload: Any) -> Any:
        """POST JSON 请求，失败时抛出 SubmissionError"""
        url = self._build_url(path)
        session = await self._get_session()
        client_metrics.increment("requests")

        try:
            async with session.post(url, json=payload, headers=self._auth_headers()) as response:
                body = await self._read_body(response)
                if response.status >= 400:
                    client_metrics.increment("http_errors")
                    message = self._extract_message(body) or f"HTTP {response.status} {response.reason or ''}".strip()
                    client_logger.error(f"[{self.name}] POST {path} failed with status {response.status}: {message}")
                    raise SubmissionError(
                        message,
                        ErrorCodes.SUBMISSION_HTTP_ERROR,
                        {"url": url, "status": response.status},
                        status=response.status,
                        body=body
                    )
                client_logger.debug(f"[{self.name}] POST {path} -> {response.status}")
                return body

        except asyncio.TimeoutError as e:
            client_metrics.increment("timeouts")
            client_logger.error(f"[{self.name}] POST {path} timed out")
            raise SubmissionError(
                f"Request to {path} timed out",
                ErrorCodes.SUBMISSION_TIMEOUT,
                {"url": url}
            ) from e
        except aiohttp.ClientError as e:
            client_metrics.increment("network_errors")
            client_logger.error(f"[{self.name}] POST {path} network error: {e}")
            raise SubmissionError(
                f"Network error calling {path}: {e}",
                ErrorCodes.SUBMISSION_NETWORK_ERROR,
                {"url": url}
            ) from e

    def get_client_info(self) -> Dict[str, Any]:
        """获取客户端信息"""
        return {
            'name': self.name,
            'base_url': self.api_config.base_url,
            'session_open': self.session is not None and not self.session.closed,
            'token_keys': list(self.api_config.token_keys),
        }
