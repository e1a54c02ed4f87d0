"""
Main entry point for the portal quote builder.
Provides command-line interface and system initialization.
"""

import asyncio
import argparse
import json
import sys
from typing import Any, Optional

from utils import main_logger, config_manager, initialize_logging, create_error_response
from utils.exceptions import PortalError
from session_store import BaseSessionStore, create_session_store
from portal_client import QuoteApi
from quote_builder import (
    QuoteSubmitter,
    build_quote_draft,
    set_selected_company,
    get_company_id_from_storage,
    get_cached_quotes,
    USER_STORAGE_KEYS,
    SELECTED_COMPANY_KEY
)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _load_plan(plan_path: str) -> Any:
    """读取计划选择 JSON 文件"""
    try:
        with open(plan_path, 'r', encoding='utf-8') as f:
            plan = json.load(f)
    except (OSError, ValueError, RecursionError) as e:
        print(f"错误: 无法读取计划文件 {plan_path}: {e}")
        sys.exit(1)

    if not isinstance(plan, dict):
        print(f"错误: 无法读取计划文件 {plan_path}: 内容必须是 JSON 对象")
        sys.exit(1)
    return plan


class QuotePortal:
    """报价门户主类"""

    def __init__(self, store_path: Optional[str] = None):
        self.config = config_manager
        self.store: BaseSessionStore = create_session_store(file_path=store_path)
        self.quote_api = QuoteApi(self.store)

    async def close(self):
        await self.quote_api.close()

    async def submit_quote(self, plan_path: str, dry_run: bool = False):
        """构建并提交报价"""
        plan = _load_plan(plan_path)

        if dry_run:
            draft = build_quote_draft(plan, self.store)
            main_logger.info(f"[Main] Dry run, {len(draft.degradations)} fallbacks applied")
            _print_json(draft.to_wire())
            return

        submitter = QuoteSubmitter(self.store, self.quote_api)
        response = await submitter.upsert_quote(plan)

        submission = submitter.last_submission
        if submission.reconciliation is not None and submission.reconciliation.degraded:
            main_logger.warning("[Main] Quote submitted but the local session was not updated")

        quote_code = response.get("QuoteCode") if isinstance(response, dict) else None
        if quote_code:
            print(f"报价已创建: {quote_code}")
        _print_json(response)

    async def request_quote(self, deal_id: str):
        """为商机申请报价"""
        response = await self.quote_api.request_quote(deal_id)
        _print_json(response)

    def select_company(self, company_id: str, name: Optional[str] = None):
        """切换当前公司"""
        company = {"CompanyID": company_id, "CompanyName": name or ""}
        if not set_selected_company(self.store, company):
            print("错误: 公司ID无效")
            sys.exit(1)
        print(f"当前公司: {company_id}")

    def show_session(self, company_id: Optional[str] = None):
        """显示会话状态"""
        user, source_key, _ = self.store.read_first_mapping(USER_STORAGE_KEYS)
        selected, _ = self.store.read_mapping(SELECTED_COMPANY_KEY)
        current_company_id = company_id or get_company_id_from_storage(self.store)

        _print_json({
            "store": self.store.get_store_info(),
            "user_key": source_key,
            "customer_id": user.get("CustomerID") if user else None,
            "companies": [
                company.get("CompanyID") for company in (user or {}).get("Companies") or []
                if isinstance(company, dict)
            ],
            "selected_company": selected,
            "current_company_id": current_company_id,
            "cached_quotes": get_cached_quotes(self.store, current_company_id) if current_company_id else [],
        })


def create_parser():
    """创建命令行参数解析器"""
    parser = argparse.ArgumentParser(
        description='业务服务门户 - 报价构建与提交',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
示例:
  python main.py quote --plan plan.json                  # 构建并提交报价
  python main.py quote --plan plan.json --dry-run        # 只打印报价载荷
  python main.py select-company --company-id 9 --name "Beta Co"
  python main.py request-quote --deal-id 17
  python main.py show-session
        """
    )
    parser.add_argument('--store', type=str, help='会话文件路径 (默认使用配置中的路径)')

    subparsers = parser.add_subparsers(dest='command', help='可用命令')

    quote_parser = subparsers.add_parser('quote', help='构建并提交报价')
    quote_parser.add_argument('--plan', required=True, help='计划选择 JSON 文件')
    quote_parser.add_argument('--dry-run', action='store_true', help='只构建并打印载荷，不提交')

    select_parser = subparsers.add_parser('select-company', help='切换当前公司')
    select_parser.add_argument('--company-id', required=True, help='公司ID')
    select_parser.add_argument('--name', type=str, help='公司名称')

    request_parser = subparsers.add_parser('request-quote', help='为商机申请报价')
    request_parser.add_argument('--deal-id', required=True, help='商机ID')

    session_parser = subparsers.add_parser('show-session', help='显示会话状态')
    session_parser.add_argument('--company-id', type=str, help='查看指定公司的缓存报价')

    return parser


async def main(argv=None):
    """主函数"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    initialize_logging()
    portal = None

    try:
        portal = QuotePortal(store_path=args.store)

        if args.command == 'quote':
            await portal.submit_quote(args.plan, dry_run=args.dry_run)

        elif args.command == 'select-company':
            portal.select_company(args.company_id, args.name)

        elif args.command == 'request-quote':
            await portal.request_quote(args.deal_id)

        elif args.command == 'show-session':
            portal.show_session(args.company_id)

        else:
            parser.print_help()

    except KeyboardInterrupt:
        main_logger.info("[Main] Received keyboard interrupt")
    except PortalError as e:
        main_logger.error(f"[Main] {e}")
        _print_json(create_error_response(e))
        sys.exit(1)
    finally:
        if portal is not None:
            await portal.close()


def run():
    """命令行入口"""
    asyncio.run(main())


if __name__ == "__main__":
    run()
