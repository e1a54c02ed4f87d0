"""
Fixed keys and fallback values used while composing a quote.

The fee defaults and the advance/pending amounts are business placeholders
agreed with product; they are kept literal and never derived from the total.
"""

# 会话存储键（按顺序检查，第一个可用的用户记录生效）
USER_STORAGE_KEYS = ("user", "partnerUser")
USER_WRITE_KEY = "user"
SELECTED_COMPANY_KEY = "selectedCompany"
COMPANY_ID_KEY = "CompanyId"

# 访客身份
GUEST_CUSTOMER_ID = 2
GUEST_CUSTOMER_NAME = "John Doe"
GUEST_EMAIL = "john@example.com"

# 专员 / 加盟商回退值
DEFAULT_AGENT_ID = 9
DEFAULT_AGENT_NAME = ""
DEFAULT_FRANCHISEE_ID = 43

# 报价头部固定值
SOURCE_OF_SALE_ASSOCIATE = "Associate"
SOURCE_OF_SALE_WEBSITE = "Website"
QUOTE_REMARKS = "Generated from subscription page"
QUOTE_STATUS_DRAFT = "Draft"

# 费用回退值
DEFAULT_PROFESSIONAL_FEE = 1000
DEFAULT_VENDOR_FEE = 500
DEFAULT_GOVT_FEE = 200
DEFAULT_TOTAL = 1700

# 行项目固定值
CONTRACTOR_FEE = 0
GST_PERCENT = 18
DISCOUNT = 0
ROUNDING = 0
ADVANCE_AMOUNT = 500
PENDING_AMOUNT = 1200
