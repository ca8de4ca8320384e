"""Static constants shared across the Plura API.

Values here are not environment driven. Anything that differs between
deployments belongs in AppSettings instead.
"""

ENV_DEVELOPMENT = "development"
ENV_PRODUCTION = "production"
LOCALHOST = "localhost"

DEV_SECRET_KEY_PLACEHOLDER = "dev-secret-key-change-in-production"
DEV_ADMIN_JWT_SECRET_PLACEHOLDER = "dev-admin-jwt-secret-change-in-production"
DEV_ADMIN_PASSWORD_PLACEHOLDER = "admin123"

DEFAULT_SESSION_TTL_SECONDS = 1800
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 60
DEFAULT_RATE_LIMIT_MAX_REQUESTS = 100

# Admin cookie session
ADMIN_TOKEN_COOKIE = "admin-token"
ADMIN_TOKEN_ALGORITHM = "HS256"
ADMIN_TOKEN_TTL_HOURS = 24
ADMIN_ROLE = "admin"

# Request routing
ADMIN_PATH_PREFIXES = ("/admin", "/admin-auth", "/api/admin")
IGNORED_ROUTES = ("/api/uploadthing", "/api/stripe/webhook")
AUTH_REDIRECT_PATHS = ("/sign-in", "/sign-up")
AGENCY_SIGN_IN_PATH = "/agency/sign-in"
SITE_PATH = "/site"
PASS_THROUGH_PREFIXES = ("/agency", "/subaccount")
PUBLIC_ROUTES = (
    "/",
    "/site",
    "/site/(.*)",
    "/api/uploadthing",
    "/api/stripe/webhook",
    "/api/marketplace/(.*)",
    "/api/funnel/preview/(.*)",
    "/api/ai/(.*)",
    "/api/deployments",
    "/api/deployments/(.*)",
    "/deployed/(.*)",
    "/pricing",
    "/individual",
    "/individual/:path*/(auth)/(.*)",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
    "/api/auth/login",
    "/api/forms/(.*)/submit",
)

# Subscriptions and billing
FREE_PLAN_KEYS = ("", "free")
PREMIUM_PRICE_IDS = (
    "price_1OzWu5SCZtpG0Bi9Vn0PF4Q5",
    "price_1OzWu4SCZtpG0Bi9uaOLW13b",
)
PLAN_BY_PRICE_ID = {
    "price_1OzWu5SCZtpG0Bi9Vn0PF4Q5": "BASIC",
    "price_1OzWu4SCZtpG0Bi9uaOLW13b": "UNLIMITED",
}
PREMIUM_PLANS = ("BASIC", "UNLIMITED")
PREMIUM_ADDON_PRICE_IDS = (
    "prod_PpBPcGW8vY2aNp",
    "price_1PzBPcGW8vY2aNpABC123DEF",
)
PREMIUM_ADDON_KEYWORDS = ("priority", "premium")
SUBSCRIPTION_STATUS_ACTIVE = "active"
CHECKOUT_TYPE_SUBSCRIPTION = "subscription_upgrade"
CHECKOUT_TYPE_THEME = "theme_purchase"
DEFAULT_CHECKOUT_PLAN_ID = "premium"

# Marketplace
PREMIUM_COMMISSION_RATE = 0.05
STANDARD_COMMISSION_RATE = 0.30
PURCHASE_STATUS_ACTIVE = "ACTIVE"
PAYOUT_STATUS_PENDING = "PENDING"
PAYOUT_STATUS_NOT_CREATED = "NOT_CREATED"
MINIMUM_PAYOUT_AMOUNT = 10.0
MARKETPLACE_SEARCH_LIMIT = 50
MARKETPLACE_PRODUCT_TYPES = ("theme", "plugin")
MARKETPLACE_SEARCH_SORTS = ("downloads", "price_low", "price_high", "rating", "newest")

# Automation forms
FORM_STATUS_DRAFT = "DRAFT"
FORM_SUBMISSION_SOURCE = "web"
WEBHOOK_PAYLOAD_SOURCE = "automation-form"
EXECUTION_STATUS_SUCCESS = "success"
EXECUTION_STATUS_FAILED = "failed"
WEBHOOK_TIMEOUT_SECONDS = 10.0
UNKNOWN_CLIENT_VALUE = "unknown"

AUTOMATION_ACTION_START = "start"
AUTOMATION_ACTION_PAUSE = "pause"

# Database connections
SUPPORTED_DATABASE_PROVIDERS = ("postgresql",)
DATABASE_TEST_TIMEOUT_SECONDS = 5.0

# Listing defaults
DEFAULT_FORMS_PAGE_SIZE = 10
DEFAULT_SUBMISSIONS_PAGE_SIZE = 50
DEFAULT_AUDIT_LOG_LIMIT = 100
TIME_RANGE_DAYS = {"7d": 7, "30d": 30, "90d": 90}

# Support tickets
DEFAULT_TICKET_PRIORITY = "medium"
DEFAULT_TICKET_CATEGORY = "general"
DEFAULT_TICKET_STATUS = "open"

# Uploads
UPLOAD_MAX_FILE_SIZE_BYTES = 4 * 1024 * 1024
UPLOAD_MAX_FILE_COUNT = 1
UPLOAD_ROUTES = ("subaccountLogo", "avatar", "agencyLogo", "media")
