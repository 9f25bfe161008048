from prometheus_client import Counter

AUTH_CALLBACK_TOTAL = Counter(
    "auth_callback_total",
    "Auth callback outcomes",
    ["flow", "result", "reason"],
)

AUTH_REDIRECT_SANITIZED_TOTAL = Counter(
    "auth_redirect_sanitized_total",
    "Redirect targets replaced by the default path",
    ["reason"],
)

AUTH_DOMAIN_REDIRECT_TOTAL = Counter(
    "auth_domain_redirect_total",
    "Callbacks bounced from a legacy host to the canonical origin",
)

OAUTH_STATE_TOTAL = Counter(
    "oauth_state_total",
    "Signed OAuth state decode results",
    ["provider", "result"],
)

POST_AUTH_TASK_TOTAL = Counter(
    "post_auth_task_total",
    "Best-effort post-auth task results",
    ["task", "result"],
)

REFERRAL_APPLY_TOTAL = Counter(
    "referral_apply_total",
    "Referral code application attempts",
    ["source", "result"],
)

GITHUB_OAUTH_CALLBACK_TOTAL = Counter(
    "github_oauth_callback_total",
    "GitHub account connection callback results",
    ["result"],
)

USER_CACHE_TOTAL = Counter(
    "user_cache_total",
    "Current-user cache lookups",
    ["result"],
)
