"""Prometheus metrics for the GitHub OAuth flow."""

from prometheus_client import Counter, Histogram

oauth_logins_total = Counter(
    "github_oauth_logins_total",
    "GitHub OAuth login attempts by outcome",
    ["outcome"],
)

oauth_logouts_total = Counter(
    "github_oauth_logouts_total",
    "Sessions cleared, by reason",
    ["reason"],
)

oauth_token_exchange_seconds = Histogram(
    "github_oauth_token_exchange_seconds",
    "Latency of the code-for-token exchange with GitHub",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
