"""Prometheus metrics for the review scraper."""

from prometheus_client import Counter, Histogram, Info

# Application info
app_info = Info("review_scraper", "Review scraper application info")
app_info.info({"version": "0.1.0", "name": "review-scraper"})

# Navigation metrics
navigation_attempts_total = Counter(
    "navigation_attempts_total",
    "Total number of browser navigation attempts",
    ["kind", "outcome"],
)

navigation_retries_total = Counter(
    "navigation_retries_total",
    "Total number of navigation retries after a rate-limit signal",
    ["kind"],
)

navigation_backoff_seconds = Histogram(
    "navigation_backoff_seconds",
    "Backoff delay applied before a navigation retry",
    ["kind"],
    buckets=[1.0, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0],
)

# Extraction metrics
pages_scraped_total = Counter(
    "pages_scraped_total",
    "Total number of listing pages extracted",
)

records_extracted_total = Counter(
    "records_extracted_total",
    "Total number of review records extracted",
)

# Run metrics
scrape_runs_total = Counter(
    "scrape_runs_total",
    "Total number of scrape runs by terminal state",
    ["state"],
)

scrape_duration_seconds = Histogram(
    "scrape_duration_seconds",
    "Wall time of a full scrape run",
    buckets=[10.0, 30.0, 60.0, 120.0, 300.0, 600.0, 1200.0],
)

# Browser session metrics
browser_sessions_total = Counter(
    "browser_sessions_total",
    "Browser session lifecycle events",
    ["event"],
)
