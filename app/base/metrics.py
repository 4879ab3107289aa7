from prometheus_client import Counter, Histogram


# === Global Metrics ===

api_exception_counter = Counter(
    "api_exception_count", "Total API exceptions by type",
    ["type"]
)

calendar_busy_failures = Counter(
    "calendar_busy_failures_total",
    "Linked calendars skipped while collecting busy blocks",
    ["stage"]  # refresh, persist, freebusy
)

availability_duration = Histogram(
    "availability_computation_seconds",
    "Time spent resolving bookable availability, including calendar calls",
    ["variant"]  # slots, days
)

affinity_score_counter = Counter(
    "affinity_scores_total", "Startup/investor affinity scores computed by tier",
    ["tier"]
)
