from prometheus_client import Counter

STRATEGY_GENERATIONS = Counter(
    "strategy_generations_total",
    "Strategy content generations by source",
    ["source"],
)
DOCUMENT_RENDERS = Counter(
    "document_renders_total",
    "Rendered documents by format",
    ["format"],
)
DOCUMENT_DELIVERIES = Counter(
    "document_deliveries_total",
    "Document delivery attempts by outcome",
    ["outcome"],
)
NOTIFICATIONS_CREATED = Counter(
    "notifications_created_total",
    "Notifications created by sweeps",
    ["type"],
)
