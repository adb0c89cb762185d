from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "forge_api_requests_total",
    "Total API requests",
    ["method", "path", "status"],
)

REQUEST_LATENCY = Histogram(
    "forge_api_request_latency_seconds",
    "API request latency",
    ["method", "path"],
)

IMPORT_COUNT = Counter(
    "forge_smart_import_total",
    "Smart Import runs by source kind and outcome",
    ["kind", "status"],
)

AI_FALLBACK_COUNT = Counter(
    "forge_ai_fallback_total",
    "AI stage runs that fell back to heuristics",
    ["stage", "reason"],
)

LLM_LATENCY = Histogram(
    "forge_llm_latency_seconds",
    "LLM call latency",
    ["stage", "provider", "model"],
)
