"""
Domain Constants

Centrally manages constants shared across the benchmark harness.
"""

# Temperatures tested with each test case
DEFAULT_TEMPERATURES = [0.1, 0.3, 0.5, 0.7, 0.9]

# Local models served by the model runtime
DEFAULT_LOCAL_MODELS = [
    "ai/llama3.2:1B-Q4_0",
    "ai/llama3.2:3B-Q4_K_M",
    "ai/qwen3:0.6B-Q4_0",
    # "hf.co/bartowski/Llama-3.2-1B-Instruct-GGUF",
]

# Hosted models added in front of the local ones when OPENAI_API_KEY is set
DEFAULT_EXTERNAL_MODELS = [
    "gpt-4o-mini",
]

OPENAI_BASE_URL = "https://api.openai.com/v1"

# Judge verdict -> numeric score. Anything else maps to 0.0.
VERDICT_SCORES = {
    "yes": 1.0,
    "unsure": 0.5,
    "no": 0.0,
}

# Deterministic judge sampling
JUDGE_TEMPERATURE = 0.0
JUDGE_TOP_K = 1
JUDGE_SEED = 42

# Log truncation limits (characters)
LOG_QUESTION_MAX_CHARS = 100
LOG_ANSWER_MAX_CHARS = 200
LOG_REASON_MAX_CHARS = 500

DEFAULT_MAX_TOOL_ITERATIONS = 10

# Histogram bucket boundaries in milliseconds
LATENCY_BUCKETS_MS = [10, 50, 100, 250, 500, 1000, 2500, 5000, 10000, 30000]
TOOL_CALL_BUCKETS_MS = [1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500]

# Rough prompt processing rate used when the runtime reports no prompt-eval time
ESTIMATED_PROMPT_EVAL_TOKENS_PER_SEC = 200.0
