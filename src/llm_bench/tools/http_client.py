"""
HTTP request tool
"""

import httpx

from llm_bench.tools.base import Tool, ToolInputError, require

USER_AGENT = "LLM-Benchmark-Tool/1.0"
# Only a few response headers are passed back to keep tool output short
RESPONSE_HEADERS = ["Content-Type", "Content-Length", "Date"]


class HTTPClient(Tool):
    """GET or POST a URL and return status, selected headers and body"""

    name = "http_get"
    description = (
        "Makes HTTP GET or POST requests to external APIs and returns the response. "
        "Use this tool to fetch data from web APIs, retrieve JSON data, or interact with external services."
    )
    parameters = {
        "type": "object",
        "properties": {
            "url": {
                "type": "string",
                "description": "The URL to request (must be a valid HTTP or HTTPS URL)",
            },
            "method": {
                "type": "string",
                "enum": ["GET", "POST"],
                "description": "The HTTP method to use (default: GET)",
            },
            "headers": {
                "type": "object",
                "description": "Optional HTTP headers as key-value pairs",
            },
            "body": {
                "type": "string",
                "description": "Optional request body for POST requests",
            },
        },
        "required": ["url"],
    }

    def __init__(self, timeout_seconds: float = 30.0):
        self.timeout_seconds = timeout_seconds

    def run(self, arguments: dict) -> dict:
        url = require(arguments, "url", str).strip()
        if not url:
            raise ToolInputError("URL is required")
        method = (arguments.get("method") or "GET").upper()
        if method not in ("GET", "POST"):
            return {"status_code": 0, "body": "", "error": f"unsupported HTTP method: {method} (only GET and POST are supported)"}

        headers = {str(k): str(v) for k, v in (arguments.get("headers") or {}).items()}
        if not any(k.lower() == "user-agent" for k in headers):
            headers["User-Agent"] = USER_AGENT
        body = arguments.get("body") if method == "POST" else None

        try:
            with httpx.Client(timeout=self.timeout_seconds, follow_redirects=True) as client:
                resp = client.request(method, url, headers=headers, content=body or None)
        except httpx.HTTPError as e:
            return {"status_code": 0, "body": "", "error": f"HTTP request failed: {e}"}

        result = {
            "status_code": resp.status_code,
            "headers": {k: resp.headers[k] for k in RESPONSE_HEADERS if k in resp.headers},
            "body": resp.text,
        }
        if resp.status_code >= 400:
            result["error"] = f"HTTP request returned error status: {resp.status_code}"
        return result
