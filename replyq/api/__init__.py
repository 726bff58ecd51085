"""ReplyQ HTTP API"""

from __future__ import annotations


def main() -> None:
    """Run the API server (``replyq-api`` console script)."""
    import uvicorn

    from replyq.config import API_HOST, API_PORT, LOG_LEVEL

    uvicorn.run("replyq.api.app:app", host=API_HOST, port=API_PORT, log_level=LOG_LEVEL.lower())
