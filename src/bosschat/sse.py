# src/bosschat/sse.py
"""
Server-sent event framing.

Every frame is a single `data:` line holding one JSON object, followed by a
blank line. The `type` key tells the browser how to handle the frame.
"""

import json
from typing import Any, Dict

START = "start"
DELTA = "delta"
ERROR = "error"
DONE = "done"

SSE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def frame(payload: Dict[str, Any]) -> str:
    """Encode one event; JSON escaping keeps embedded newlines off the wire."""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def start_frame() -> str:
    return frame({"type": START})


def delta_frame(text: str) -> str:
    return frame({"type": DELTA, "text": text})


def error_frame(message: str) -> str:
    return frame({"type": ERROR, "message": message})


def done_frame() -> str:
    return frame({"type": DONE})


def parse_frames(body: str) -> list[Dict[str, Any]]:
    """Decode a complete event-stream body back into payloads, in order."""
    events = []
    for block in body.split("\n\n"):
        block = block.strip()
        if block.startswith("data: "):
            events.append(json.loads(block[len("data: "):]))
    return events
