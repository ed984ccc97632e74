"""
Streaming Service

Server-Sent Events for generation progress:
- JobStreamOrchestrator: polls a provider until the job is terminal
- StreamEvent: SSE payload (`data: {json}\\n\\n`)
"""

from .job_stream import JobStreamOrchestrator, StreamEvent, format_sse

__all__ = [
    "JobStreamOrchestrator",
    "StreamEvent",
    "format_sse",
]
