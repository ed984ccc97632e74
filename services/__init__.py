"""
VideoForge Services

Services for the video generation lifecycle:
- video_generation: provider adapters, registry, request handler, pricing
- streaming: SSE job stream (polling orchestrator)
- storage: KV, job/schedule tables and artifact storage clients
- api: FastAPI HTTP surface
"""
