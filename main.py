#!/usr/bin/env python3
"""
VideoForge - Main Entry Point

Runs the video generation API and talks to it from the command line.

Usage:
    # Start the API server (HTTP + SSE)
    python main.py server

    # Generate a video and follow its progress
    python main.py generate --user u1 --prompt "A lighthouse in a storm, cinematic"

    # Monitor an existing job
    python main.py monitor <job_id> --user u1

    # List models available to the configured provider keys
    python main.py models --user u1
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

import aiohttp

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("videoforge")

DEFAULT_SERVER = "http://localhost:8765"


def start_server(host: Optional[str] = None, port: Optional[int] = None):
    """Start the FastAPI server."""
    from core.config import get_config
    from services.api.server import run_server

    config = get_config()
    for problem in config.validate():
        logger.warning(f"Config: {problem}")

    host = host or config.server.host
    port = port or config.server.port
    logger.info(f"VideoForge server running at http://{host}:{port}")
    run_server(host=host, port=port)


async def generate_video(
    user_id: str,
    prompt: str,
    server_url: str = DEFAULT_SERVER,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    aspect_ratio: Optional[str] = None,
    duration: Optional[int] = None,
    resolution: Optional[str] = None,
) -> Optional[dict]:
    """
    Submit a generation through the API and follow its stream.

    Returns:
        The terminal stream event, or None if the submission failed.
    """
    from cli.progress_monitor import ProgressMonitor

    body = {
        "prompt": prompt,
        "provider": provider,
        "model": model,
        "aspectRatio": aspect_ratio,
        "duration": duration,
        "resolution": resolution,
    }
    body = {k: v for k, v in body.items() if v is not None}

    async with aiohttp.ClientSession() as session:
        async with session.post(
            f"{server_url.rstrip('/')}/api/video/generate",
            json=body,
            headers={"X-User-Id": user_id},
        ) as resp:
            data = await resp.json(content_type=None)
            if resp.status != 200:
                logger.error(f"Generation rejected ({resp.status}): {data.get('detail')}")
                return None

    job_id = data["id"]
    logger.info(f"Started job {job_id} (provider job {data.get('providerJobId')})")

    if data.get("status") == "complete":
        logger.info(f"Video ready: {data.get('videoUrl')}")
        return {"status": "complete", "videoUrl": data.get("videoUrl"), "cost": data.get("cost")}

    monitor = ProgressMonitor(job_id=job_id, user_id=user_id, server_url=server_url)
    return await monitor.start()


async def monitor_job(job_id: str, user_id: str, server_url: str = DEFAULT_SERVER) -> Optional[dict]:
    """Monitor an existing job's progress."""
    from cli.progress_monitor import ProgressMonitor

    monitor = ProgressMonitor(job_id=job_id, user_id=user_id, server_url=server_url)
    return await monitor.start()


async def list_models(user_id: str, server_url: str = DEFAULT_SERVER):
    async with aiohttp.ClientSession() as session:
        async with session.get(
            f"{server_url.rstrip('/')}/api/video/models",
            headers={"X-User-Id": user_id},
        ) as resp:
            if resp.status != 200:
                print(f"Server returned status {resp.status}")
                sys.exit(1)
            data = await resp.json()

    models = data.get("models", [])
    if not models:
        print("No video models available. Add a provider key first.")
        return

    for model in models:
        durations = ", ".join(f"{d}s" for d in model.get("supportedDurations") or []) or "-"
        print(f"{model['id']:<36} {model['provider']:<10} {model['displayName']} [{durations}]")


async def check_status(server_url: str = DEFAULT_SERVER):
    async with aiohttp.ClientSession() as session:
        try:
            async with session.get(f"{server_url.rstrip('/')}/health") as resp:
                if resp.status == 200:
                    data = await resp.json()
                    print(f"Server: {server_url}")
                    print("Status: Online")
                    print(f"Health: {data.get('status')} at {data.get('timestamp')}")
                else:
                    print(f"Server returned status {resp.status}")
        except aiohttp.ClientError as e:
            print(f"Cannot connect to server: {e}")
            sys.exit(1)


def main():
    parser = argparse.ArgumentParser(
        description="VideoForge - Multi-provider Video Generation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Start the API server
    python main.py server

    # Generate a video with the default provider
    python main.py generate --user u1 --prompt "A sunset over the ocean"

    # Generate with a specific WaveSpeed model
    python main.py generate --user u1 --provider wavespeed --model wan-2.2/t2v-720p -p "..."

    # Monitor job progress
    python main.py monitor 2f1c... --user u1
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Server command
    server_parser = subparsers.add_parser("server", help="Start API server")
    server_parser.add_argument("--host", help="Host to bind (default: HOST or 0.0.0.0)")
    server_parser.add_argument("--port", type=int, help="Port to bind (default: PORT or 8765)")

    # Generate command
    gen_parser = subparsers.add_parser("generate", help="Generate a video")
    gen_parser.add_argument("--prompt", "-p", required=True, help="Text prompt")
    gen_parser.add_argument("--user", "-u", required=True, help="User ID to generate as")
    gen_parser.add_argument("--provider", help="Preferred provider (openai, wavespeed)")
    gen_parser.add_argument("--model", "-m", help="Model ID")
    gen_parser.add_argument("--aspect-ratio", "-a", help="Aspect ratio, e.g. 16:9")
    gen_parser.add_argument("--duration", "-d", type=int, help="Duration in seconds")
    gen_parser.add_argument("--resolution", "-r", help="Resolution, e.g. 720p")
    gen_parser.add_argument("--server", default=DEFAULT_SERVER, help="API server URL")

    # Monitor command
    mon_parser = subparsers.add_parser("monitor", help="Monitor job progress")
    mon_parser.add_argument("job_id", help="Job ID to monitor")
    mon_parser.add_argument("--user", "-u", required=True, help="User ID that owns the job")
    mon_parser.add_argument("--server", default=DEFAULT_SERVER, help="API server URL")

    # Models command
    models_parser = subparsers.add_parser("models", help="List available models")
    models_parser.add_argument("--user", "-u", required=True, help="User ID")
    models_parser.add_argument("--server", default=DEFAULT_SERVER, help="API server URL")

    # Status command
    status_parser = subparsers.add_parser("status", help="Check server status")
    status_parser.add_argument("--server", default=DEFAULT_SERVER, help="API server URL")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    # Run appropriate command
    if args.command == "server":
        start_server(host=args.host, port=args.port)

    elif args.command == "generate":
        result = asyncio.run(
            generate_video(
                user_id=args.user,
                prompt=args.prompt,
                server_url=args.server,
                provider=args.provider,
                model=args.model,
                aspect_ratio=args.aspect_ratio,
                duration=args.duration,
                resolution=args.resolution,
            )
        )
        sys.exit(0 if result and result.get("status") == "complete" else 1)

    elif args.command == "monitor":
        result = asyncio.run(monitor_job(args.job_id, args.user, args.server))
        sys.exit(0 if result and result.get("status") == "complete" else 1)

    elif args.command == "models":
        asyncio.run(list_models(args.user, args.server))

    elif args.command == "status":
        asyncio.run(check_status(args.server))


if __name__ == "__main__":
    main()
