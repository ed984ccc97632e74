#!/usr/bin/env python3
"""
CLI Progress Monitor for Video Generation

Connects to a job's SSE stream and displays real-time progress with visual
formatting until the job completes or fails.

Usage:
    python -m cli.progress_monitor <job_id> --user u1
    python -m cli.progress_monitor --server http://localhost:8765 --user u1 <job_id>
"""

import argparse
import asyncio
import json
from typing import Optional

import aiohttp


# ANSI color codes
class Colors:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"

    # Clear line
    CLEAR_LINE = "\033[2K\r"


TERMINAL_STATUSES = ("complete", "error")


def colored(text: str, color: str) -> str:
    """Apply color to text."""
    return f"{color}{text}{Colors.RESET}"


def progress_bar(percent: float, width: int = 30) -> str:
    """Create a visual progress bar."""
    percent = max(0.0, min(100.0, percent))
    filled = int(percent / 100 * width)
    bar = "█" * filled + "░" * (width - filled)

    if percent >= 100:
        color = Colors.GREEN
    elif percent >= 50:
        color = Colors.CYAN
    elif percent >= 25:
        color = Colors.YELLOW
    else:
        color = Colors.WHITE

    return colored(f"[{bar}]", color) + f" {percent:5.1f}%"


def parse_sse_line(line: str) -> Optional[dict]:
    """Decode one `data: {json}` line; anything else yields None."""
    line = line.strip()
    if not line.startswith("data:"):
        return None
    try:
        return json.loads(line[5:].strip())
    except json.JSONDecodeError:
        return None


def format_event(event: dict) -> str:
    """Format a stream event for display."""
    status = event.get("status", "")
    progress = event.get("progress") or 0

    status_config = {
        "queued": ("🕒", Colors.DIM),
        "processing": ("⏳", Colors.CYAN),
        "complete": ("✅", Colors.GREEN),
        "error": ("❌", Colors.RED),
    }
    icon, color = status_config.get(status, ("•", Colors.WHITE))

    if status in ("queued", "processing"):
        line = f"{Colors.CLEAR_LINE}{icon} {colored(status.upper(), color)} {progress_bar(progress)}"
        if event.get("error"):
            line += " " + colored(event["error"], Colors.YELLOW)
        return line

    lines = []
    if status == "complete":
        lines.append(f"{icon} {colored('Video ready', color)} {progress_bar(100)}")
        if event.get("videoUrl"):
            lines.append(colored(f"    → {event['videoUrl']}", Colors.DIM))
        if event.get("duration"):
            lines.append(colored(f"    Duration: {event['duration']}s", Colors.DIM))
        if event.get("cost") is not None:
            lines.append(colored(f"    Cost: ${event['cost']:.2f}", Colors.DIM))
    elif status == "error":
        lines.append(f"{icon} {colored(event.get('error') or 'Video generation failed', color)}")
    else:
        lines.append(f"{icon} {colored(json.dumps(event), color)}")

    return "\n".join(lines)


class ProgressMonitor:
    """CLI progress monitor for a single video generation job."""

    def __init__(
        self,
        job_id: str,
        user_id: str,
        server_url: str = "http://localhost:8765",
        max_retries: int = 5,
    ):
        self.job_id = job_id
        self.user_id = user_id
        self.server_url = server_url.rstrip("/")
        self.stream_url = f"{self.server_url}/api/video/{job_id}/stream"
        self.max_retries = max_retries

        self._running = False
        self._last_progress = -1
        self.final_event: Optional[dict] = None

    async def start(self) -> Optional[dict]:
        """Follow the stream; returns the terminal event, if one arrived."""
        self._running = True

        print(colored("\n╔═══════════════════════════════════════════╗", Colors.CYAN))
        print(colored("║  VideoForge Progress Monitor              ║", Colors.CYAN))
        print(colored("╚═══════════════════════════════════════════╝", Colors.CYAN))
        print(f"Job:    {colored(self.job_id, Colors.BOLD)}")
        print(f"Server: {colored(self.stream_url, Colors.DIM)}")
        print(colored("─" * 45, Colors.DIM))
        print()

        retry_count = 0

        while self._running and retry_count < self.max_retries:
            try:
                await self._stream_events()
                if not self._running:
                    break
                raise aiohttp.ClientError("Stream closed before the job finished")
            except aiohttp.ClientError as e:
                retry_count += 1
                if retry_count < self.max_retries:
                    wait = 2 ** retry_count
                    print(
                        colored(
                            f"\n⚠️ Connection lost ({e}). Retrying in {wait}s... ({retry_count}/{self.max_retries})",
                            Colors.YELLOW,
                        )
                    )
                    await asyncio.sleep(wait)
                else:
                    print(colored(f"\n❌ Failed to connect after {self.max_retries} attempts", Colors.RED))
            except asyncio.CancelledError:
                break

        print(colored("\n" + "─" * 45, Colors.DIM))
        print(colored("Monitor stopped.", Colors.DIM))
        return self.final_event

    async def _stream_events(self):
        """Stream and display events."""
        headers = {"X-User-Id": self.user_id, "Accept": "text/event-stream"}
        async with aiohttp.ClientSession() as session:
            async with session.get(self.stream_url, headers=headers) as response:
                if response.status == 404:
                    self.handle_event({"status": "error", "error": "Video generation not found"})
                    return
                if response.status != 200:
                    raise aiohttp.ClientError(f"Server returned {response.status}")

                async for raw in response.content:
                    if not self._running:
                        break
                    event = parse_sse_line(raw.decode("utf-8"))
                    if event is not None:
                        self.handle_event(event)

    def handle_event(self, event: dict):
        """Render one event; terminal events stop the monitor."""
        status = event.get("status", "")

        if status in ("queued", "processing"):
            # Progress updates redraw the same line
            progress = event.get("progress") or 0
            if progress != self._last_progress or event.get("error"):
                self._last_progress = progress
                print(format_event(event), end="", flush=True)
        else:
            print()
            print(format_event(event))

        if status in TERMINAL_STATUSES:
            self.final_event = event
            self._running = False

    def stop(self):
        """Stop monitoring."""
        self._running = False


async def main():
    parser = argparse.ArgumentParser(
        description="Monitor video generation progress",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s 2f1c... --user u1
    %(prog)s --server http://remote:8765 --user u1 2f1c...
        """,
    )
    parser.add_argument("job_id", help="Video generation ID to monitor")
    parser.add_argument("--user", required=True, help="User ID that owns the job")
    parser.add_argument(
        "--server",
        default="http://localhost:8765",
        help="API server URL (default: http://localhost:8765)",
    )

    args = parser.parse_args()

    monitor = ProgressMonitor(job_id=args.job_id, user_id=args.user, server_url=args.server)

    try:
        await monitor.start()
    except KeyboardInterrupt:
        print(colored("\n\nInterrupted by user.", Colors.YELLOW))
        monitor.stop()


if __name__ == "__main__":
    asyncio.run(main())
