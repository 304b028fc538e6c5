"""Health check endpoint."""

from http.server import BaseHTTPRequestHandler
import json

from tashks.models.hook import HookEvent
from tashks.services.hooks import SubprocessHookExecutor
from tashks.utils.config import TashksConfig
from tashks.utils.errors import HookError


def health_report(config: TashksConfig) -> dict:
    """Service status plus the hooks that would run for each event."""
    executor = SubprocessHookExecutor(config.hooks_dir)
    try:
        hooks = {event.value: len(executor.discover(event)) for event in HookEvent}
    except HookError as e:
        return {"status": "degraded", "service": "tashks", "error": str(e)}

    return {
        "status": "ok",
        "service": "tashks",
        "data_dir": str(config.data_dir),
        "hooks_dir": str(config.hooks_dir),
        "hooks": hooks,
    }


class handler(BaseHTTPRequestHandler):
    """Health check handler for Vercel serverless function."""

    def do_GET(self):
        """Handle GET request."""
        report = health_report(TashksConfig.from_env())
        self.send_response(200 if report["status"] == "ok" else 503)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        self.wfile.write(json.dumps(report).encode('utf-8'))

    def do_POST(self):
        """Handle POST request (same as GET for health check)."""
        self.do_GET()
