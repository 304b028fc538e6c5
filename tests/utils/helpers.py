"""Test helper functions."""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional


def write_executable_hook(hooks_dir: Path, name: str, body: str, mode: int = 0o755) -> Path:
    """Write a Python hook script with the test interpreter as its shebang."""
    path = hooks_dir / name
    path.write_text(f"#!{sys.executable}\n{body}", encoding="utf-8")
    os.chmod(path, mode)
    return path


def replacing_hook(updates: Dict[str, Any], record_to: Optional[Path] = None) -> str:
    """Hook body that applies ``updates`` to the incoming task and prints it."""
    record = ""
    if record_to is not None:
        record = (
            f"with open({str(record_to)!r}, 'a') as f:\n"
            "    f.write(json.dumps({'env': {k: v for k, v in os.environ.items() if k.startswith('TASHKS_')}, "
            "'stdin': payload}) + '\\n')\n"
        )
    return (
        "import json, os, sys\n"
        "payload = json.load(sys.stdin)\n"
        f"{record}"
        "task = payload['new'] if 'new' in payload else payload\n"
        f"task.update({updates!r})\n"
        "print(json.dumps(task))\n"
    )


def recording_hook(record_to: Path, exit_code: int = 0) -> str:
    """Hook body that appends its env and stdin to ``record_to`` and prints nothing."""
    return (
        "import json, os, sys\n"
        "payload = json.load(sys.stdin)\n"
        f"with open({str(record_to)!r}, 'a') as f:\n"
        "    f.write(json.dumps({'env': {k: v for k, v in os.environ.items() if k.startswith('TASHKS_')}, "
        "'stdin': payload}) + '\\n')\n"
        f"sys.exit({exit_code})\n"
    )


def failing_hook(message: str = "nope", exit_code: int = 1) -> str:
    return f"import sys\nsys.stdin.read()\nsys.stderr.write({message!r})\nsys.exit({exit_code})\n"


def read_records(path: Path) -> list:
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line.strip()]


def create_vercel_request(query: Optional[Dict[str, str]] = None, method: str = "GET") -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    return {
        "method": method,
        "path": "/api/recurrence/process",
        "headers": {},
        "body": "",
        "query": query or {}
    }


def raw_bytes_hook(stdout: bytes = b"", stderr: bytes = b"", exit_code: int = 0) -> str:
    """Hook body that writes raw bytes, which need not be valid UTF-8."""
    return (
        "import sys\n"
        "sys.stdin.read()\n"
        f"sys.stdout.buffer.write({stdout!r})\n"
        f"sys.stderr.buffer.write({stderr!r})\n"
        f"sys.exit({exit_code})\n"
    )
