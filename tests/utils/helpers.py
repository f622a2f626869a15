"""
Test Helpers
============

Helper functions for common testing operations, chiefly a fake Remotion CLI.
"""

import json
from pathlib import Path
from typing import Any, Dict, List

FAKE_VIDEO_PREFIX = b"FAKE-MP4:"

_RENDERER_TEMPLATE = '''\
import json
import os
import sys
import time
from pathlib import Path

CALLS = Path({calls!r})
args = sys.argv[1:]
with CALLS.open("a", encoding="utf-8") as fh:
    fh.write(json.dumps({{"argv": args, "cwd": os.getcwd()}}) + "\\n")

output = Path(args[2])
props = "{{}}"
for arg in args[3:]:
    if arg.startswith("--props="):
        props = arg[len("--props="):]

time.sleep({sleep!r})
if {write_output!r}:
    output.write_bytes({prefix!r} + props.encode("utf-8"))
sys.stdout.write({stdout!r})
sys.stderr.write({stderr!r})
sys.stdout.flush()
sys.stderr.flush()
sys.exit({exit_code!r})
'''


def write_fake_renderer(
    directory: Path,
    exit_code: int = 0,
    stdout: str = "",
    stderr: str = "",
    write_output: bool = True,
    sleep: float = 0.0,
) -> Path:
    """
    Write a script that stands in for ``npx remotion render``.

    It records each call, writes ``FAKE-MP4:<props json>`` to the output path
    when ``write_output`` is set, prints the given text and exits with
    ``exit_code``.
    """
    directory.mkdir(parents=True, exist_ok=True)
    script = directory / "fake_remotion.py"
    script.write_text(
        _RENDERER_TEMPLATE.format(
            calls=str(renderer_calls_path(script)),
            sleep=sleep,
            write_output=write_output,
            prefix=FAKE_VIDEO_PREFIX,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
        ),
        encoding="utf-8",
    )
    return script


def renderer_calls_path(script: Path) -> Path:
    return script.with_suffix(".calls")


def read_renderer_calls(script: Path) -> List[Dict[str, Any]]:
    """Return the recorded invocations of a fake renderer."""
    calls_path = renderer_calls_path(script)
    if not calls_path.exists():
        return []
    return [
        json.loads(line)
        for line in calls_path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]


def list_output_files(directory: Path) -> List[Path]:
    """Files currently present in an output directory."""
    return sorted(entry for entry in directory.iterdir() if entry.is_file())
