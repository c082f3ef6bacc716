"""CLI entry point: python3 -m introspector

Modes:
  --command/--target/--args  Single-shot lookup
  --sidecar                  Persistent stdin/stdout JSON loop sharing one cache
"""

import argparse
import json
import sys
import traceback

from .analyze import dispatch
from .introspector import Introspector


def main():
    parser = argparse.ArgumentParser(description="Introspector CLI")
    parser.add_argument("--sidecar", action="store_true",
                        help="Serve JSON requests on stdin until EOF")
    parser.add_argument("--command", help="describe, method, field, stats or clear")
    parser.add_argument("--target", default="", help="Class as module:QualName")
    parser.add_argument("--args", default="{}", help="JSON-encoded arguments")
    args = parser.parse_args()

    if args.sidecar:
        serve(sys.stdin, sys.stdout, Introspector())
    elif not args.command:
        parser.error("--command is required (or use --sidecar)")
    else:
        sys.exit(_run_once(args.command, args.target, args.args))


def _run_once(command: str, target: str, raw_args: str) -> int:
    try:
        result = dispatch(command, target, json.loads(raw_args))
    except Exception as e:
        error_type = "InvalidArgs" if isinstance(e, json.JSONDecodeError) else type(e).__name__
        _emit(sys.stderr, {
            "error": error_type,
            "message": str(e),
            "traceback": traceback.format_exc(),
        })
        return 1
    _emit(sys.stdout, result)
    return 0


def serve(stdin, stdout, introspector: Introspector) -> None:
    """Answer one JSON line per request line; the cache lives for the whole loop."""
    _emit(stdout, {"status": "ready"})

    for line in stdin:
        line = line.strip()
        if not line:
            continue

        try:
            req = json.loads(line)
        except json.JSONDecodeError as e:
            _emit(stdout, {"id": None, "error": {"type": "InvalidJSON", "message": str(e)}})
            continue

        try:
            result = dispatch(
                req.get("command", ""),
                req.get("target", ""),
                req.get("args", {}),
                introspector=introspector,
            )
            resp = {"id": req.get("id"), "result": result}
        except Exception as e:
            resp = {"id": req.get("id"), "error": {"type": type(e).__name__, "message": str(e)}}
        _emit(stdout, resp)


def _emit(stream, payload: dict) -> None:
    stream.write(json.dumps(payload) + "\n")
    stream.flush()


if __name__ == "__main__":
    main()
