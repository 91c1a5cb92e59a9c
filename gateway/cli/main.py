# ==============================
# CLI Entrypoint
# ==============================
"""
CLI for msgtrace.

Supported commands:
  msgtrace serve
  msgtrace list
  msgtrace start --client-id dev1 --file /var/log/trace_dev1.log
  msgtrace start --topic 'sensor/+/temp' --file /var/log/trace_temp.log
  msgtrace stop --client-id dev1
  msgtrace stop --topic 'sensor/+/temp'

All commands except `serve` go through the admin HTTP API.
"""

from __future__ import annotations

import argparse
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from core.config.loader import load_settings
from core.config.schema import Settings
from core.logging.logger import bootstrap_logger


@dataclass(frozen=True)
class ApiResponse:
    ok: bool
    body: Optional[Dict[str, Any]]
    error: Optional[str]


class TraceApiClient:
    def __init__(self, base_url: str, timeout: int = 15) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> ApiResponse:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.request(method, url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            return ApiResponse(ok=False, body=None, error=str(exc))

        try:
            body = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 400:
            # HTTPException wraps our envelope under "detail"
            envelope = body.get("detail") if isinstance(body, dict) else None
            if isinstance(envelope, dict) and isinstance(envelope.get("error"), dict):
                return ApiResponse(ok=False, body=envelope, error=envelope["error"].get("message"))
            return ApiResponse(ok=False, body=body, error=resp.text)

        return ApiResponse(ok=True, body=body, error=None)

    def list_traces(self) -> ApiResponse:
        return self._request("GET", "/api/traces")

    def start_trace(self, kind: str, value: str, destination: str) -> ApiResponse:
        return self._request("POST", "/api/traces", {"kind": kind, "value": value, "destination": destination})

    def stop_trace(self, kind: str, value: str) -> ApiResponse:
        return self._request("POST", "/api/traces/stop", {"kind": kind, "value": value})


def _api_base_url(settings: Settings) -> str:
    candidate = settings.app.api_base_url
    if isinstance(candidate, str) and candidate.strip():
        return candidate.strip().rstrip("/")
    return f"http://{settings.app.host}:{settings.app.port}"


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False, default=str))


def _selector_args(args: argparse.Namespace) -> Dict[str, str]:
    if args.client_id is not None:
        return {"kind": "client_id", "value": args.client_id}
    return {"kind": "topic", "value": args.topic}


def _report(res: ApiResponse) -> int:
    if res.ok:
        _print_json(res.body)
        return 0
    _print_json(res.body or {"ok": False, "error": {"message": res.error}})
    return 1


def cmd_serve(settings: Settings) -> int:
    import uvicorn

    from gateway.api.http_app import create_app

    bootstrap_logger(settings)
    uvicorn.run(create_app(), host=settings.app.host, port=settings.app.port, log_config=None)
    return 0


def cmd_list(client: TraceApiClient) -> int:
    return _report(client.list_traces())


def cmd_start(client: TraceApiClient, *, kind: str, value: str, destination: str) -> int:
    return _report(client.start_trace(kind, value, destination))


def cmd_stop(client: TraceApiClient, *, kind: str, value: str) -> int:
    return _report(client.stop_trace(kind, value))


def _add_selector(ap: argparse.ArgumentParser) -> None:
    group = ap.add_mutually_exclusive_group(required=True)
    group.add_argument("--client-id", default=None, help="Trace one client")
    group.add_argument("--topic", default=None, help="Trace a topic pattern (+ and # wildcards)")


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="msgtrace")
    ap.add_argument("--api", default=None, help="Admin API base URL (overrides settings)")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sub.add_parser("serve")
    sub.add_parser("list")

    ap_start = sub.add_parser("start")
    _add_selector(ap_start)
    ap_start.add_argument("--file", required=True, help="Trace output file")

    ap_stop = sub.add_parser("stop")
    _add_selector(ap_stop)

    args = ap.parse_args(argv)

    settings = load_settings()
    if args.cmd == "serve":
        return cmd_serve(settings)

    client = TraceApiClient(args.api or _api_base_url(settings))
    if args.cmd == "list":
        return cmd_list(client)
    if args.cmd == "start":
        return cmd_start(client, destination=args.file, **_selector_args(args))
    if args.cmd == "stop":
        return cmd_stop(client, **_selector_args(args))

    raise SystemExit("Unknown command")


if __name__ == "__main__":
    raise SystemExit(main())
