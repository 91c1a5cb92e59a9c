# ==============================
# Config Loader (only env reader)
# ==============================
"""
Config loader for msgtrace.

Rules:
- This is the ONLY place allowed to read os.environ and .env.
- Everything else receives a validated Settings object.

Precedence:
env > .env > configs/*.yaml > defaults

Testability:
- All functions accept injected paths and env dict.
- No hardcoded absolute paths.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from core.config.schema import Settings

ENV_PREFIX = "MSGTRACE__"
SECTIONS = ("app", "logging", "tracing")


# ==============================
# YAML Helpers
# ==============================


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return {}
    data = yaml.safe_load(raw)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Deep-merge dictionaries: override wins.
    """
    out: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


# ==============================
# .env Loader
# ==============================


def _read_dotenv(dotenv_path: Path) -> Dict[str, str]:
    """
    Minimal .env parser (KEY=VALUE).
    - Ignores comments and blank lines.
    - Strips surrounding quotes.
    """
    if not dotenv_path.exists():
        return {}
    envs: Dict[str, str] = {}
    for line in dotenv_path.read_text(encoding="utf-8").splitlines():
        s = line.strip()
        if not s or s.startswith("#") or "=" not in s:
            continue
        key, val = s.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key:
            envs[key] = val
    return envs


def _coerce(v: str) -> Any:
    vs = v.strip()
    if vs.lower() in {"true", "false"}:
        return vs.lower() == "true"
    if vs.isdigit() or (vs.startswith("-") and vs[1:].isdigit()):
        return int(vs)
    return vs


def _apply_env_overrides(cfg: Dict[str, Any], env: Dict[str, str]) -> Dict[str, Any]:
    """
    Apply environment overrides with MSGTRACE__ style nesting.

Example:
  MSGTRACE__APP__PORT=8001
  MSGTRACE__LOGGING__LEVEL=WARNING
  MSGTRACE__TRACING__FLUSH_INTERVAL_MS=250

Rules:
- Split by '__' after prefix MSGTRACE__
- Lowercase keys for dict insertion
- Coerce booleans/ints when obvious
    """
    out = dict(cfg)
    for k, v in env.items():
        if not k.startswith(ENV_PREFIX):
            continue
        path = k[len(ENV_PREFIX) :].split("__")
        if not path or any(not p for p in path):
            continue
        cur: Dict[str, Any] = out
        for i, seg in enumerate(path):
            key = seg.lower()
            if i == len(path) - 1:
                cur[key] = _coerce(v)
            else:
                nxt = cur.get(key)
                if not isinstance(nxt, dict):
                    nxt = {}
                    cur[key] = nxt
                cur = nxt
    return out


# ==============================
# Public Loader API
# ==============================


def load_settings(
    *,
    repo_root: Optional[str] = None,
    configs_dir: Optional[str] = None,
    dotenv_file: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> Settings:
    """
    Load and validate Settings.

Inputs:
- repo_root: defaults to current working directory
- configs_dir: defaults to <repo_root>/configs
- dotenv_file: defaults to <repo_root>/.env
- env: injected env vars (defaults to os.environ)

Each configs/<section>.yaml may hold the section body directly or nested under
its own key (`tracing: {...}`).
    """
    env_vars = dict(env) if env is not None else dict(os.environ)

    root = Path(repo_root or os.getcwd()).expanduser().resolve()
    cfg_dir = root / (configs_dir or "configs")

    merged: Dict[str, Any] = {}
    for section in SECTIONS:
        body = _read_yaml(cfg_dir / f"{section}.yaml")
        if isinstance(body.get(section), dict) and len(body) == 1:
            body = body[section]
        merged = _deep_merge(merged, {section: body})

    # .env (optional) -> treated as env overrides; real env wins
    dotenv_path = Path(dotenv_file) if dotenv_file else (root / ".env")
    effective_env = dict(env_vars)
    for k, v in _read_dotenv(dotenv_path).items():
        effective_env.setdefault(k, v)

    merged = _apply_env_overrides(merged, effective_env)

    # ensure repo_root is set deterministically (override configs)
    merged = _deep_merge(merged, {"app": {"paths": {"repo_root": str(root)}}})

    try:
        return Settings.model_validate(merged)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
