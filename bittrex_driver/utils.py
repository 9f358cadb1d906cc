from __future__ import annotations
import hmac, hashlib, time, os
from typing import Any, Mapping
from urllib.parse import quote_plus
import orjson

def now_ns() -> int:
    return time.time_ns()

def hmac_sha512(secret: str, msg: str) -> str:
    return hmac.new(secret.encode(), msg.encode(), hashlib.sha512).hexdigest()

def build_query(params: Mapping[str, Any]) -> str:
    # insertion order is part of the signed payload
    return "&".join(f"{k}={quote_plus(str(v))}" for k, v in params.items())

def to_json(obj: Any) -> str:
    return orjson.dumps(obj, default=str).decode()

def from_json(s: bytes | str) -> Any:
    return orjson.loads(s)

def env(name: str, default: str = "") -> str:
    return os.environ.get(name, default)
