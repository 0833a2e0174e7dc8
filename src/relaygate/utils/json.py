import json
from typing import Any


def json_dumps(obj: Any) -> str:
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False)


def json_dumps_bytes(obj: Any) -> bytes:
    return json_dumps(obj).encode("utf-8")
