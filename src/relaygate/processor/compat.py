"""
Client compatibility fixes applied to raw request bodies before parsing.

Some wallets send payloads that are almost JSON-RPC 2.0: a leading BOM,
no "jsonrpc" member, or "params" omitted or null. These are normalized
here so the parser only has to deal with the strict form. The fixer
holds no state; anything it cannot parse is passed through untouched
for the parser to reject.
"""

from __future__ import annotations

import json

from relaygate.utils.json import json_dumps_bytes

_BOM = b"\xef\xbb\xbf"


class ClientCompatFixer:
    def fix(self, raw: bytes) -> bytes:
        body = raw[len(_BOM):] if raw.startswith(_BOM) else raw
        body = body.strip()
        if not body.startswith(b"{"):
            return body

        try:
            obj = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return body
        if not isinstance(obj, dict):
            return body

        changed = False
        if "jsonrpc" not in obj:
            obj["jsonrpc"] = "2.0"
            changed = True
        if obj.get("params") is None and "method" in obj:
            obj["params"] = []
            changed = True

        return json_dumps_bytes(obj) if changed else body
