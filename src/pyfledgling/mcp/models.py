from __future__ import annotations
from dataclasses import dataclass
from typing import Any

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class RpcError(Exception):
    """A protocol-level failure, answered with a JSON-RPC ``error`` object."""

    def __init__(self, code: int, message: str, kind: str | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.kind = kind

    def to_obj(self) -> dict[str, Any]:
        err: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.kind:
            err["data"] = {"kind": self.kind}
        return err


@dataclass
class Request:
    method: str
    id: Any = None
    params: Any = None
    is_notification: bool = False

    @staticmethod
    def from_obj(obj: Any) -> "Request":
        if not isinstance(obj, dict):
            raise RpcError(INVALID_REQUEST, "Request must be a JSON object")
        method = obj.get("method")
        if not isinstance(method, str) or not method:
            raise RpcError(INVALID_REQUEST, "Request has no method")
        params = obj.get("params")
        if params is not None and not isinstance(params, (dict, list)):
            raise RpcError(INVALID_REQUEST, "Request params must be an object or array")
        return Request(method=method, id=obj.get("id"), params=params, is_notification="id" not in obj)


def reply(rid: Any, result: Any = None, error: RpcError | None = None) -> dict[str, Any]:
    msg: dict[str, Any] = {"jsonrpc": "2.0", "id": rid}
    if error is not None:
        msg["error"] = error.to_obj()
    else:
        msg["result"] = result
    return msg


def text_content(text: str, is_error: bool = False) -> dict[str, Any]:
    return {"content": [{"type": "text", "text": text}], "isError": is_error}
