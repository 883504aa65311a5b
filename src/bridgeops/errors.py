from __future__ import annotations

from typing import Optional


class BridgeOpsError(RuntimeError):
    exit_code: int = 1


class BookError(BridgeOpsError):
    exit_code = 2


class AbiError(BridgeOpsError):
    exit_code = 3


class RpcError(BridgeOpsError):
    exit_code = 4

    def __init__(self, message: str, code: Optional[int] = None, data: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class RevertError(BridgeOpsError):
    exit_code = 5

    def __init__(self, reason: str, data: Optional[str] = None) -> None:
        super().__init__(f"execution reverted: {reason}")
        self.reason = reason
        self.data = data
