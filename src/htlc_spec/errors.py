"""HTLC spec error codes and exceptions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ErrorCategory(IntEnum):
    SUCCESS = 0x00
    VALIDATION = 0x01
    AUTHORIZATION = 0x02
    RESOURCE = 0x03
    STATE = 0x04
    INTERNAL = 0xFF


class ErrorCode(IntEnum):
    # Success
    SUCCESS = 0x0000

    # Validation
    INVALID_FORMAT = 0x0100
    INVALID_TYPE = 0x0102
    INVALID_AMOUNT = 0x0105
    INVALID_ADDRESS = 0x0106
    INVALID_PAYLOAD = 0x0107
    INVALID_SECRET = 0x0108
    INVALID_TIMELOCKS = 0x0109
    INVALID_IMMUTABLES = 0x010A
    CHAIN_MISMATCH = 0x010B

    # Authorization
    INVALID_CALLER = 0x0200
    NOT_OWNER = 0x0203
    FORBIDDEN = 0x0207

    # Resource
    INSUFFICIENT_BALANCE = 0x0300
    INSUFFICIENT_FEE = 0x0301
    OVERFLOW = 0x0304
    INSUFFICIENT_ESCROW_BALANCE = 0x0306
    INSUFFICIENT_ALLOWANCE = 0x0307

    # State
    ACCOUNT_NOT_FOUND = 0x0400
    ESCROW_NOT_FOUND = 0x0402
    ESCROW_WRONG_STATE = 0x0403
    ESCROW_EXISTS = 0x040A
    ORDER_NOT_FOUND = 0x040B
    ORDER_EXISTS = 0x040C
    FACTORY_NOT_FOUND = 0x040D
    FACTORY_EXISTS = 0x040E
    TOKEN_NOT_FOUND = 0x040F
    TOKEN_EXISTS = 0x0411
    INVALID_TIME = 0x0410

    # Internal
    INTERNAL_ERROR = 0xFF00
    NOT_IMPLEMENTED = 0xFF01
    UNKNOWN = 0xFFFF

    @property
    def category(self) -> ErrorCategory:
        return ErrorCategory(self.value >> 8)


@dataclass(frozen=True)
class SpecError(Exception):
    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.name}({self.code:#06x}): {self.message}"


# Allow Python's Exception machinery to set __traceback__/__context__/__cause__
# while keeping dataclass fields frozen (Python 3.13 contextlib compat).
_EXCEPTION_ATTRS = frozenset(("__traceback__", "__context__", "__cause__"))
_frozen_setattr = SpecError.__setattr__


def _spec_error_setattr(self: SpecError, name: str, value: object) -> None:
    if name in _EXCEPTION_ATTRS:
        object.__setattr__(self, name, value)
    else:
        _frozen_setattr(self, name, value)


SpecError.__setattr__ = _spec_error_setattr  # type: ignore[method-assign]
