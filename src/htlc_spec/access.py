"""Access gate for the public escrow paths."""

from __future__ import annotations

from .types import ChainState


class AccessGate:
    """Capability check: may `principal` take the public paths?"""

    def has_access(self, state: ChainState, principal: int) -> bool:
        raise NotImplementedError


class TokenAccessGate(AccessGate):
    """Any holder of a non-zero balance of the access token passes.

    The credential is an ordinary fungible token, so it can be handed out or
    traded without touching the escrows.
    """

    def __init__(self, access_token: int):
        self.access_token = access_token

    def has_access(self, state: ChainState, principal: int) -> bool:
        token = state.tokens.get(self.access_token)
        if token is None:
            return False
        return token.balance_of(principal) > 0


def gate_for(access_token: int) -> AccessGate:
    return TokenAccessGate(access_token)
