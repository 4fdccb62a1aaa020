from __future__ import annotations

from .types import ContainerKind, Token, TokenStreamError, TokenType

_STARTS = {
    TokenType.MAPPING_START: ContainerKind.MAPPING,
    TokenType.SEQUENCE_START: ContainerKind.SEQUENCE,
}

_ENDS = frozenset({TokenType.MAPPING_END, TokenType.SEQUENCE_END, TokenType.BLOCK_END})


class DepthTracker:
    """Track mapping/sequence nesting from container start and end tokens.

    End tokens are resolved against the container stack rather than their own
    type: the tokenizer reports a block mapping and a block sequence closing
    with the same BLOCK_END token.
    """

    def __init__(self) -> None:
        self._stack: list[ContainerKind] = []
        self.mapping_depth = 0
        self.sequence_depth = 0

    def reset(self) -> None:
        self._stack.clear()
        self.mapping_depth = 0
        self.sequence_depth = 0

    def on_token(self, token: Token) -> ContainerKind | None:
        """Update depths for ``token``; return the container kind popped, if any."""
        kind = _STARTS.get(token.type)
        if kind is not None:
            self._stack.append(kind)
            if kind is ContainerKind.MAPPING:
                self.mapping_depth += 1
            else:
                self.sequence_depth += 1
            return None

        if token.type not in _ENDS:
            return None

        if not self._stack:
            raise TokenStreamError(
                f"{token.type.value} at line {token.line + 1} closes a container that was never opened"
            )
        popped = self._stack.pop()
        if popped is ContainerKind.MAPPING:
            self.mapping_depth -= 1
        else:
            self.sequence_depth -= 1
        return popped
