"""Adapt the PyYAML scanner to the token model of the metadata state machine.

``yaml.scan`` yields low-level tokens (``BlockMappingStartToken``,
``KeyToken``, ``ScalarToken``, ``BlockEndToken``, ...) without building
any value tree. Tokens the state machine does not look at (values, entries,
anchors, aliases, tags, directives) are dropped here.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterator

import yaml

from ..engine.types import ContainerStyle, MetadataBlockError, Token, TokenType

_SIMPLE_TOKENS: dict[type, TokenType] = {
    yaml.StreamStartToken: TokenType.STREAM_START,
    yaml.StreamEndToken: TokenType.STREAM_END,
    yaml.DocumentStartToken: TokenType.DOCUMENT_START,
    yaml.DocumentEndToken: TokenType.DOCUMENT_END,
    yaml.FlowMappingEndToken: TokenType.MAPPING_END,
    yaml.FlowSequenceEndToken: TokenType.SEQUENCE_END,
    yaml.BlockEndToken: TokenType.BLOCK_END,
    yaml.KeyToken: TokenType.KEY,
}

_CONTAINER_STARTS: dict[type, tuple[TokenType, ContainerStyle]] = {
    yaml.BlockMappingStartToken: (TokenType.MAPPING_START, ContainerStyle.BLOCK),
    yaml.FlowMappingStartToken: (TokenType.MAPPING_START, ContainerStyle.FLOW),
    yaml.BlockSequenceStartToken: (TokenType.SEQUENCE_START, ContainerStyle.BLOCK),
    yaml.FlowSequenceStartToken: (TokenType.SEQUENCE_START, ContainerStyle.FLOW),
}


def convert_token(raw: yaml.Token) -> Token | None:
    """Convert one PyYAML token; None for token types the state machine ignores."""
    line = raw.start_mark.line if raw.start_mark is not None else 0

    if isinstance(raw, yaml.ScalarToken):
        return Token(TokenType.SCALAR, text=raw.value, line=line)

    token_type = _SIMPLE_TOKENS.get(type(raw))
    if token_type is not None:
        return Token(token_type, line=line)

    start = _CONTAINER_STARTS.get(type(raw))
    if start is not None:
        token_type, style = start
        return Token(token_type, line=line, style=style)

    return None


def iter_yaml_tokens(text: str, line_offset: int = 0) -> Iterator[Token]:
    """Yield state-machine tokens for a YAML text.

    Token lines are 0-based and shifted by ``line_offset``.

    Raises:
        MetadataBlockError: If the scanner rejects the text. Tokens before the
            error have already been yielded.
    """
    try:
        for raw in yaml.scan(text, Loader=yaml.SafeLoader):
            token = convert_token(raw)
            if token is None:
                continue
            if line_offset:
                token = replace(token, line=token.line + line_offset)
            yield token
    except yaml.MarkedYAMLError as err:
        line = err.problem_mark.line + line_offset if err.problem_mark is not None else None
        raise MetadataBlockError(f"Invalid YAML metadata: {err.problem or err}", line=line) from err
    except yaml.YAMLError as err:
        raise MetadataBlockError(f"Invalid YAML metadata: {err}") from err
