"""SentencePiece vocabulary table and detokenizer."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable, Mapping, Optional

from errors import InvalidVocabEntryError

logger = logging.getLogger(__name__)

WORD_START_MARKER = "\u2581"
BLANK_TOKEN = "<blk>"

_FIELD_SPLIT = re.compile(r"\s+")


class Vocabulary:
    """Immutable id -> text fragment mapping with a distinguished blank id."""

    def __init__(self, tokens: Mapping[int, str], blank_id: int = 0) -> None:
        self._tokens = dict(tokens)
        self._blank_id = blank_id

    @classmethod
    def load(cls, path: Path) -> "Vocabulary":
        """Read ``token id`` lines from ``path`` into a new table.

        The word-start marker is rendered back to a literal space and the
        ``<blk>`` entry designates the blank id. Lines with fewer than two
        fields are skipped; an id that is not an integer raises
        :class:`InvalidVocabEntryError`.
        """
        content = Path(path).read_text(encoding="utf-8")
        return cls.parse(content.splitlines())

    @classmethod
    def parse(cls, lines: Iterable[str]) -> "Vocabulary":
        tokens: dict[int, str] = {}
        blank_id: Optional[int] = None
        for line in lines:
            parts = _FIELD_SPLIT.split(line.strip(), maxsplit=1)
            if len(parts) < 2:
                continue
            raw_token, raw_id = parts
            try:
                token_id = int(raw_id.strip())
            except ValueError:
                raise InvalidVocabEntryError(f"Invalid vocab ID: {raw_id.strip()}") from None
            if raw_token == BLANK_TOKEN:
                blank_id = token_id
            tokens[token_id] = raw_token.replace(WORD_START_MARKER, " ")
        if blank_id is None:
            logger.warning("Vocabulary has no %s entry, using id 0 as blank", BLANK_TOKEN)
            blank_id = 0
        return cls(tokens, blank_id)

    @property
    def blank_id(self) -> int:
        return self._blank_id

    @property
    def size(self) -> int:
        return len(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, token_id: object) -> bool:
        return token_id in self._tokens

    def get(self, token_id: int) -> Optional[str]:
        return self._tokens.get(token_id)

    def decode(self, token_ids: Iterable[int]) -> str:
        """Concatenate fragments for known ids and normalize whitespace."""
        pieces = [self._tokens[i] for i in token_ids if i in self._tokens]
        return " ".join("".join(pieces).split())
