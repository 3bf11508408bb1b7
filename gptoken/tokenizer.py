from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import Literal

import numpy as np
import numpy.typing as npt
import regex as re

from gptoken import encoding as encodings
from gptoken.bpe import byte_pair_encode
from gptoken.byte_buffer import ByteBuffer
from gptoken.encoding import Encoding
from gptoken.errors import UnknownTokenError

AllowedSpecial = Collection[str] | Literal["all"]


def token_dtype(n_vocab: int):
    "Smallest unsigned numpy dtype holding every id of an n_vocab vocabulary."
    return np.uint16 if n_vocab <= 2**16 else np.uint32


def create_special_regex(special_tokens: Iterable[str]):
    """Alternation of the literal special tokens, longest first, or None if there are none."""
    special_tokens = sorted(special_tokens, key=len, reverse=True)
    if not special_tokens:
        return None
    return re.compile("|".join(map(re.escape, special_tokens)))


class Tokenizer:
    """
    Encoder/decoder over one Encoding.

    All state is derived once in ``__init__`` (this is where the rank table of a
    built-in encoding gets loaded) and never changes afterwards, so one instance
    can be shared between threads.
    """

    def __init__(self, encoding: Encoding):
        self.encoding = encoding
        self.encoder = encoding.mergeable_ranks()
        self.decoder: dict[int, ByteBuffer] = {rank: token for token, rank in self.encoder.items()}
        self.special_tokens_encoder = encoding.special_tokens
        self.special_tokens_decoder: dict[int, str] = {v: k for k, v in self.special_tokens_encoder.items()}
        self.pattern = encoding.pattern
        self.special_pattern = create_special_regex(self.special_tokens_encoder)
        self.n_vocab = encoding.n_vocab

    @classmethod
    def for_name(cls, encoding_name: str) -> Tokenizer:
        return cls(encodings.for_name(encoding_name))

    @classmethod
    def for_model(cls, model_name: str) -> Tokenizer:
        return cls(encodings.for_model(model_name))

    def __repr__(self):
        return f"<Tokenizer {self.encoding.name!r}>"

    @property
    def name(self) -> str:
        return self.encoding.name

    @property
    def eot_token(self) -> int:
        return self.special_tokens_encoder[encodings.ENDOFTEXT]

    # ------------- encode -------------

    def encode(self, text: str, allowed_special: AllowedSpecial = frozenset()) -> list[int]:
        """
        Encode ``text`` into token ids.

        Special-token literals are only emitted as special ids when they appear in
        ``allowed_special`` (or when it is ``"all"``); otherwise they are encoded
        like any other text. A single literal may be passed as a bare string.
        """
        if allowed_special == "all":
            allowed_special = self.special_tokens_encoder.keys()
        elif isinstance(allowed_special, str):
            allowed_special = {allowed_special}

        ret: list[int] = []
        start = 0
        while True:
            next_special = self._find_allowed_special(text, start, allowed_special)
            end = next_special.start() if next_special is not None else len(text)

            self._encode_ordinary_into(text[start:end], ret)

            if next_special is None:
                break
            ret.append(self.special_tokens_encoder[next_special.group()])
            start = next_special.end()
        return ret

    def encode_ordinary(self, text: str) -> list[int]:
        "Encode with every special-token literal treated as plain text."
        ret: list[int] = []
        self._encode_ordinary_into(text, ret)
        return ret

    def encode_to_numpy(self, text: str, allowed_special: AllowedSpecial = frozenset()) -> npt.NDArray:
        return np.array(self.encode(text, allowed_special), dtype=token_dtype(self.n_vocab))

    def encode_single_token(self, text_or_bytes: str | bytes) -> int:
        if isinstance(text_or_bytes, str):
            if text_or_bytes in self.special_tokens_encoder:
                return self.special_tokens_encoder[text_or_bytes]
            text_or_bytes = text_or_bytes.encode("utf-8")
        return self.encoder[text_or_bytes]

    def count(self, text: str, allowed_special: AllowedSpecial = frozenset()) -> int:
        return len(self.encode(text, allowed_special))

    def _find_allowed_special(self, text: str, start: int, allowed_special: Collection[str]):
        if not allowed_special or self.special_pattern is None:
            return None
        # A rejected candidate resumes the search one character after its start,
        # not after its end, so an allowed token overlapping it is still found.
        # Worst case is quadratic in the number of rejected candidates.
        start_find = start
        while True:
            match = self.special_pattern.search(text, start_find)
            if match is None:
                return None
            if match.group() in allowed_special:
                return match
            start_find = match.start() + 1

    def _encode_ordinary_into(self, segment: str, ret: list[int]) -> None:
        encoder = self.encoder
        for match in self.pattern.finditer(segment):
            piece = match.group().encode("utf-8")
            token = encoder.get(piece)
            if token is not None:
                ret.append(token)
            else:
                ret.extend(byte_pair_encode(piece, encoder))

    # ------------- decode -------------

    def decode_single_token_bytes(self, token: int) -> bytes:
        token_bytes = self.decoder.get(token)
        if token_bytes is not None:
            return bytes(token_bytes)
        special = self.special_tokens_decoder.get(token)
        if special is None:
            raise UnknownTokenError(token)
        # one byte per character, so ASCII markers round-trip whatever the text encoding
        return special.encode("latin-1", errors="replace")

    def decode_bytes(self, tokens: Iterable[int]) -> bytes:
        return b"".join(self.decode_single_token_bytes(int(token)) for token in tokens)

    def decode(self, tokens: Iterable[int]) -> str:
        """
        Decode token ids back into text.

        Bytes of all tokens are joined before UTF-8 decoding because a single
        character may be split over several tokens.
        """
        return self.decode_bytes(tokens).decode("utf-8", errors="replace")
