from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Mapping
from types import MappingProxyType

import regex as re

from gptoken.byte_buffer import ByteBuffer
from gptoken.errors import ConfigurationError, UnknownEncodingError, UnknownModelError
from gptoken.load import load_rank_file, resolve_rank_file

logger = logging.getLogger(__name__)

ENDOFTEXT = "<|endoftext|>"
FIM_PREFIX = "<|fim_prefix|>"
FIM_MIDDLE = "<|fim_middle|>"
FIM_SUFFIX = "<|fim_suffix|>"
ENDOFPROMPT = "<|endofprompt|>"

CL100K_PATTERN = r"""(?i:'s|'t|'re|'ve|'m|'ll|'d)|[^\r\n\p{L}\p{N}]?\p{L}+|\p{N}{1,3}| ?[^\s\p{L}\p{N}]+[\r\n]*|\s*[\r\n]+|\s+(?!\S)|\s+"""
GPT2_PATTERN = r"""'s|'t|'re|'ve|'m|'ll|'d| ?\p{L}+| ?\p{N}+| ?[^\s\p{L}\p{N}]+|\s+(?!\S)|\s+"""


class LazyRankTable:
    """
    Rank table read from a file on first use.

    The first caller loads under a lock; later callers see either nothing or the
    complete table, never a partially filled one.
    """

    def __init__(
        self,
        filename: str | os.PathLike,
        loader: Callable[[str | os.PathLike], dict[ByteBuffer, int]] | None = None,
    ):
        self.filename = filename
        self._loader = loader
        self._ranks: Mapping[ByteBuffer, int] | None = None
        self._lock = threading.Lock()

    @property
    def loaded(self) -> bool:
        return self._ranks is not None

    def get(self) -> Mapping[ByteBuffer, int]:
        ranks = self._ranks
        if ranks is None:
            with self._lock:
                ranks = self._ranks
                if ranks is None:
                    loader = self._loader or load_rank_file
                    path = resolve_rank_file(self.filename)
                    logger.info("Loading rank table from %s", path)
                    ranks = MappingProxyType(loader(path))
                    self._ranks = ranks
        return ranks


class Encoding:
    """
    A vocabulary: mergeable ranks, special tokens and the pre-segmentation pattern.

    Ranks come either from ``mergeable_ranks`` directly or from a (possibly shared)
    LazyRankTable, which reads its file the first time :meth:`mergeable_ranks` runs.
    """

    def __init__(
        self,
        name: str,
        pat_str: str,
        special_tokens: Mapping[str, int],
        mergeable_ranks: Mapping[bytes, int] | None = None,
        rank_table: LazyRankTable | None = None,
        n_vocab: int | None = None,
    ):
        if (mergeable_ranks is None) == (rank_table is None):
            raise ValueError("Exactly one of mergeable_ranks and rank_table must be given")
        self.name = name
        self.pat_str = pat_str
        self.pattern = re.compile(pat_str)
        self.special_tokens = MappingProxyType(dict(special_tokens))
        self.explicit_n_vocab = n_vocab
        self._rank_table = rank_table
        self._ranks = None
        self._checked = False
        self._lock = threading.Lock()
        if mergeable_ranks is not None:
            self._ranks = MappingProxyType({ByteBuffer.of(k): v for k, v in mergeable_ranks.items()})

    def __repr__(self):
        return f"<Encoding {self.name!r}>"

    def __reduce__(self):
        # built-ins unpickle to the module singleton of the receiving process
        if ENCODINGS.get(self.name) is self:
            return for_name, (self.name,)
        if self._rank_table is not None:
            return _rebuild, (self.name, self.pat_str, dict(self.special_tokens), None, self.rank_file, self.explicit_n_vocab)
        ranks = {bytes(k): v for k, v in self._ranks.items()}
        return _rebuild, (self.name, self.pat_str, dict(self.special_tokens), ranks, None, self.explicit_n_vocab)

    def mergeable_ranks(self) -> Mapping[ByteBuffer, int]:
        ranks = self._ranks if self._ranks is not None else self._rank_table.get()
        if not self._checked:
            with self._lock:
                if not self._checked:
                    self._check(ranks)
                    self._checked = True
        return ranks

    def _check(self, ranks: Mapping[ByteBuffer, int]) -> None:
        rank_values = set(ranks.values())
        if len(rank_values) != len(ranks):
            raise ConfigurationError(f"{self.name}: mergeable ranks are not unique")
        for token, token_id in self.special_tokens.items():
            if token_id in rank_values:
                raise ConfigurationError(f"{self.name}: special token {token!r} id {token_id} collides with a rank")
        missing = [b for b in range(256) if bytes([b]) not in ranks]
        if missing:
            raise ConfigurationError(f"{self.name}: {len(missing)} single-byte tokens missing from mergeable ranks")
        if self.explicit_n_vocab is not None:
            max_token = max(rank_values | set(self.special_tokens.values()))
            if max_token + 1 != self.explicit_n_vocab:
                raise ConfigurationError(f"{self.name}: expected n_vocab {self.explicit_n_vocab}, got {max_token + 1}")

    def with_special_tokens(self, name: str, special_tokens: Mapping[str, int]) -> Encoding:
        """Same ranks and pattern under a different special-token table."""
        if self._rank_table is not None:
            return Encoding(name, self.pat_str, special_tokens, rank_table=self._rank_table)
        return Encoding(name, self.pat_str, special_tokens, mergeable_ranks=self._ranks)

    @property
    def rank_file(self) -> str | None:
        "Name of the rank file backing this encoding, None for in-memory tables."
        return str(self._rank_table.filename) if self._rank_table is not None else None

    def special_tokens_set(self) -> frozenset[str]:
        return frozenset(self.special_tokens)

    @property
    def max_token_value(self) -> int:
        return max(max(self.mergeable_ranks().values()), max(self.special_tokens.values(), default=0))

    @property
    def n_vocab(self) -> int:
        return self.max_token_value + 1


def _rebuild(name, pat_str, special_tokens, mergeable_ranks, rank_file, n_vocab):
    if mergeable_ranks is not None:
        return Encoding(name, pat_str, special_tokens, mergeable_ranks=mergeable_ranks, n_vocab=n_vocab)
    return Encoding(name, pat_str, special_tokens, rank_table=LazyRankTable(rank_file), n_vocab=n_vocab)


CL100K_BASE = Encoding(
    "cl100k_base",
    CL100K_PATTERN,
    {
        ENDOFTEXT: 100257,
        FIM_PREFIX: 100258,
        FIM_MIDDLE: 100259,
        FIM_SUFFIX: 100260,
        ENDOFPROMPT: 100276,
    },
    rank_table=LazyRankTable("cl100k_base.tiktoken"),
    n_vocab=100277,
)

P50K_BASE = Encoding(
    "p50k_base",
    GPT2_PATTERN,
    {ENDOFTEXT: 50256},
    rank_table=LazyRankTable("p50k_base.tiktoken"),
    n_vocab=50281,
)

P50K_EDIT = P50K_BASE.with_special_tokens(
    "p50k_edit",
    {ENDOFTEXT: 50256, FIM_PREFIX: 50281, FIM_MIDDLE: 50282, FIM_SUFFIX: 50283},
)

R50K_BASE = Encoding(
    "r50k_base",
    GPT2_PATTERN,
    {ENDOFTEXT: 50256},
    rank_table=LazyRankTable("r50k_base.tiktoken"),
    n_vocab=50257,
)

ENCODINGS = {e.name: e for e in (CL100K_BASE, P50K_BASE, P50K_EDIT, R50K_BASE)}

RANK_FILES = sorted({e.rank_file for e in ENCODINGS.values() if e.rank_file})

MODEL_TO_ENCODING = {
    # chat
    "gpt-4": "cl100k_base",
    "gpt-3.5-turbo": "cl100k_base",
    # text
    "text-davinci-003": "p50k_base",
    "text-davinci-002": "p50k_base",
    "text-davinci-001": "r50k_base",
    "text-curie-001": "r50k_base",
    "text-babbage-001": "r50k_base",
    "text-ada-001": "r50k_base",
    "davinci": "r50k_base",
    "curie": "r50k_base",
    "babbage": "r50k_base",
    "ada": "r50k_base",
    # code
    "code-davinci-002": "p50k_base",
    "code-davinci-001": "p50k_base",
    "code-cushman-002": "p50k_base",
    "code-cushman-001": "p50k_base",
    "davinci-codex": "p50k_base",
    "cushman-codex": "p50k_base",
    # edit
    "text-davinci-edit-001": "p50k_edit",
    "code-davinci-edit-001": "p50k_edit",
    # embeddings
    "text-embedding-ada-002": "cl100k_base",
    # old embeddings
    "text-similarity-davinci-001": "r50k_base",
    "text-similarity-curie-001": "r50k_base",
    "text-similarity-babbage-001": "r50k_base",
    "text-similarity-ada-001": "r50k_base",
    "text-search-davinci-doc-001": "r50k_base",
    "text-search-curie-doc-001": "r50k_base",
    "text-search-babbage-doc-001": "r50k_base",
    "text-search-ada-doc-001": "r50k_base",
    "code-search-babbage-code-001": "r50k_base",
    "code-search-ada-code-001": "r50k_base",
}

# checked in order, first match wins
MODEL_PREFIX_TO_ENCODING = {
    "gpt-4-": "cl100k_base",
    "gpt-3.5-turbo-": "cl100k_base",
}


def for_name(encoding_name: str) -> Encoding:
    try:
        return ENCODINGS[encoding_name.lower()]
    except KeyError:
        raise UnknownEncodingError(encoding_name) from None


def encoding_name_for_model(model_name: str) -> str:
    if model_name in MODEL_TO_ENCODING:
        return MODEL_TO_ENCODING[model_name]
    for prefix, encoding_name in MODEL_PREFIX_TO_ENCODING.items():
        if model_name.startswith(prefix):
            return encoding_name
    raise UnknownModelError(model_name)


def for_model(model_name: str) -> Encoding:
    return for_name(encoding_name_for_model(model_name))


def list_encoding_names() -> list[str]:
    return list(ENCODINGS)
