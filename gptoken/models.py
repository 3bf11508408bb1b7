from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from enum import Enum

import regex as re

from gptoken import encoding as encodings
from gptoken.encoding import Encoding
from gptoken.errors import UnknownModelError
from gptoken.tokenizer import Tokenizer

logger = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 8

SHORT_VERSION_SUFFIX = re.compile(r".*-\d{4}$")
DATE_VERSION_SUFFIX = re.compile(r".*-\d{4}-\d{2}-\d{2}$")


class CompletionType(str, Enum):
    CHAT = "chat"
    TEXT = "text"


@dataclass(frozen=True)
class ModelType:
    model_name: str
    encoding_name: str
    max_tokens: int
    completion_type: CompletionType

    @property
    def encoding(self) -> Encoding:
        return encodings.for_name(self.encoding_name)

    @property
    def tokenizer(self) -> Tokenizer:
        return get_tokenizer(self.encoding_name)

    @property
    def chat_format(self):
        """
        Chat format of this model. Dated variants (-0301, -0613, ...) are not
        distinguished here; use ``ChatFormat.for_model`` with the full name for those.
        """
        from gptoken.chat_format import ChatFormat

        return ChatFormat.for_model(self.model_name)

    @classmethod
    def for_model(cls, model_name: str) -> ModelType:
        model = _for_model_exact(model_name)
        if model is not None:
            return model

        # drop a trailing version like -0613 or -2024-04-09
        stripped = None
        if SHORT_VERSION_SUFFIX.fullmatch(model_name):
            stripped = model_name[:-5]
        elif DATE_VERSION_SUFFIX.fullmatch(model_name):
            stripped = model_name[:-11]
        if stripped is not None:
            model = _for_model_exact(stripped)
            if model is not None:
                return model
        raise UnknownModelError(model_name)


CHAT = CompletionType.CHAT
TEXT = CompletionType.TEXT

# chat
GPT_4_TURBO = ModelType("gpt-4-turbo-preview", "cl100k_base", 128000, CHAT)
GPT_4 = ModelType("gpt-4", "cl100k_base", 8192, CHAT)
GPT_4_32K = ModelType("gpt-4-32k", "cl100k_base", 32768, CHAT)
GPT_3_5_TURBO = ModelType("gpt-3.5-turbo", "cl100k_base", 16384, CHAT)
GPT_3_5_TURBO_LEGACY = ModelType("gpt-3.5-turbo", "cl100k_base", 4096, CHAT)
GPT_3_5_TURBO_16K = ModelType("gpt-3.5-turbo-16k", "cl100k_base", 16384, CHAT)
# text
GPT_3_5_TURBO_INSTRUCT = ModelType("gpt-3.5-turbo-instruct", "cl100k_base", 4097, TEXT)
TEXT_DAVINCI_003 = ModelType("text-davinci-003", "p50k_base", 4097, TEXT)
TEXT_DAVINCI_002 = ModelType("text-davinci-002", "p50k_base", 4097, TEXT)
TEXT_DAVINCI_001 = ModelType("text-davinci-001", "r50k_base", 2049, TEXT)
TEXT_CURIE_001 = ModelType("text-curie-001", "r50k_base", 2049, TEXT)
TEXT_BABBAGE_001 = ModelType("text-babbage-001", "r50k_base", 2049, TEXT)
TEXT_ADA_001 = ModelType("text-ada-001", "r50k_base", 2049, TEXT)
DAVINCI = ModelType("davinci", "r50k_base", 2049, TEXT)
CURIE = ModelType("curie", "r50k_base", 2049, TEXT)
BABBAGE = ModelType("babbage", "r50k_base", 2049, TEXT)
ADA = ModelType("ada", "r50k_base", 2049, TEXT)
# code
CODE_DAVINCI_002 = ModelType("code-davinci-002", "p50k_base", 8001, TEXT)
# edit
TEXT_DAVINCI_EDIT_001 = ModelType("text-davinci-edit-001", "p50k_edit", 2049, TEXT)
CODE_DAVINCI_EDIT_001 = ModelType("code-davinci-edit-001", "p50k_edit", 2049, TEXT)
# embeddings
TEXT_EMBEDDING_ADA_002 = ModelType("text-embedding-ada-002", "cl100k_base", 8192, TEXT)

MODELS = [
    GPT_4_TURBO, GPT_4, GPT_4_32K, GPT_3_5_TURBO, GPT_3_5_TURBO_LEGACY, GPT_3_5_TURBO_16K,
    GPT_3_5_TURBO_INSTRUCT, TEXT_DAVINCI_003, TEXT_DAVINCI_002, TEXT_DAVINCI_001,
    TEXT_CURIE_001, TEXT_BABBAGE_001, TEXT_ADA_001, DAVINCI, CURIE, BABBAGE, ADA,
    CODE_DAVINCI_002, TEXT_DAVINCI_EDIT_001, CODE_DAVINCI_EDIT_001, TEXT_EMBEDDING_ADA_002,
]

SPECIAL_VARIANTS = {
    "gpt-3.5-turbo-0301": GPT_3_5_TURBO_LEGACY,
    "gpt-3.5-turbo-0613": GPT_3_5_TURBO_LEGACY,
    "gpt-4-turbo-preview": GPT_4_TURBO,
    "gpt-4-1106-preview": GPT_4_TURBO,
    "gpt-4-0125-preview": GPT_4_TURBO,
}


def _for_model_exact(model_name: str) -> ModelType | None:
    if model_name in SPECIAL_VARIANTS:
        return SPECIAL_VARIANTS[model_name]
    # first entry wins for names listed twice (gpt-3.5-turbo)
    for model in MODELS:
        if model.model_name == model_name:
            return model
    return None


@functools.lru_cache(maxsize=DEFAULT_CACHE_SIZE)
def _cached_tokenizer(encoding_name: str) -> Tokenizer:
    logger.debug("Building tokenizer for %s", encoding_name)
    return Tokenizer(encodings.for_name(encoding_name))


def get_tokenizer(encoding_name: str) -> Tokenizer:
    """Tokenizer for a built-in encoding, kept in a bounded LRU cache keyed by lower-cased name."""
    return _cached_tokenizer(encoding_name.lower())


def tokenizer_for_model(model_name: str) -> Tokenizer:
    return get_tokenizer(encodings.encoding_name_for_model(model_name))


def tokenizer_cache_info():
    return _cached_tokenizer.cache_info()


def clear_tokenizer_cache() -> None:
    _cached_tokenizer.cache_clear()
