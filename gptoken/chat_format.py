from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from gptoken import encoding as encodings
from gptoken.encoding import Encoding
from gptoken.errors import UnknownModelError, UnsupportedFeatureError


@dataclass(frozen=True)
class ChatFormat:
    """
    Fixed token surcharges a chat model adds around the encoded message text.

    ``functions_overhead`` is None for models that predate function calling.
    """

    encoding: Encoding
    tokens_per_message: int
    tokens_per_request: int
    functions_overhead: Optional[int]
    tokens_per_function_call: int

    @property
    def tokens_for_functions(self) -> int:
        if self.functions_overhead is None:
            raise UnsupportedFeatureError("Functions aren't supported by this model")
        return self.functions_overhead

    @property
    def supports_functions(self) -> bool:
        return self.functions_overhead is not None

    @classmethod
    def for_model(cls, model_name: str) -> ChatFormat:
        if model_name == "gpt-3.5-turbo":
            return cls.for_model("gpt-3.5-turbo-0613")
        if model_name in ("gpt-3.5-turbo-16k", "gpt-4", "gpt-4-32k"):
            return cls.for_model("gpt-4-0613")
        if model_name == "gpt-3.5-turbo-0301":
            return cls(encodings.for_model(model_name), 4, 3, None, 3)
        if model_name in ("gpt-4-0314", "gpt-4-32k-0314"):
            return cls(encodings.for_model(model_name), 3, 3, None, 3)
        if model_name in ("gpt-3.5-turbo-0613", "gpt-3.5-turbo-16k-0613", "gpt-4-0613", "gpt-4-32k-0613"):
            return cls(encodings.for_model(model_name), 3, 3, -1, 3)
        raise UnknownModelError(model_name)
