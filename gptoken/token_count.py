"""
Token counting for plain text and chat requests.

Chat counts add the per-message, per-request and per-function surcharges of a
:class:`~gptoken.chat_format.ChatFormat` on top of the encoded text. Messages and
tools of any caller-side type are converted with adapter functions passed in by
the caller; without adapters they must already be :class:`Message` and
:class:`~gptoken.functions.Function`-like objects.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from gptoken.chat_format import ChatFormat
from gptoken.functions import Tool, generate_documentation
from gptoken.tokenizer import Tokenizer


@dataclass(frozen=True)
class FunctionCall:
    name: str = ""
    arguments: str = ""

    @property
    def is_present(self) -> bool:
        return bool(self.name)


FunctionCall.NONE = FunctionCall()


@dataclass(frozen=True)
class Message:
    role: str = ""
    content: str = ""
    name: str = ""
    function_call: FunctionCall = FunctionCall.NONE

    @classmethod
    def adapter(
        cls,
        role_of: Callable[[Any], Optional[str]],
        content_of: Callable[[Any], Optional[str]],
        name_of: Callable[[Any], Optional[str]] = lambda _: "",
        function_call_of: Callable[[Any], Optional[FunctionCall]] = lambda _: None,
    ) -> Callable[[Any], Message]:
        def adapt(obj: Any) -> Message:
            return cls(
                role_of(obj) or "",
                content_of(obj) or "",
                name_of(obj) or "",
                function_call_of(obj) or FunctionCall.NONE,
            )
        return adapt


def from_string(text: str, tokenizer: Tokenizer) -> int:
    return len(tokenizer.encode(text))


def from_lines_joined(lines: Iterable[str], tokenizer: Tokenizer) -> int:
    """Token count of the lines joined with newlines, one newline token between lines."""
    token_count = sum(from_string(line, tokenizer) + 1 for line in lines)
    return max(0, token_count - 1)


def from_messages(
    messages: Sequence[Any],
    tokenizer: Tokenizer,
    chat_format: ChatFormat,
    tools: Sequence[Any] = (),
    message_adapter: Optional[Callable[[Any], Message]] = None,
    tool_adapter: Optional[Callable[[Any], Tool]] = None,
) -> int:
    """Prompt tokens of a chat request made of ``messages`` and optional ``tools``."""
    tools_prompt = ""
    if tools:
        adapted_tools = [tool_adapter(t) for t in tools] if tool_adapter else list(tools)
        tools_prompt = generate_documentation(adapted_tools)

    token_count = 0
    for index, raw in enumerate(messages):
        message = message_adapter(raw) if message_adapter else raw
        token_count += chat_format.tokens_per_message
        role = message.role
        if role:
            token_count += from_string(role, tokenizer)
        function_call = message.function_call
        # a function-call message carries no content of its own
        content = "" if function_call.is_present else message.content or ""
        # a leading system message always gets the separator, followed by the
        # tool declarations if there are any
        if index == 0 and role == "system" and not function_call.is_present:
            content += "\n\n" + tools_prompt
            tools_prompt = ""
        token_count += from_string(content, tokenizer)
        if function_call.is_present:
            token_count += from_string(function_call.name, tokenizer)
            token_count += from_string(function_call.arguments, tokenizer)
            token_count += chat_format.tokens_per_function_call

    # every reply is primed with <im_start>assistant
    token_count += chat_format.tokens_per_request

    if tools:
        if tools_prompt:
            token_count += chat_format.tokens_per_message
            token_count += from_string("system", tokenizer)
            token_count += from_string(tools_prompt, tokenizer)
        token_count += chat_format.tokens_for_functions
    return token_count
