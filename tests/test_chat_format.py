import pytest

from gptoken import encoding as encodings
from gptoken.chat_format import ChatFormat
from gptoken.errors import UnknownModelError, UnsupportedFeatureError


@pytest.mark.parametrize(
    "model, per_message, per_request, functions",
    [
        ("gpt-3.5-turbo-0301", 4, 3, None),
        ("gpt-4-0314", 3, 3, None),
        ("gpt-4-32k-0314", 3, 3, None),
        ("gpt-3.5-turbo-0613", 3, 3, -1),
        ("gpt-3.5-turbo-16k-0613", 3, 3, -1),
        ("gpt-4-0613", 3, 3, -1),
        ("gpt-4-32k-0613", 3, 3, -1),
    ],
)
def test_dated_models(model, per_message, per_request, functions):
    chat_format = ChatFormat.for_model(model)
    assert chat_format.tokens_per_message == per_message
    assert chat_format.tokens_per_request == per_request
    assert chat_format.functions_overhead == functions
    assert chat_format.tokens_per_function_call == 3
    assert chat_format.encoding is encodings.CL100K_BASE


@pytest.mark.parametrize(
    "alias, target",
    [
        ("gpt-3.5-turbo", "gpt-3.5-turbo-0613"),
        ("gpt-3.5-turbo-16k", "gpt-4-0613"),
        ("gpt-4", "gpt-4-0613"),
        ("gpt-4-32k", "gpt-4-0613"),
    ],
)
def test_undated_names_follow_latest_snapshot(alias, target):
    assert ChatFormat.for_model(alias) == ChatFormat.for_model(target)


def test_functions_unsupported_before_0613():
    chat_format = ChatFormat.for_model("gpt-4-0314")
    assert not chat_format.supports_functions
    with pytest.raises(UnsupportedFeatureError):
        chat_format.tokens_for_functions


def test_functions_overhead():
    assert ChatFormat.for_model("gpt-4-0613").tokens_for_functions == -1


@pytest.mark.parametrize("model", ["text-davinci-003", "gpt-4-turbo-preview", "gpt-5"])
def test_models_without_chat_format(model):
    with pytest.raises(UnknownModelError):
        ChatFormat.for_model(model)
