import pytest

from gptoken import models
from gptoken.errors import UnknownModelError
from gptoken.models import CompletionType, ModelType


@pytest.mark.parametrize(
    "name, expected",
    [
        ("gpt-4", models.GPT_4),
        ("gpt-4-32k", models.GPT_4_32K),
        ("gpt-3.5-turbo-16k", models.GPT_3_5_TURBO_16K),
        ("text-davinci-edit-001", models.TEXT_DAVINCI_EDIT_001),
        ("ada", models.ADA),
    ],
)
def test_exact_names(name, expected):
    assert ModelType.for_model(name) is expected


def test_duplicate_name_resolves_to_first_entry():
    assert ModelType.for_model("gpt-3.5-turbo") is models.GPT_3_5_TURBO
    assert ModelType.for_model("gpt-3.5-turbo").max_tokens == 16384


@pytest.mark.parametrize(
    "name, expected",
    [
        ("gpt-3.5-turbo-0301", models.GPT_3_5_TURBO_LEGACY),
        ("gpt-3.5-turbo-0613", models.GPT_3_5_TURBO_LEGACY),
        ("gpt-4-1106-preview", models.GPT_4_TURBO),
        ("gpt-4-0125-preview", models.GPT_4_TURBO),
        ("gpt-4-turbo-preview", models.GPT_4_TURBO),
    ],
)
def test_special_variants(name, expected):
    assert ModelType.for_model(name) is expected


@pytest.mark.parametrize(
    "name, expected",
    [
        ("gpt-4-0613", models.GPT_4),
        ("gpt-4-32k-0314", models.GPT_4_32K),
        ("gpt-3.5-turbo-16k-0613", models.GPT_3_5_TURBO_16K),
        ("gpt-4-2024-04-09", models.GPT_4),
        ("gpt-3.5-turbo-1106", models.GPT_3_5_TURBO),
    ],
)
def test_version_suffix_is_stripped(name, expected):
    assert ModelType.for_model(name) is expected


@pytest.mark.parametrize("name", ["gpt-5", "gpt-4-06", "gpt-4-0613-extra", "davinci-2024-01", ""])
def test_unknown_models(name):
    with pytest.raises(UnknownModelError):
        ModelType.for_model(name)


def test_model_fields():
    model = models.TEXT_DAVINCI_003
    assert model.encoding_name == "p50k_base"
    assert model.encoding.name == "p50k_base"
    assert model.max_tokens == 4097
    assert model.completion_type is CompletionType.TEXT
    assert models.GPT_4.completion_type == "chat"


def test_every_model_names_a_builtin_encoding():
    from gptoken import encoding as encodings

    for model in models.MODELS:
        assert model.encoding_name in encodings.ENCODINGS


def test_chat_format_of_model():
    chat_format = models.GPT_4.chat_format
    assert chat_format.tokens_per_message == 3
    assert chat_format.supports_functions


def test_tokenizer_cache_is_bounded():
    assert models.tokenizer_cache_info().maxsize == models.DEFAULT_CACHE_SIZE
    models.clear_tokenizer_cache()
    assert models.tokenizer_cache_info().currsize == 0


def test_tokenizer_cache_ignores_name_case():
    models.clear_tokenizer_cache()
    lower = models.get_tokenizer("cl100k_base")
    assert models.get_tokenizer("CL100K_BASE") is lower
    assert models.get_tokenizer("Cl100k_Base") is lower
    assert models.tokenizer_cache_info().currsize == 1
    assert models.tokenizer_for_model("gpt-4") is lower
