"""Exact ids against the published vocabularies. cl100k_base ships with the package; the others are skipped unless fetched."""
import numpy as np
import pytest

from gptoken import cli, token_count
from gptoken.chat_format import ChatFormat
from gptoken.errors import VocabularyNotFoundError
from gptoken.load import PACKAGE_DATA_DIR, resolve_rank_file
from gptoken.models import get_tokenizer
from gptoken.token_count import Message


def _installed(filename):
    try:
        resolve_rank_file(filename)
    except VocabularyNotFoundError:
        return False
    return True


requires_r50k = pytest.mark.skipif(not _installed("r50k_base.tiktoken"), reason="r50k_base rank file not installed")
requires_p50k = pytest.mark.skipif(not _installed("p50k_base.tiktoken"), reason="p50k_base rank file not installed")


@pytest.fixture
def cl100k():
    return get_tokenizer("cl100k_base")


def test_cl100k_ships_with_package(monkeypatch, tmp_path):
    monkeypatch.delenv("GPTOKEN_DATA_DIR", raising=False)
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))
    assert resolve_rank_file("cl100k_base.tiktoken") == PACKAGE_DATA_DIR / "cl100k_base.tiktoken"


@pytest.mark.parametrize(
    "text, ids",
    [
        ("Stop!", [10903, 0]),
        ("I'm", [40, 2846]),
        ("I'M", [40, 28703]),
        ("😊", [76460, 232]),
        ("Stop now.", [10903, 1457, 13]),
        ("I'll", [40, 3358]),
        ("can't", [4919, 956]),
        ("hello world", [15339, 1917]),
        ("😂😍", [76460, 224, 76460, 235]),
    ],
)
def test_cl100k_ids(cl100k, text, ids):
    assert cl100k.encode(text) == ids
    assert cl100k.decode(ids) == text


def test_cl100k_specials(cl100k):
    assert cl100k.n_vocab == 100277
    assert cl100k.encode("<|endoftext|>", allowed_special="all") == [100257]
    assert cl100k.encode("<|endofprompt|>", allowed_special={"<|endofprompt|>"}) == [100276]
    assert 100257 not in cl100k.encode("<|endoftext|>")
    assert cl100k.encode_to_numpy("hello world").dtype == np.uint32


def test_cl100k_is_cached(cl100k):
    assert get_tokenizer("cl100k_base") is cl100k
    assert get_tokenizer("CL100K_BASE") is cl100k


@requires_r50k
def test_r50k():
    r50k = get_tokenizer("r50k_base")
    assert r50k.encode("hello world") == [31373, 995]
    assert r50k.encode("<|endoftext|>", allowed_special="all") == [50256]
    assert r50k.n_vocab == 50257
    assert r50k.encode_to_numpy("hello world").dtype == np.uint16


@requires_p50k
def test_p50k_edit_specials():
    edit = get_tokenizer("p50k_edit")
    assert edit.encode("<|fim_prefix|>", allowed_special="all") == [50281]
    assert edit.encode("hello world") == get_tokenizer("p50k_base").encode("hello world")


MESSAGES = [
    Message("system", "You are a helpful, pattern-following assistant that translates corporate jargon into plain English."),
    Message("user", "New synergies will help drive top-line growth."),
    Message("assistant", "Things working well together will increase revenue."),
    Message("user", "Let's circle back when we have more bandwidth to touch base on opportunities for increased leverage."),
    Message("assistant", "Let's talk later when we're less busy about how to do better."),
    Message("user", "This late pivot means we don't have time to boil the ocean for the client deliverable."),
]


@pytest.mark.parametrize(
    "model, expected",
    [
        ("gpt-3.5-turbo-0301", 121),
        ("gpt-3.5-turbo-0613", 115),
        ("gpt-3.5-turbo-16k-0613", 115),
        ("gpt-4-0314", 115),
        ("gpt-4-0613", 115),
    ],
)
def test_chat_prompt_tokens(cl100k, model, expected):
    assert token_count.from_messages(MESSAGES, cl100k, ChatFormat.for_model(model)) == expected


def test_lines_joined(cl100k):
    assert token_count.from_lines_joined(["1", "2", "3"], cl100k) == 5
    assert token_count.from_lines_joined(["1", "2", "3"], cl100k) == cl100k.count("1\n2\n3")


def test_tokenize_files_keeps_input_order(tmp_path, cl100k):
    texts = ["hello world", "Stop now.", "", "can't"]
    paths = []
    for i, text in enumerate(texts):
        path = tmp_path / f"{i}.txt"
        path.write_text(text, encoding="utf-8")
        paths.append(str(path))

    ids = cli.tokenize_files(paths, "cl100k_base", num_workers=2)
    assert ids.dtype == np.uint32
    assert ids.tolist() == [t for text in texts for t in cl100k.encode(text)]


def test_leading_system_message_separator_costs_one_token(cl100k):
    chat_format = ChatFormat.for_model("gpt-4-0613")
    messages = [Message("system", "Be brief")]
    # "\n\n" after a letter is a token of its own in cl100k_base
    assert cl100k.count("Be brief\n\n") == cl100k.count("Be brief") + 1
    assert token_count.from_messages(messages, cl100k, chat_format) == 3 + 1 + cl100k.count("Be brief") + 1 + 3
