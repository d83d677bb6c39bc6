import sys

import pytest

from argscaffold import Token, TokenizationError, build_definition, tokenize
from argscaffold.bind import match, split_value


def test_tokenize_none(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["prog", "-a", "b"])
    assert tokenize(None) == ["-a", "b"]


def test_tokenize_string():
    assert tokenize('-title "a b" c') == ["-title", "a b", "c"]


@pytest.mark.parametrize(
    "text,expected",
    [
        (r"-out C:\temp\out.txt", ["-out", r"C:\temp\out.txt"]),
        ("-name O'Brien", ["-name", "O'Brien"]),
        ("-title \"it's here\"", ["-title", "it's here"]),
        ("a # b", ["a", "#", "b"]),
    ],
)
def test_tokenize_literal_characters(text, expected):
    assert tokenize(text) == expected


def test_tokenize_iterable():
    assert tokenize(("-n", 5)) == ["-n", "5"]  # pyright: ignore[reportArgumentType]


def test_tokenize_unterminated():
    with pytest.raises(TokenizationError) as e:
        tokenize('-a "b')
    assert e.value.text == '-a "b'
    assert str(e.value).startswith("Unable to tokenize")


@pytest.mark.parametrize(
    "name,expected",
    [
        ("name", ("name", None)),
        ("name:Ada", ("name", "Ada")),
        ("name=Ada", ("name", "Ada")),
        ("name=a:b", ("name", "a:b")),
        ("name:", ("name", "")),
        (":name", (":name", None)),
    ],
)
def test_split_value(name, expected):
    assert split_value(name, (":", "=")) == expected


def test_token():
    token = Token(keyword="-verbose", index=2)
    assert token.is_switch
    assert not Token(keyword="-verbose", value="false").is_switch
    assert not Token(value="x").is_switch


class Media:
    source: str = ""
    force: bool = False


def test_match_result():
    result = match(build_definition(Media), ["-force", "-source", "a.mp4"])
    assert result.action is None
    assert dict(result) == {
        "force": Token(keyword="-force", index=0),
        "source": Token(keyword="-source", value="a.mp4", index=1),
    }
    source = build_definition(Media).find_argument("source")
    assert source is not None
    assert source in result
    assert result.get(source) == Token(keyword="-source", value="a.mp4", index=1)


def test_match_option_value_looks_like_option():
    result = match(build_definition(Media), ["-source", "-force"])
    assert dict(result)["source"].value == "-force"
    assert "force" not in dict(result)
