"""Completion decoding, prefix filtering and priority ordering."""
import pytest

from ironyd.modules.core.completion import (
    PUNCTUATION,
    MatchStyle,
    decode_candidate,
    iter_candidates,
    prefix_matcher,
    sort_by_priority,
)
from ironyd.modules.core.engine import Availability, ChunkKind, CompletionChunk, CompletionRecord

K = ChunkKind


def record(*chunks, priority=50, availability=Availability.AVAILABLE, brief=""):
    return CompletionRecord(
        priority=priority,
        availability=availability,
        brief_comment=brief,
        chunks=[CompletionChunk(kind, text) for kind, text in chunks],
    )


def named(name, **kwargs):
    return record((K.TYPED_TEXT, name), **kwargs)


def test_decode_function_with_placeholders():
    """A function candidate yields prototype, post-completion text and spans."""
    candidate = decode_candidate(record(
        (K.TYPED_TEXT, "add"),
        (K.LEFT_PAREN, ""),
        (K.PLACEHOLDER, "int x"),
        (K.COMMA, ""),
        (K.PLACEHOLDER, "int y"),
        (K.RIGHT_PAREN, ""),
    ))
    assert candidate.typed_text == "add"
    assert candidate.prototype == "add(int x, int y)"
    assert candidate.annotation_start == 3
    assert candidate.post_completion_text == "(int x, int y)"
    assert candidate.placeholder_spans == [1, 6, 8, 13]
    assert candidate.post_completion_text[1:6] == "int x"
    assert candidate.post_completion_text[8:13] == "int y"


def test_result_type_is_kept_out_of_prototype():
    """Result type is reported separately and informative text only joins the prototype."""
    candidate = decode_candidate(record(
        (K.RESULT_TYPE, "std::size_t"),
        (K.TYPED_TEXT, "size"),
        (K.LEFT_PAREN, ""),
        (K.RIGHT_PAREN, ""),
        (K.INFORMATIVE, " const"),
    ))
    assert candidate.result_type == "std::size_t"
    assert candidate.prototype == "size() const"
    assert candidate.post_completion_text == "()"


def test_text_before_typed_text_shifts_annotation_start():
    """Text ahead of the typed text moves the annotation start."""
    candidate = decode_candidate(record(
        (K.TEXT, "template "),
        (K.TYPED_TEXT, "vector"),
        (K.LEFT_ANGLE, ""),
        (K.PLACEHOLDER, "class T"),
        (K.RIGHT_ANGLE, ""),
    ))
    assert candidate.prototype == "template vector<class T>"
    assert candidate.annotation_start == len("template vector")
    assert candidate.post_completion_text == "<class T>"
    assert candidate.placeholder_spans == [1, 8]


def test_optional_chunks_are_dropped():
    """Optional chunks contribute nothing."""
    candidate = decode_candidate(record(
        (K.TYPED_TEXT, "f"),
        (K.LEFT_PAREN, ""),
        (K.PLACEHOLDER, "int a"),
        (K.OPTIONAL, ", int b = 0"),
        (K.RIGHT_PAREN, ""),
    ))
    assert candidate.prototype == "f(int a)"
    assert candidate.post_completion_text == "(int a)"


def test_current_parameter_records_a_span():
    """Current-parameter chunks are spanned like placeholders."""
    candidate = decode_candidate(record(
        (K.TYPED_TEXT, "g"),
        (K.LEFT_PAREN, ""),
        (K.CURRENT_PARAMETER, "char c"),
        (K.RIGHT_PAREN, ""),
    ))
    assert candidate.placeholder_spans == [1, 7]


def test_only_first_typed_text_latches():
    """A second typed-text chunk goes into the post-completion text."""
    candidate = decode_candidate(record(
        (K.TYPED_TEXT, "first"),
        (K.TYPED_TEXT, "second"),
    ))
    assert candidate.typed_text == "first"
    assert candidate.annotation_start == len("first")
    assert candidate.post_completion_text == "second"


def test_record_without_typed_text_is_skipped():
    assert decode_candidate(record((K.TEXT, "operator"), (K.PLACEHOLDER, "x"))) is None


def test_not_available_is_never_decoded():
    """Not-available records are skipped under every match style."""
    assert decode_candidate(named("hidden", availability=Availability.NOT_AVAILABLE)) is None
    records = [
        named("hidden", availability=Availability.NOT_AVAILABLE),
        named("shown"),
    ]
    for style in MatchStyle:
        names = [c.typed_text for c in iter_candidates(records, "", style)]
        assert names == ["shown"]
        assert list(iter_candidates(records, "hid", style)) == []


@pytest.mark.parametrize(
    "prefix, style, text, expected",
    [
        ("foo", MatchStyle.CASE_INSENSITIVE, "FooBar", True),
        ("foo", MatchStyle.EXACT, "FooBar", False),
        ("Foo", MatchStyle.SMART_CASE, "fooBar", False),
        ("Foo", MatchStyle.SMART_CASE, "FooBar", True),
        ("foo", MatchStyle.SMART_CASE, "FooBar", True),
        ("", MatchStyle.EXACT, "anything", True),
        ("bar", MatchStyle.CASE_INSENSITIVE, "FooBar", False),
    ],
)
def test_prefix_matcher(prefix, style, text, expected):
    """Prefix matching under each style."""
    assert prefix_matcher(prefix, style)(text) is expected


def test_iter_candidates_preserves_order():
    records = [named("beta"), named("alpha"), named("bravo")]
    assert [c.typed_text for c in iter_candidates(records, "b")] == ["beta", "bravo"]


def test_sort_by_priority_puts_best_first_and_is_stable():
    """Lower priority sorts first; ties keep engine order."""
    records = [named("c", priority=30), named("a", priority=10), named("b", priority=30)]
    assert [r.chunks[0].text for r in sort_by_priority(records)] == ["a", "c", "b"]


def test_candidate_sexp_layout():
    """Candidate serialization field order and quoting."""
    candidate = decode_candidate(record(
        (K.RESULT_TYPE, "int"),
        (K.TYPED_TEXT, "max"),
        (K.LEFT_PAREN, ""),
        (K.PLACEHOLDER, "int a"),
        (K.RIGHT_PAREN, ""),
        priority=12,
        availability=Availability.DEPRECATED,
        brief='Returns the "larger" value',
    ))
    assert candidate.to_sexp() == (
        '("max" 12 "int" "Returns the \\"larger\\" value" "max(int a)" 3 '
        '("(int a)" 1 6) deprecated)'
    )


def test_match_style_parse():
    assert MatchStyle.parse("smart-case") is MatchStyle.SMART_CASE
    assert MatchStyle.parse("EXACT") is MatchStyle.EXACT
    with pytest.raises(ValueError):
        MatchStyle.parse("fuzzy")


@pytest.mark.parametrize("kind, literal", sorted(PUNCTUATION.items(), key=lambda item: item[0].value))
def test_punctuation_feeds_prototype_and_post_completion(kind, literal):
    """Every punctuation chunk renders its fixed literal on both sides of the latch."""
    candidate = decode_candidate(record(
        (kind, ""),
        (K.TYPED_TEXT, "f"),
        (kind, ""),
        (K.PLACEHOLDER, "a"),
    ))
    assert candidate.prototype == literal + "f" + literal + "a"
    assert candidate.annotation_start == len(literal) + 1
    assert candidate.post_completion_text == literal + "a"
    assert candidate.placeholder_spans == [len(literal), len(literal) + 1]


def test_punctuation_literals():
    assert len(PUNCTUATION) == 14
    assert PUNCTUATION[K.COMMA] == ", "
    assert PUNCTUATION[K.HORIZONTAL_SPACE] == " "
    assert PUNCTUATION[K.VERTICAL_SPACE] == "\n"
    assert {PUNCTUATION[k] for k in (K.LEFT_BRACKET, K.RIGHT_BRACKET, K.LEFT_BRACE, K.RIGHT_BRACE)} == {
        "[", "]", "{", "}",
    }
    assert (PUNCTUATION[K.COLON], PUNCTUATION[K.SEMI_COLON], PUNCTUATION[K.EQUAL]) == (":", ";", "=")
