from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from flexparse import (
    Body,
    Default,
    Delegate,
    Diagnostic,
    EmptyTokenStream,
    ErrorCode,
    Fail,
    Failure,
    Grammar,
    GrammarError,
    Node,
    ParseError,
    Parser,
    Position,
    Raw,
    Rule,
    Span,
    Token,
    TokenCursor,
    alt,
    many,
    n,
    t,
)
from flexparse.diagnostics import EXPECTED_TOKEN, NO_ALTERNATIVE, UNEXPECTED_TOKEN

BAD = ErrorCode("T001", "bad input", "nothing matched")
INNER = ErrorCode("T002", "inner", "inner failed")


def toks(text: str, *, file: str = "t") -> list[Token]:
    out: list[Token] = []
    offset = 0
    for word in text.split():
        start = Position(file, 1, offset + 1, offset)
        end = Position(file, 1, offset + len(word) + 1, offset + len(word))
        out.append(Token(word, word, Span(file, start, end)))
        offset += len(word) + 1
    return out


def parser_for(*rules: Rule, **options: bool) -> Parser:
    return Parser.for_grammar(Grammar.of(rules[0].name, rules), **options)


XYZ = alt(t("X"), t("Y"), t("Z"), build=lambda b: "xyz")
XW = alt(t("X"), t("W"), build=lambda b: "xw")


@pytest.mark.parametrize("alternatives", [(XYZ, XW), (XW, XYZ)])
def test_furthest_failure_wins_regardless_of_order(alternatives) -> None:
    p = parser_for(Rule("r", alternatives, fallback=Fail(BAD)))
    cursor = TokenCursor(toks("X Y Q"))
    out = p.parse_rule("r", cursor)
    assert isinstance(out, Failure)
    assert out.depth == 2
    assert out.diagnostic.code == EXPECTED_TOKEN.code
    assert out.diagnostic.message == "expected `Z`, found `Q`"
    assert out.diagnostic.span.start.offset == 4
    assert cursor.index == 0


def test_equal_depth_keeps_first_failure() -> None:
    first = alt(t("X"), t("Y"), build=lambda b: 1)
    second = alt(t("X"), t("Z"), build=lambda b: 2)

    out = parser_for(Rule("r", (first, second))).parse_rule("r", TokenCursor(toks("X Q")))
    assert isinstance(out, Failure)
    assert out.diagnostic.message == "expected `Y`, found `Q`"

    out = parser_for(Rule("r", (second, first))).parse_rule("r", TokenCursor(toks("X Q")))
    assert isinstance(out, Failure)
    assert out.diagnostic.message == "expected `Z`, found `Q`"


def test_fallback_resolves_when_no_first_requirement_matched() -> None:
    p = parser_for(Rule("r", (XYZ, XW), fallback=Fail(BAD)))
    out = p.parse_rule("r", TokenCursor(toks("Q")))
    assert isinstance(out, Failure)
    assert out.depth == 0
    assert out.diagnostic.code == "T001"


def test_shallow_sub_rule_failure_is_replaced_by_fallback() -> None:
    p = parser_for(
        Rule("outer", (alt(n("inner"), build=lambda b: b),), fallback=Fail(BAD)),
        Rule("inner", (alt(t("X"), build=lambda b: b),), fallback=Fail(INNER)),
    )
    out = p.parse_rule("outer", TokenCursor(toks("Q")))
    assert isinstance(out, Failure)
    assert out.diagnostic.code == "T001"


def test_rule_without_fallback_reports_its_name() -> None:
    p = parser_for(Rule("thing", (XW,)))
    out = p.parse_rule("thing", TokenCursor(toks("Q")))
    assert isinstance(out, Failure)
    assert out.diagnostic.code == NO_ALTERNATIVE.code
    assert out.diagnostic.message == "expected thing here"


def test_success_commits_and_spans_consumed_tokens() -> None:
    tokens = toks("X W tail")
    cursor = TokenCursor(tokens)
    node = parser_for(Rule("r", (XYZ, XW))).parse_rule("r", cursor)
    assert isinstance(node, Node)
    assert node.payload == "xw"
    assert cursor.index == 2
    assert node.span == tokens[0].span.combine(tokens[1].span)


def test_bindings_reach_the_builder() -> None:
    pair = Rule("pair", (alt(t("X", "left"), t("Y", "right"), build=lambda b: (b["left"].lexeme, b["right"].lexeme)),))
    node = parser_for(pair).parse(toks("X Y"))
    assert node.payload == ("X", "Y")


def test_token_value_must_match_when_given() -> None:
    span = toks("if")[0].span
    kw = Rule("kw", (alt(t("KW", value="if"), build=lambda b: "if"),))
    p = parser_for(kw)
    assert p.parse([Token("KW", "if", span, value="if")]).payload == "if"

    out = p.parse_rule("kw", TokenCursor([Token("KW", "while", span, value="while")]))
    assert isinstance(out, Failure)
    assert out.diagnostic.code == NO_ALTERNATIVE.code


def test_token_value_mismatch_is_reported_inside_a_sequence() -> None:
    span = toks("x")[0].span
    rule = Rule("r", (alt(t("A"), t("KW", value="if"), build=lambda b: 1),))
    tokens = [Token("A", "a", span), Token("KW", "while", span, value="while")]
    out = parser_for(rule).parse_rule("r", TokenCursor(tokens))
    assert isinstance(out, Failure)
    assert out.diagnostic.message == "expected `KW 'if'`, found `while`"


def test_default_fallback_succeeds_without_consuming() -> None:
    tokens = toks("Y")
    cursor = TokenCursor(tokens)
    p = parser_for(Rule("opt", (alt(t("X"), build=lambda b: "x"),), fallback=Default("none")))
    node = p.parse_rule("opt", cursor)
    assert isinstance(node, Node)
    assert node.payload == "none"
    assert cursor.index == 0
    assert node.span == Span.empty(tokens[0].span.start)


def _take_one(cursor: TokenCursor) -> Node | Failure:
    tok = cursor.current_token()
    if tok is None:
        return Failure(0, BAD.at(cursor.position()))
    cursor.advance()
    return Node(tok.span, ("raw", tok.lexeme))


def test_raw_fallback_result_is_returned_verbatim() -> None:
    p = parser_for(Rule("r", (XW,), fallback=Raw(_take_one)))
    cursor = TokenCursor(toks("Q R"))
    node = p.parse_rule("r", cursor)
    assert isinstance(node, Node)
    assert node.payload == ("raw", "Q")
    assert cursor.index == 1


def test_raw_fallback_failure_does_not_move_cursor() -> None:
    p = parser_for(Rule("r", (XW,), fallback=Raw(_take_one)))
    cursor = TokenCursor([], eof=Position("t"))
    out = p.parse_rule("r", cursor)
    assert isinstance(out, Failure)
    assert out.diagnostic.code == "T001"
    assert cursor.index == 0


def test_parse_function_as_requirement() -> None:
    p = parser_for(Rule("r", (alt(n(_take_one, "any"), t("X"), build=lambda b: b["any"].payload),)))
    node = p.parse(toks("Q X"))
    assert node.payload == ("raw", "Q")


DELEGATED = Rule("b", (alt(t("Y"), t("Z"), build=lambda b: "yz"),), fallback=Fail(BAD))


def test_delegate_fallback_wraps_success() -> None:
    p = parser_for(
        Rule("a", (alt(t("X"), build=lambda b: "x"),), fallback=Delegate("b", wrap=lambda node: ("b", node.payload))),
        DELEGATED,
    )
    tokens = toks("Y Z")
    cursor = TokenCursor(tokens)
    node = p.parse_rule("a", cursor)
    assert isinstance(node, Node)
    assert node.payload == ("b", "yz")
    assert node.span == tokens[0].span.combine(tokens[1].span)
    assert cursor.index == 2


def test_delegate_failure_depth_includes_attempted_prefix() -> None:
    p = parser_for(
        Rule(
            "r",
            (alt(t("X"), body=Body((alt(t("V"), build=lambda b: "v"),), fallback=Delegate("b"))),),
            fallback=Fail(BAD),
        ),
        DELEGATED,
    )
    out = p.parse_rule("r", TokenCursor(toks("X Y Q")))
    assert isinstance(out, Failure)
    assert out.depth == 2
    assert out.diagnostic.message == "expected `Z`, found `Q`"

    tokens = toks("X Y Z")
    cursor = TokenCursor(tokens)
    node = p.parse_rule("r", cursor)
    assert isinstance(node, Node)
    assert node.payload == "yz"
    assert cursor.index == 3
    assert node.span == tokens[0].span.combine(tokens[2].span)


EXPR = Rule(
    "expr",
    (
        alt(
            t("N", "left"),
            body=Body(
                (alt(t("+"), n("expr", "right"), build=lambda b: ("+", b["left"].lexeme, b["right"].payload)),),
                fallback=Default(build=lambda b: b["left"].lexeme),
            ),
        ),
    ),
)


def test_body_default_builds_from_prefix_bindings() -> None:
    p = parser_for(EXPR)
    assert p.parse(toks("N")).payload == "N"
    assert p.parse(toks("N + N + N")).payload == ("+", "N", ("+", "N", "N"))


def test_body_failure_past_its_prefix_propagates() -> None:
    p = parser_for(EXPR)
    out = p.parse_rule("expr", TokenCursor(toks("N + ;")))
    assert isinstance(out, Failure)
    assert out.depth == 2
    assert out.diagnostic.code == NO_ALTERNATIVE.code
    assert out.diagnostic.span.start.offset == 4


def test_body_fallback_depth_competes_with_siblings() -> None:
    body_error = ErrorCode("T003", "body", "body failed")
    with_body = alt(t("X"), body=Body((alt(t("Y"), t("Z"), build=lambda b: 1),), fallback=Fail(body_error)))
    longer = alt(t("X"), t("V"), t("U"), build=lambda b: 2)
    p = parser_for(Rule("r", (with_body, longer), fallback=Fail(BAD)))

    out = p.parse_rule("r", TokenCursor(toks("X V Q")))
    assert isinstance(out, Failure)
    assert out.depth == 2
    assert out.diagnostic.message == "expected `U`, found `Q`"

    out = p.parse_rule("r", TokenCursor(toks("X Q")))
    assert isinstance(out, Failure)
    assert out.depth == 1
    assert out.diagnostic.code == "T003"


def test_trailing_tokens_are_reported() -> None:
    rule = Rule("r", (alt(t("X"), build=lambda b: 1),))
    out = parser_for(rule).try_parse(toks("X Y"))
    assert isinstance(out, Diagnostic)
    assert out.code == UNEXPECTED_TOKEN.code
    assert out.message == "`Y` was not expected here"

    node = parser_for(rule, require_eof=False).try_parse(toks("X Y"))
    assert isinstance(node, Node)


def test_parse_raises_the_diagnostic() -> None:
    p = parser_for(Rule("r", (XYZ,), fallback=Fail(BAD)))
    with pytest.raises(ParseError) as e:
        p.parse(toks("Q"))
    assert e.value.code == "T001"
    assert str(e.value).startswith("error[T001]: bad input")


def test_failure_at_end_of_input_uses_synthesized_position() -> None:
    p = parser_for(Rule("r", (XYZ,)))
    out = p.try_parse(toks("X Y"))
    assert isinstance(out, Diagnostic)
    assert out.message == "expected `Z`, found `end of input`"
    assert out.span.start.line == 2
    assert out.span.start.column == 1


def test_empty_token_stream() -> None:
    p = parser_for(Rule("r", (XYZ,)))
    with pytest.raises(EmptyTokenStream):
        p.parse([])
    out = p.try_parse([], eof=Position("t"))
    assert isinstance(out, Diagnostic)
    assert out.span.start.offset == 0


def test_grammar_validation() -> None:
    with pytest.raises(GrammarError):
        Grammar.of("r", [Rule("r", (alt(n("missing"), build=lambda b: 1),))])
    with pytest.raises(GrammarError):
        Grammar.of("r", [Rule("r", (), fallback=Delegate("missing"))])
    with pytest.raises(GrammarError):
        Grammar.of("nope", [Rule("r", (XW,))])
    with pytest.raises(GrammarError):
        Grammar.of("r", [Rule("r", (XW,)), Rule("r", (XYZ,))])
    with pytest.raises(GrammarError):
        alt(t("X"))
    with pytest.raises(GrammarError):
        alt(t("X"), build=lambda b: 1, body=Body(()))


ITEMS = parser_for(
    Rule(
        "items",
        (
            alt(
                n("item", "first"),
                body=Body(
                    (alt(n("items", "rest"), build=lambda b: (b["first"].payload, *b["rest"].payload)),),
                    fallback=Default(build=lambda b: (b["first"].payload,)),
                ),
            ),
        ),
        fallback=Fail(BAD),
    ),
    Rule(
        "item",
        (
            alt(t("X"), t("Y"), build=lambda b: "XY"),
            alt(t("X"), build=lambda b: "X"),
            alt(t("Z"), build=lambda b: "Z"),
        ),
        fallback=Fail(BAD),
    ),
)


@given(st.lists(st.sampled_from(["X", "Y", "Z", "W"]), min_size=1, max_size=20))
def test_parse_rule_rolls_back_or_spans_what_it_consumed(words: list[str]) -> None:
    tokens = toks(" ".join(words))
    cursor = TokenCursor(tokens)
    out = ITEMS.parse_rule("items", cursor)
    if isinstance(out, Failure):
        assert cursor.index == 0
        assert out.depth == 0
    else:
        assert cursor.index > 0
        assert out.span == tokens[0].span.combine(tokens[cursor.index - 1].span)
        assert "".join(out.payload) == "".join(words[: cursor.index])


def test_alternatives_render_their_requirements() -> None:
    assert str(alt(t("X"), n("item"), build=lambda b: None)) == "T(X) N(item)"
    assert str(alt(n(_take_one), body=Body(()))) == "N(_take_one) { ... }"
    assert str(alt(build=lambda b: None)) == "ε"


ITEM = Rule(
    "item",
    (alt(t("A"), t("B"), build=lambda b: "ab"), alt(t("C"), build=lambda b: "c")),
    fallback=Fail(BAD),
)


def list_parser(min: int = 0) -> Parser:
    return parser_for(
        Rule("list", (alt(t("["), many("item", "items", min=min), t("]"), build=lambda b: tuple(i.payload for i in b["items"])),)),
        ITEM,
    )


def test_many_binds_every_item() -> None:
    assert list_parser().parse(toks("[ A B C ]")).payload == ("ab", "c")
    assert list_parser().parse(toks("[ ]")).payload == ()


def test_many_reports_an_item_that_failed_part_way() -> None:
    out = list_parser().parse_rule("list", TokenCursor(toks("[ A Q ]")))
    assert isinstance(out, Failure)
    assert out.depth == 2
    assert out.diagnostic.message == "expected `B`, found `Q`"

    out = list_parser().parse_rule("list", TokenCursor(toks("[ C A Q ]")))
    assert isinstance(out, Failure)
    assert out.depth == 3


def test_many_counts_matched_items_into_depth() -> None:
    out = list_parser().parse_rule("list", TokenCursor(toks("[ C C Q")))
    assert isinstance(out, Failure)
    assert out.depth == 3
    assert out.diagnostic.message == "expected `]`, found `Q`"


def test_many_minimum() -> None:
    out = list_parser(min=2).parse_rule("list", TokenCursor(toks("[ C ]")))
    assert isinstance(out, Failure)
    assert out.depth == 2
    assert out.diagnostic.code == "T001"
    assert list_parser(min=2).parse(toks("[ C C ]")).payload == ("c", "c")


def test_many_handles_long_lists_without_recursion() -> None:
    tokens = toks("[ " + "C " * 5000 + "]")
    node = list_parser().parse(tokens)
    assert len(node.payload) == 5000
    assert node.span == tokens[0].span.combine(tokens[-1].span)


def test_many_item_must_consume_input() -> None:
    p = parser_for(
        Rule("r", (alt(many("empty"), build=lambda b: None),)),
        Rule("empty", (), fallback=Default()),
    )
    with pytest.raises(RuntimeError, match=r"N\(empty\)\*"):
        p.parse(toks("X"))


def test_many_rule_names_are_validated() -> None:
    with pytest.raises(GrammarError):
        Grammar.of("r", [Rule("r", (alt(many("missing"), build=lambda b: 1),))])


def test_alternative_without_build_or_body_is_a_runtime_error() -> None:
    broken = alt(t("X"), build=lambda b: 1)
    object.__setattr__(broken, "build", None)
    p = parser_for(Rule("r", (broken,)))
    with pytest.raises(RuntimeError, match="neither build nor body"):
        p.parse(toks("X"))
