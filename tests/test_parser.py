"""
Tests for the exprlang parser.
"""

import pytest

from exprlang import (
    parse, parse_expression, format_ast,
    Parser, ParserError, LexerError,
    Operator, LiteralKind,
    Literal, Variable, EnvVariable, ArrayLiteral, IndexExpr, CallExpr,
    BinaryOp, PrefixOp, PostfixOp,
    EmptyStatement, LetStatement, Block, IfStatement, ForStatement,
    ReturnStatement, BreakStatement, ExpressionStatement, FunctionDef, Program,
)


def expr(source: str) -> str:
    """Helper to parse an expression and render it compactly."""
    return format_ast(parse_expression(source))


def integer(n: int) -> Literal:
    return Literal(n, LiteralKind.INTEGER)


class TestPrimaryExpressions:
    """Test literals, names and grouping."""

    def test_literals(self):
        assert parse_expression("null") == Literal(None, LiteralKind.NULL)
        assert parse_expression("true") == Literal(True, LiteralKind.BOOLEAN)
        assert parse_expression("false") == Literal(False, LiteralKind.BOOLEAN)
        assert parse_expression("42") == integer(42)
        assert parse_expression("2.5") == Literal(2.5, LiteralKind.FLOAT)
        assert parse_expression('"hi"') == Literal("hi", LiteralKind.STRING)

    def test_integer_and_float_literals_differ(self):
        """Literal kind takes part in equality."""
        assert parse_expression("1") != parse_expression("1.0")

    def test_variable(self):
        assert parse_expression("foo") == Variable("foo")

    def test_env_variable(self):
        assert parse_expression("$home") == EnvVariable("home")

    def test_grouping(self):
        """Parentheses produce no node of their own."""
        assert parse_expression("(x)") == Variable("x")
        assert expr("(1 + 2) * 3") == "(* (+ 1 2) 3)"

    def test_array_literal(self):
        assert expr('[1, 2.5, "s", null]') == '[1, 2.5, "s", null]'
        assert parse_expression("[]") == ArrayLiteral([])


class TestPrecedence:
    """Test operator precedence and associativity."""

    def test_factor_binds_tighter_than_term(self):
        assert expr("1 + 2 * 3") == "(+ 1 (* 2 3))"
        assert expr("1 * 2 + 3") == "(+ (* 1 2) 3)"

    def test_left_associative(self):
        assert expr("1 - 2 - 3") == "(- (- 1 2) 3)"
        assert expr("8 / 4 / 2") == "(/ (/ 8 4) 2)"

    def test_assignment_is_right_associative(self):
        assert expr("a = b = 1") == "(= a (= b 1))"

    def test_assignment_is_lowest(self):
        assert expr("a = 1 + 2") == "(= a (+ 1 2))"

    def test_logical_operators(self):
        assert expr("a && b || c") == "(|| (&& a b) c)"
        assert expr("a || b && c") == "(|| a (&& b c))"

    def test_comparison_below_term(self):
        assert expr("1 + 1 < 3") == "(< (+ 1 1) 3)"
        assert expr("1 < 2 == true") == "(== (< 1 2) true)"

    def test_prefix_operand_is_parsed_at_prefix_level(self):
        """Prefix operators bind tighter than binary operators."""
        assert expr("-2 * 3") == "(* (- 2) 3)"
        assert expr("!a == b") == "(== (! a) b)"

    def test_postfix_binds_tighter_than_prefix(self):
        assert expr("-a++") == "(- (a ++))"

    def test_nested_prefix(self):
        assert expr("!!a") == "(! (! a))"
        assert expr("-(3 + 2)") == "(- (+ 3 2))"


class TestPostfixExpressions:
    """Test calls, indexing, access and increment."""

    def test_call(self):
        node = parse_expression("add(1, 2)")
        assert node == CallExpr(Variable("add"), [integer(1), integer(2)])

    def test_call_without_arguments(self):
        assert parse_expression("f()") == CallExpr(Variable("f"), [])

    def test_chained_postfix(self):
        assert expr("f(1)(2)") == "f(1)(2)"
        assert expr("f(1, 2)[0]") == "f(1, 2)[0]"
        assert expr("a[0][1]") == "a[0][1]"

    def test_index(self):
        assert parse_expression("a[i + 1]") == IndexExpr(
            Variable("a"), BinaryOp(Operator.ADD, Variable("i"), integer(1))
        )

    def test_increment_decrement(self):
        assert parse_expression("i++") == PostfixOp(Operator.INCREMENT, Variable("i"))
        assert parse_expression("i--") == PostfixOp(Operator.DECREMENT, Variable("i"))

    def test_access(self):
        assert parse_expression("a.length") == BinaryOp(Operator.ACCESS, Variable("a"), Variable("length"))
        assert expr("a.b.c") == "(. (. a b) c)"

    def test_call_on_env_variable(self):
        assert parse_expression("$f(1)") == CallExpr(EnvVariable("f"), [integer(1)])

    def test_index_inside_binary(self):
        assert expr("x * a[0]") == "(* x a[0])"


class TestStructuralEquality:
    """Test AST equality semantics."""

    def test_same_source_parses_equal(self):
        assert parse("let x = 1 + 2;") == parse("let x = 1 + 2;")

    def test_spans_are_ignored(self):
        """Whitespace changes spans but not structure."""
        assert parse_expression("1+2") == parse_expression("  1 +   2")

    def test_different_structure(self):
        assert parse_expression("1 + 2") != parse_expression("2 + 1")
        assert parse_expression("-x") != parse_expression("!x")

    def test_different_variants(self):
        assert BreakStatement() != EmptyStatement()


class TestStatements:
    """Test statement parsing."""

    def test_let(self):
        assert parse("let x = 1;") == Program([LetStatement("x", integer(1))], {})

    def test_let_without_initializer(self):
        program = parse("let x;")
        assert program.statements == [LetStatement("x", None)]

    def test_empty_statement(self):
        """A lone ';' is consumed as an empty statement."""
        assert parse(";;").statements == [EmptyStatement(), EmptyStatement()]

    def test_expression_statement(self):
        program = parse("x = 1;")
        assert program.statements == [
            ExpressionStatement(BinaryOp(Operator.ASSIGN, Variable("x"), integer(1)))
        ]

    def test_block(self):
        program = parse("{ let a = 1; ; }")
        assert program.statements == [Block([LetStatement("a", integer(1)), EmptyStatement()])]

    def test_if_else(self):
        program = parse("if (x) { return 1; } else { return 2; }")
        stmt = program.statements[0]
        assert isinstance(stmt, IfStatement)
        assert stmt.condition == Variable("x")
        assert stmt.then_branch == Block([ReturnStatement(integer(1))])
        assert stmt.else_branch == Block([ReturnStatement(integer(2))])

    def test_if_without_else(self):
        stmt = parse("if (x) { }").statements[0]
        assert stmt.else_branch is None

    def test_else_if_chain(self):
        stmt = parse("if (a) { } else if (b) { } else { }").statements[0]
        assert isinstance(stmt.else_branch, IfStatement)
        assert stmt.else_branch.else_branch == Block([])

    def test_for(self):
        stmt = parse("for (let i = 0; i < 10; i++) { }").statements[0]
        assert isinstance(stmt, ForStatement)
        assert stmt.initializer == LetStatement("i", integer(0))
        assert stmt.condition == BinaryOp(Operator.LESS, Variable("i"), integer(10))
        assert stmt.increment == PostfixOp(Operator.INCREMENT, Variable("i"))
        assert stmt.body == Block([])

    def test_for_with_empty_clauses(self):
        stmt = parse("for (;;) { break; }").statements[0]
        assert stmt.initializer is None
        assert stmt.condition is None
        assert stmt.increment is None
        assert stmt.body == Block([BreakStatement()])

    def test_for_with_expression_initializer(self):
        stmt = parse("for (i = 0; i < 3; i++) x;").statements[0]
        assert isinstance(stmt.initializer, ExpressionStatement)
        assert stmt.body == ExpressionStatement(Variable("x"))

    def test_return(self):
        assert parse("return;").statements == [ReturnStatement(None)]
        assert parse("return 1;").statements == [ReturnStatement(integer(1))]

    def test_break_and_continue(self):
        assert format_ast(parse("break; continue;")) == "(break)\n(continue)"


class TestFunctions:
    """Test function declarations."""

    def test_function_goes_to_table(self):
        """Declarations are routed out of the statement list."""
        program = parse("fn add(a, b) { return a + b; } add(1, 2);")
        assert list(program.functions) == ["add"]
        assert len(program.statements) == 1

        fn = program.functions["add"]
        assert isinstance(fn, FunctionDef)
        assert fn.parameters == ["a", "b"]
        assert fn.body == Block([
            ReturnStatement(BinaryOp(Operator.ADD, Variable("a"), Variable("b")))
        ])

    def test_no_parameters(self):
        assert parse("fn f() { }").functions["f"].parameters == []

    def test_last_declaration_wins(self):
        program = parse("fn f() { return 1; } fn f() { return 2; }")
        assert program.functions["f"].body == Block([ReturnStatement(integer(2))])

    def test_function_order_does_not_matter(self):
        program = parse("return f(); fn f() { return 1; }")
        assert "f" in program.functions
        assert len(program.statements) == 1

    def test_nested_function_rejected(self):
        with pytest.raises(ParserError) as exc_info:
            parse("{ fn f() { } }")
        assert exc_info.value.code == "E104"

    def test_function_in_if_rejected(self):
        with pytest.raises(ParserError):
            parse("if (true) { fn f() { } }")


class TestErrors:
    """Test parse errors."""

    def test_deep_nesting_is_a_parse_error(self):
        """Nesting past the host stack fails as a ParserError, not RecursionError."""
        source = "return " + "(" * 3000 + "1" + ")" * 3000 + ";"
        with pytest.raises(ParserError) as exc_info:
            parse(source)
        assert exc_info.value.code == "E105"

    def test_deep_nesting_in_single_expression(self):
        with pytest.raises(ParserError) as exc_info:
            parse_expression("(" * 3000 + "1" + ")" * 3000)
        assert exc_info.value.code == "E105"

    def test_missing_semicolon_at_eof(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let x = 1")
        assert exc_info.value.code == "E102"

    def test_expected_found_message(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let = 1;")
        assert exc_info.value.code == "E101"
        assert "expected variable name, found '='" in str(exc_info.value)

    def test_trailing_comma_in_call(self):
        with pytest.raises(ParserError) as exc_info:
            parse("f(1,);")
        assert exc_info.value.code == "E103"

    def test_trailing_comma_in_parameters(self):
        with pytest.raises(ParserError) as exc_info:
            parse("fn f(a,) { }")
        assert "parameter name" in str(exc_info.value)

    def test_unterminated_lists(self):
        for source in ("f(1, 2", "[1, 2", "{ let x = 1;"):
            with pytest.raises(ParserError) as exc_info:
                parse(source)
            assert exc_info.value.code == "E102"

    def test_missing_separator(self):
        with pytest.raises(ParserError):
            parse("f(1 2);")

    def test_invalid_expression_start(self):
        with pytest.raises(ParserError) as exc_info:
            parse("1 + ;")
        assert "expected expression, found ';'" in str(exc_info.value)

    def test_if_requires_parentheses(self):
        with pytest.raises(ParserError):
            parse("if x { }")

    def test_if_requires_block(self):
        with pytest.raises(ParserError):
            parse("if (x) return 1;")

    def test_access_requires_name(self):
        with pytest.raises(ParserError) as exc_info:
            parse("a.1;")
        assert "attribute name" in str(exc_info.value)

    def test_trailing_tokens_after_expression(self):
        with pytest.raises(ParserError):
            parse_expression("1 2")

    def test_invalid_token_is_escalated(self):
        """INVALID tokens from the lexer become lexer errors in the parser."""
        with pytest.raises(LexerError) as exc_info:
            parse("1 & 2;")
        assert exc_info.value.code == "E002"
        assert "'&'" in str(exc_info.value)

    def test_unterminated_string_is_escalated(self):
        with pytest.raises(LexerError) as exc_info:
            parse('let s = "abc;')
        assert "unterminated string" in str(exc_info.value)

    def test_error_has_location(self):
        with pytest.raises(ParserError) as exc_info:
            parse("let x = 1;\nlet = 2;")
        span = exc_info.value.diagnostic.span
        assert span.start.line == 2
        assert span.start.column == 5
        assert exc_info.value.diagnostic.source_line == "let = 2;"


class TestParserApi:
    """Test parser entry points."""

    def test_parse_statement_directly(self):
        parser = Parser("let x = 1; x;")
        assert parser.parse_statement() == LetStatement("x", integer(1))
        assert parser.parse_statement() == ExpressionStatement(Variable("x"))

    def test_spans(self):
        node = parse_expression("foo + 12")
        assert node.span.start.column == 1
        assert node.span.end.column == 9

    def test_format_program(self):
        program = parse("fn id(x) { return x; } let y = id(1);")
        assert format_ast(program) == "(fn id(x) {(return x)})\n(let y id(1))"

    def test_prefix_op_node(self):
        assert parse_expression("-x") == PrefixOp(Operator.SUBTRACT, Variable("x"))
