"""TinyML Parser Tests.

Precedence layering, associativity, the two-tier type grammar, patterns,
match arms and declaration sequencing. Expected trees are built without
locations: locations never take part in node equality.
"""

import pytest

from tinyml.parser import parse, parse_expression, parse_pattern, parse_type
from tinyml.ast_nodes import (
    Program, ValDecl, FunDecl, MatchArm,
    IntLit, CharLit, StringLit, BoolLit,
    LiteralPattern, WildcardPattern, VarPattern, TuplePattern,
    LiteralExpr, VarExpr, UnitExpr, ParenExpr, TupleExpr, ListExpr,
    IfExpr, LetExpr, FnExpr, BinOpExpr, AppExpr,
    IntType, CharType, StringType, BoolType, VarType, ArrowType, ProductType,
)
from tinyml.errors import ParseError


def num(n, negated=False):
    return LiteralExpr(IntLit(n, negated))


def var(name):
    return VarExpr(name)


class TestPrograms:
    """Top-level declaration lists."""

    def test_empty_program(self):
        program = parse("")
        assert program == Program(declarations=())

    def test_comment_only_program(self):
        assert parse("(* nothing here *)").declarations == ()

    def test_single_val(self):
        program = parse("val x = 42")
        assert program.declarations == (
            ValDecl(VarPattern("x"), None, num(42)),
        )

    def test_sample_identity(self):
        """val id : 'a -> 'a = fn x=>x"""
        program = parse("val id : 'a -> 'a = fn x=>x")
        assert program.declarations == (
            ValDecl(
                VarPattern("id"),
                ArrowType(VarType("a"), VarType("a")),
                FnExpr((MatchArm(VarPattern("x"), var("x")),)),
            ),
        )

    def test_declarations_on_separate_lines(self):
        program = parse("val x = 1\nval y = 2\nfun f x => x")
        assert len(program.declarations) == 3
        assert isinstance(program.declarations[2], FunDecl)

    def test_semicolon_sequence_is_flattened(self):
        program = parse("val a = 1; val b = 2; val c = 3")
        assert [d.pattern.name for d in program.declarations] == ["a", "b", "c"]

    def test_semicolon_concatenation(self):
        d1 = "val a = 1"
        d2 = "fun g x => x + 1 : int -> int"
        combined = parse(f"{d1} ; {d2}").declarations
        assert combined == parse(d1).declarations + parse(d2).declarations

    def test_filename_recorded(self):
        program = parse("val x = 1", filename="main.ml")
        assert program.filename == "main.ml"
        assert program.declarations[0].location.file == "main.ml"

    def test_basic_sample_declarations(self):
        source = """
val f : int->bool = fn x=>x>0
val x : int = 42
val b : bool = true
val id : 'a -> 'a = fn x=>x

val increment = fn x => x + 1

val five = increment 4
"""
        program = parse(source)
        assert len(program.declarations) == 6
        f = program.declarations[0]
        assert f.type_annotation == ArrowType(IntType(), BoolType())
        assert f.expr == FnExpr((
            MatchArm(VarPattern("x"), BinOpExpr(">", var("x"), num(0))),
        ))
        assert program.declarations[5].expr == AppExpr(var("increment"), num(4))


class TestDeclarations:
    """val and fun forms."""

    def test_val_with_type(self):
        decl = parse("val x : int = 42").declarations[0]
        assert decl == ValDecl(VarPattern("x"), IntType(), num(42))

    def test_val_with_tuple_pattern(self):
        decl = parse("val (a, b) = (1, 2)").declarations[0]
        assert decl.pattern == TuplePattern(VarPattern("a"), VarPattern("b"))
        assert decl.expr == TupleExpr((num(1), num(2)))

    def test_val_with_wildcard(self):
        decl = parse("val _ = f ()").declarations[0]
        assert decl.pattern == WildcardPattern()
        assert decl.expr == AppExpr(var("f"), UnitExpr())

    def test_fun_with_arms(self):
        decl = parse("fun fact 0 => 1 | n => n * fact (n - 1)").declarations[0]
        assert decl.name == "fact"
        assert decl.type_annotation is None
        assert len(decl.arms) == 2
        assert decl.arms[0] == MatchArm(LiteralPattern(IntLit(0)), num(1))
        assert decl.arms[1].body == BinOpExpr(
            "*", var("n"),
            AppExpr(var("fact"), ParenExpr(BinOpExpr("-", var("n"), num(1)))),
        )

    def test_fun_with_type(self):
        decl = parse("fun inc x => x + 1 : int -> int").declarations[0]
        assert decl == FunDecl(
            "inc",
            (MatchArm(VarPattern("x"), BinOpExpr("+", var("x"), num(1))),),
            ArrowType(IntType(), IntType()),
        )


class TestPrecedence:
    """Arithmetic layers, application and keyword-introduced forms."""

    def test_mul_binds_tighter_on_right(self):
        assert parse_expression("1 + 2 * 3") == BinOpExpr(
            "+", num(1), BinOpExpr("*", num(2), num(3)),
        )

    def test_mul_binds_tighter_on_left(self):
        assert parse_expression("1 * 2 + 3") == BinOpExpr(
            "+", BinOpExpr("*", num(1), num(2)), num(3),
        )

    def test_subtraction_is_left_associative(self):
        assert parse_expression("10 - 4 - 3") == BinOpExpr(
            "-", BinOpExpr("-", num(10), num(4)), num(3),
        )

    def test_division_is_left_associative(self):
        assert parse_expression("8 / 4 / 2") == BinOpExpr(
            "/", BinOpExpr("/", num(8), num(4)), num(2),
        )

    def test_application_is_left_associative(self):
        assert parse_expression("f a b c") == AppExpr(
            AppExpr(AppExpr(var("f"), var("a")), var("b")), var("c"),
        )

    def test_application_binds_tighter_than_mul(self):
        assert parse_expression("f x * g y") == BinOpExpr(
            "*", AppExpr(var("f"), var("x")), AppExpr(var("g"), var("y")),
        )

    def test_comparison_is_loosest_binary_layer(self):
        assert parse_expression("a + 1 < b * 2") == BinOpExpr(
            "<", BinOpExpr("+", var("a"), num(1)), BinOpExpr("*", var("b"), num(2)),
        )

    def test_comparison_operators(self):
        for op in ("<", ">", "<=", ">="):
            assert parse_expression(f"a {op} b") == BinOpExpr(op, var("a"), var("b"))

    def test_parens_override_precedence(self):
        assert parse_expression("(1 + 2) * 3") == BinOpExpr(
            "*", ParenExpr(BinOpExpr("+", num(1), num(2))), num(3),
        )

    def test_if_extends_to_the_right(self):
        assert parse_expression("if c then 1 else 2 + 3") == IfExpr(
            var("c"), num(1), BinOpExpr("+", num(2), num(3)),
        )

    def test_if_cannot_be_operand_without_parens(self):
        with pytest.raises(ParseError) as exc:
            parse_expression("1 + if c then 2 else 3")
        assert exc.value.error.production == "atom"

    def test_parenthesised_if_is_operand(self):
        expr = parse_expression("1 + (if c then 2 else 3)")
        assert expr == BinOpExpr(
            "+", num(1), ParenExpr(IfExpr(var("c"), num(2), num(3))),
        )

    def test_fn_cannot_be_argument_without_parens(self):
        with pytest.raises(ParseError):
            parse_expression("f fn x => x")

    def test_nested_if_in_else(self):
        expr = parse_expression("if a then 1 else if b then 2 else 3")
        assert expr == IfExpr(var("a"), num(1), IfExpr(var("b"), num(2), num(3)))

    def test_long_else_if_chain(self):
        source = "if a then 1 else " * 150 + "0"
        expr = parse_expression(source)
        depth = 0
        while isinstance(expr, IfExpr):
            assert expr.then_branch == num(1)
            expr = expr.else_branch
            depth += 1
        assert depth == 150
        assert expr == num(0)

    def test_long_curried_fn(self):
        expr = parse("val f = " + "fn x => " * 150 + "x").declarations[0].expr
        depth = 0
        while isinstance(expr, FnExpr):
            assert len(expr.arms) == 1
            expr = expr.arms[0].body
            depth += 1
        assert depth == 150
        assert expr == var("x")

    def test_let(self):
        expr = parse_expression("let val y = 10 in y * 2 end")
        assert expr == LetExpr(
            (ValDecl(VarPattern("y"), None, num(10)),),
            BinOpExpr("*", var("y"), num(2)),
        )

    def test_let_with_declaration_sequence(self):
        expr = parse_expression("let val a = 1; val b = 2 in a + b end")
        assert [d.pattern.name for d in expr.declarations] == ["a", "b"]

    def test_let_inside_if(self):
        expr = parse_expression("if c then let val x = 1 in x end else 0")
        assert isinstance(expr.then_branch, LetExpr)

    def test_curried_fn(self):
        expr = parse_expression("fn f => fn g => fn x => f (g x)")
        inner = expr.arms[0].body.arms[0].body.arms[0].body
        assert inner == AppExpr(var("f"), ParenExpr(AppExpr(var("g"), var("x"))))


class TestAtoms:
    """Literals, names, unit, parens, tuples and lists."""

    def test_literals(self):
        assert parse_expression("42") == num(42)
        assert parse_expression("~42") == num(42, negated=True)
        assert parse_expression('#"c"') == LiteralExpr(CharLit("c"))
        assert parse_expression('"hi"') == LiteralExpr(StringLit("hi"))
        assert parse_expression("true") == LiteralExpr(BoolLit(True))
        assert parse_expression("false") == LiteralExpr(BoolLit(False))

    def test_negated_literal_value(self):
        lit = parse_expression("~42").literal
        assert lit.value == 42
        assert lit.negated is True
        assert lit.signed_value == -42

    def test_integer_beyond_64_bits_kept_exact(self):
        lit = parse_expression(str(2**64 + 1)).literal
        assert lit.value == 2**64 + 1
        assert lit.negated is False

    def test_unit(self):
        assert parse_expression("()") == UnitExpr()

    def test_paren(self):
        assert parse_expression("(x)") == ParenExpr(var("x"))

    def test_pair(self):
        assert parse_expression("(1, 2)") == TupleExpr((num(1), num(2)))

    def test_triple(self):
        expr = parse_expression("(1,2,3)")
        assert expr == TupleExpr((num(1), num(2), num(3)))
        assert len(expr.elements) == 3

    def test_empty_list(self):
        assert parse_expression("[]") == ListExpr(())

    def test_list(self):
        assert parse_expression("[1, x, f y]") == ListExpr((
            num(1), var("x"), AppExpr(var("f"), var("y")),
        ))

    def test_constructor_application_is_plain_application(self):
        expr = parse_expression("CONS(1, CONS(2, NIL))")
        assert expr == AppExpr(
            var("CONS"),
            TupleExpr((num(1), AppExpr(var("CONS"), TupleExpr((num(2), var("NIL")))))),
        )

    def test_case_is_an_identifier(self):
        assert parse_expression("case x") == AppExpr(var("case"), var("x"))


class TestPatterns:
    """Binary tuple patterns and literal patterns."""

    def test_literal_patterns(self):
        assert parse_pattern("~1") == LiteralPattern(IntLit(1, True))
        assert parse_pattern('"s"') == LiteralPattern(StringLit("s"))
        assert parse_pattern('#"c"') == LiteralPattern(CharLit("c"))
        assert parse_pattern("true") == LiteralPattern(BoolLit(True))

    def test_nested_tuple_pattern(self):
        assert parse_pattern("((a, _), 0)") == TuplePattern(
            TuplePattern(VarPattern("a"), WildcardPattern()),
            LiteralPattern(IntLit(0)),
        )

    def test_three_element_pattern_fails(self):
        with pytest.raises(ParseError) as exc:
            parse("val (a, b, c) = (1, 2, 3)")
        err = exc.value.error
        assert err.production == "pat"
        assert err.expected == ["RPAREN"]

    def test_three_element_expression_succeeds(self):
        assert len(parse_expression("(a, b, c)").elements) == 3

    def test_unit_pattern_fails(self):
        with pytest.raises(ParseError):
            parse_pattern("()")


class TestMatchArms:
    """Arm order is kept exactly as written."""

    def test_two_arms(self):
        expr = parse_expression("fn x => x | y => y")
        assert expr == FnExpr((
            MatchArm(VarPattern("x"), var("x")),
            MatchArm(VarPattern("y"), var("y")),
        ))

    def test_arm_order_preserved(self):
        expr = parse_expression("fn 0 => a | 1 => b | 2 => c | _ => d")
        assert [arm.body.name for arm in expr.arms] == ["a", "b", "c", "d"]

    def test_nested_fn_takes_following_arms(self):
        expr = parse_expression("fn x => fn y => y | z => z")
        assert len(expr.arms) == 1
        assert len(expr.arms[0].body.arms) == 2


class TestTypes:
    """Two-tier right-associative type grammar."""

    def test_atoms(self):
        assert parse_type("int") == IntType()
        assert parse_type("char") == CharType()
        assert parse_type("string") == StringType()
        assert parse_type("bool") == BoolType()
        assert parse_type("'a") == VarType("a")

    def test_arrow_is_right_associative(self):
        assert parse_type("int -> int -> bool") == ArrowType(
            IntType(), ArrowType(IntType(), BoolType()),
        )

    def test_product_binds_tighter_than_arrow(self):
        assert parse_type("int * int -> bool") == ArrowType(
            ProductType(IntType(), IntType()), BoolType(),
        )

    def test_product_on_the_right_of_arrow(self):
        assert parse_type("'a -> 'a * 'b") == ArrowType(
            VarType("a"), ProductType(VarType("a"), VarType("b")),
        )

    def test_product_is_right_associative(self):
        assert parse_type("int * char * string") == ProductType(
            IntType(), ProductType(CharType(), StringType()),
        )

    def test_str(self):
        assert str(parse_type("int * 'a -> bool")) == "((int * 'a) -> bool)"

    def test_parenthesised_type_is_rejected(self):
        with pytest.raises(ParseError) as exc:
            parse_type("(int -> int) -> int")
        assert exc.value.error.production == "typ"


class TestLocations:
    """Leaves carry the position of their token."""

    def test_binop_location_is_operator(self):
        expr = parse_expression("a +\n  b")
        assert expr.location.line == 1
        assert expr.location.column == 3
        assert expr.right.location.line == 2
        assert expr.right.location.column == 3

    def test_declaration_location(self):
        program = parse("\n\n   val x = 1")
        assert program.declarations[0].location.line == 3
        assert program.declarations[0].location.column == 4

    def test_equality_ignores_location(self):
        assert parse_expression("x") == parse_expression("   x")

    def test_curried_fn_locations(self):
        expr = parse_expression("fn a =>\n  fn b => b")
        inner = expr.arms[0].body
        assert (inner.location.line, inner.location.column) == (2, 3)
        assert (inner.arms[0].location.line, inner.arms[0].location.column) == (2, 6)

    def test_else_if_locations(self):
        expr = parse_expression("if a then 1\nelse if b then 2 else 3")
        assert (expr.location.line, expr.location.column) == (1, 1)
        assert (expr.else_branch.location.line, expr.else_branch.location.column) == (2, 6)
