"""
Parser tests for lamb
Statement dispatch, precedence, associativity and the application form
"""

import pytest
from parsing import (
  parse, tokenize, pretty_print_ast, LambParser, Token,
  Program, Binding, ExpressionStmt, CommentStmt, EndOfInput,
  Identifier, Abstraction, NumberLiteral, Recursion, Application, BinaryOperation
)
from error_handling import LambSyntaxError


def parse_text(text):
  return parse(tokenize(text))


def first_expr(text):
  statement = parse_text(text).statements[0]
  assert isinstance(statement, ExpressionStmt)
  return statement.expr


def num(value):
  return NumberLiteral(float(value))


class TestStatements:
  """Test statement dispatch"""

  def test_binding(self):
    program = parse_text("a = 1")
    assert program.statements == [Binding("a", num(1)), EndOfInput()]

  def test_expression_statement(self):
    assert parse_text("x").statements == [ExpressionStmt(Identifier("x")), EndOfInput()]

  def test_comment_statement(self):
    program = parse_text("// hello\n1")
    assert program.statements[0] == CommentStmt(" hello")
    assert program.statements[1] == ExpressionStmt(num(1))

  def test_empty_program(self):
    assert parse_text("").statements == [EndOfInput()]

  def test_juxtaposed_expressions_become_statements(self):
    program = parse_text("1 2")
    assert program.statements == [ExpressionStmt(num(1)), ExpressionStmt(num(2)), EndOfInput()]

  def test_trailing_argument_is_separate_statement(self):
    program = parse_text("(f) a b")
    assert program.statements[0] == ExpressionStmt(Application(Identifier("f"), Identifier("a")))
    assert program.statements[1] == ExpressionStmt(Identifier("b"))

  def test_recursion_keyword_cannot_start_statement(self):
    with pytest.raises(LambSyntaxError) as excinfo:
      parse_text("𝑓(1)")
    assert "statement start" in excinfo.value.message

  def test_operator_cannot_start_statement(self):
    with pytest.raises(LambSyntaxError):
      parse_text("+ 1")


class TestPrecedence:
  """Test precedence climbing and associativity"""

  def test_left_associative_subtraction(self):
    assert first_expr("10-3-2") == BinaryOperation(
        "-", BinaryOperation("-", num(10), num(3)), num(2))

  def test_product_binds_tighter_than_sum(self):
    assert first_expr("2+3*4") == BinaryOperation(
        "+", num(2), BinaryOperation("*", num(3), num(4)))
    assert first_expr("2*3+4") == BinaryOperation(
        "+", BinaryOperation("*", num(2), num(3)), num(4))

  def test_bitwise_binds_tightest(self):
    assert first_expr("1+6&3") == BinaryOperation(
        "+", num(1), BinaryOperation("&", num(6), num(3)))

  def test_left_associative_division(self):
    assert first_expr("8/4/2") == BinaryOperation(
        "/", BinaryOperation("/", num(8), num(4)), num(2))


class TestAbstractions:
  """Test abstraction and recursion forms"""

  def test_body_extends_right(self):
    assert first_expr("λx.x*x+1") == Abstraction(
        "x", BinaryOperation("+", BinaryOperation("*", Identifier("x"), Identifier("x")), num(1)))

  def test_nested_abstraction(self):
    assert first_expr("λx.λy.x*y") == Abstraction(
        "x", Abstraction("y", BinaryOperation("*", Identifier("x"), Identifier("y"))))

  def test_recursion_form(self):
    assert first_expr("λn.𝑓(n-1)") == Abstraction(
        "n", Recursion(BinaryOperation("-", Identifier("n"), num(1))))

  def test_missing_dot(self):
    with pytest.raises(LambSyntaxError) as excinfo:
      parse_text("λx x")
    assert excinfo.value.expected == ["'.'"]

  def test_missing_parameter(self):
    with pytest.raises(LambSyntaxError):
      parse_text("λ.x")


class TestApplication:
  """Test the parenthesized application form"""

  def test_simple_application(self):
    assert first_expr("(f) 5") == Application(Identifier("f"), num(5))

  def test_argument_takes_full_expression(self):
    assert first_expr("(f) 2+3") == Application(
        Identifier("f"), BinaryOperation("+", num(2), num(3)))

  def test_curried_application(self):
    assert first_expr("((a) 2) 10") == Application(
        Application(Identifier("a"), num(2)), num(10))

  def test_abstraction_in_function_position(self):
    assert first_expr("(λprint.print) 5") == Application(
        Abstraction("print", Identifier("print")), num(5))

  def test_binary_operator_inside_parentheses_rejected(self):
    with pytest.raises(LambSyntaxError) as excinfo:
      parse_text("(2+3)")
    error = excinfo.value
    assert error.expected == ["')'"]
    assert error.got == "'+'"
    assert error.suggestions

  def test_missing_argument(self):
    with pytest.raises(LambSyntaxError):
      parse_text("(f)")


class TestEndMarker:
  """Test end of input handling on raw token sequences"""

  def test_tokens_after_end(self):
    tokens = [Token("EOF", None), Token("NUMBER", 1.0)]
    with pytest.raises(LambSyntaxError) as excinfo:
      LambParser(tokens).parse_program()
    assert "tokens after end of input" in excinfo.value.message

  def test_missing_end_marker(self):
    tokens = [Token("NUMBER", 1.0)]
    with pytest.raises(LambSyntaxError) as excinfo:
      LambParser(tokens).parse_program()
    assert "missing end of input marker" in excinfo.value.message

  def test_synthesised_tokens_have_no_position(self):
    with pytest.raises(LambSyntaxError) as excinfo:
      LambParser([Token("OPERATOR", ")"), Token("EOF", None)]).parse_program()
    assert "position unavailable" in str(excinfo.value)

  def test_error_position_from_source(self):
    with pytest.raises(LambSyntaxError) as excinfo:
      parse_text("a = 1\n(2*3)")
    assert excinfo.value.line == 2
    assert excinfo.value.column == 3

  def test_deep_nesting_is_syntax_error(self):
    with pytest.raises(LambSyntaxError) as excinfo:
      parse_text("f = " + "λa." * 2000 + "a")
    assert "expression nested too deeply" in excinfo.value.message
    assert excinfo.value.line == 1

  def test_deep_parentheses_is_syntax_error(self):
    with pytest.raises(LambSyntaxError) as excinfo:
      parse_text("(" * 3000 + "f" + ")" * 3000 + " 1")
    assert "expression nested too deeply" in excinfo.value.message


class TestPrettyPrint:
  """Test AST rendering"""

  def test_pretty_print(self):
    text = pretty_print_ast(parse_text("a = (f) 1"))
    lines = text.splitlines()
    assert lines[0] == "Binding(name='a')"
    assert lines[1] == "  Application"
    assert lines[2] == "    Identifier(name='f')"
    assert lines[3] == "    NumberLiteral(value=1.0)"
    assert lines[-1] == "EndOfInput"

  def test_program_type(self, parser):
    assert isinstance(parser.parse_string("1"), Program)
