"""
Error handling tests for lamb
Error dictionaries, formatting, context lines and suggestions
"""

import pytest
from error_handling import (
  make_error_dict, format_error_dict, get_context_lines, generate_suggestions,
  LambError, LambLexError, LambSyntaxError, LambEvaluationError, syntax_error
)
from parsing import SourceSpan


class TestErrorDicts:
  """Test pure error helpers"""

  def test_format_with_position(self):
    error = make_error_dict("Syntax error", "expected ')'", line=3, column=4,
                            filename="a.lamb", expected=["')'"], got="'+'")
    text = format_error_dict(error)
    assert text.startswith("Syntax error at a.lamb:3:4:")
    assert "  Expected: ')'" in text
    assert "  Got: '+'" in text

  def test_format_without_position(self):
    text = format_error_dict(make_error_dict("Syntax error", "oops"))
    assert text.splitlines()[0] == "Syntax error at position unavailable:"

  def test_context_lines(self):
    context = get_context_lines("a = 1\nb = $\nc = 3", 2, 5)
    lines = context.splitlines()
    assert lines[0] == "   1: a = 1"
    assert lines[1] == "   2: b = $"
    assert lines[2] == " " * 10 + "^ Error here"
    assert lines[3] == "   3: c = 3"

  def test_context_out_of_range(self):
    assert get_context_lines("a", 5, 1) == ""


class TestSuggestions:
  """Test hints for common mistakes"""

  def test_operator_in_parentheses(self):
    suggestions = generate_suggestions("expected ')'", "'+'", ["')'"])
    assert any("application" in s for s in suggestions)

  def test_missing_dot(self):
    suggestions = generate_suggestions("expected '.'", "identifier 'x'", ["'.'"])
    assert any("λx.x" in s for s in suggestions)

  def test_no_suggestions(self):
    assert generate_suggestions("unexpected end of input", "nothing", ["expression"]) == []


class TestExceptions:
  """Test the exception hierarchy"""

  def test_hierarchy(self):
    for cls in (LambLexError, LambSyntaxError, LambEvaluationError):
      assert issubclass(cls, LambError)

  def test_round_trip_through_dict(self):
    error = LambSyntaxError("bad", line=1, column=2, got="'x'")
    copy = LambSyntaxError.from_dict(error.to_dict())
    assert str(copy) == str(error)
    assert copy.to_dict()['kind'] == "Syntax error"

  def test_evaluation_error_text(self):
    assert str(LambEvaluationError("Unbound binding: x")) == "Unbound binding: x"

  def test_syntax_error_from_span(self):
    span = SourceSpan("p.lamb", 2, 7, 2, 8, "+")
    error = syntax_error("expected ')'", "')'", "'+'", span)
    assert (error.filename, error.line, error.column) == ("p.lamb", 2, 7)
    assert error.expected == ["')'"]

  def test_lex_error_kind(self):
    assert "Lex error" in str(LambLexError("File not found: x.lamb"))
