import pytest

from microbench.assertion.ast import And, Comparison, Not, Or, PropertyAccess, ScalarValue, TimeValue
from microbench.assertion.parser import parse, tokenize
from microbench.assertion.time_unit import TimeUnit
from microbench.core.exceptions import ExpressionError, ExpressionSyntaxError, InvalidTimeUnit


def test_parse_time_comparison():
    node = parse("mean < 10 ms")
    assert node == Comparison(PropertyAccess("mean"), "<", TimeValue(10, TimeUnit.MILLISECONDS))


def test_parse_scalars_and_strings():
    assert parse("mem_peak <= 1024") == Comparison(PropertyAccess("mem_peak"), "<=", ScalarValue(1024))
    assert parse("subject = 'bench_join'") == Comparison(PropertyAccess("subject"), "=", ScalarValue("bench_join"))
    assert parse('context != "it\\"s"').right == ScalarValue('it"s')
    assert parse("rstdev < 2.5").right == ScalarValue(2.5)


def test_precedence_not_and_or():
    node = parse("not mean < 1 s and iterations > 1 or subject = 'x'")
    assert isinstance(node, Or)
    assert isinstance(node.left, And)
    assert isinstance(node.left.left, Not)
    assert isinstance(node.right, Comparison)


def test_parentheses_override_precedence():
    node = parse("mean < 1 s and (iterations > 1 or subject = 'x')")
    assert isinstance(node, And)
    assert isinstance(node.right, Or)


def test_unit_directly_after_number():
    assert parse("max < 3μs").right == TimeValue(3, "microseconds")


def test_unknown_property_reports_position():
    with pytest.raises(ExpressionSyntaxError) as exc:
        parse("mean < 1 ms and speed > 3")
    assert exc.value.position == 16
    assert "speed" in str(exc.value)


@pytest.mark.parametrize("expression", ["", "mean <", "mean 1 ms", "(mean < 1 ms", "mean < 1 ms )", "mean < 1 ms and", "mean ~ 1"])
def test_syntax_errors(expression):
    with pytest.raises(ExpressionSyntaxError):
        parse(expression)


def test_unknown_unit_is_an_expression_error():
    with pytest.raises(InvalidTimeUnit):
        parse("mean < 1 parsec")
    assert issubclass(InvalidTimeUnit, ExpressionError)


def test_tokenize_skips_whitespace():
    kinds = [t.kind for t in tokenize(" mean\t<  5 ms ")]
    assert kinds == ["ident", "op", "number", "ident"]
