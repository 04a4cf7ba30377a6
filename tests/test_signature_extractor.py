"""Tests for function signature extraction."""

import pytest

from variadic_linter.signature_extractor import (
    ANONYMOUS,
    ParseError,
    extract_definitions,
    extract_signature,
)


class TestExtractSignature:
    def given_text(self, text):
        self.text = text

    def when_signature_is_extracted(self):
        self.signature = extract_signature(self.text)

    def then_parse_fails_with(self, message):
        with pytest.raises(ParseError, match=message):
            extract_signature(self.text)

    def test_records_parameters_defaults_and_dots(self):
        """Parameters keep declaration order; defaults and ... are recorded."""
        self.given_text("f <- function(x, y = 2, ...) NULL")
        self.when_signature_is_extracted()
        assert self.signature.name == "f"
        assert self.signature.parameters == ("x", "y", "...")
        assert self.signature.defaults == frozenset({"y"})
        assert self.signature.variadic_index == 2
        assert self.signature.has_variadic

    def test_signature_without_dots(self):
        """A definition without ... has no variadic position."""
        self.given_text("add <- function(a, b) a + b")
        self.when_signature_is_extracted()
        assert self.signature.variadic_index is None
        assert not self.signature.has_variadic

    def test_equals_assignment(self):
        """name = function(...) is a definition."""
        self.given_text("f = function(a) a")
        self.when_signature_is_extracted()
        assert self.signature.name == "f"

    def test_anonymous_function(self):
        """A bare function expression is named <anonymous>."""
        self.given_text("function(...) list(...)")
        self.when_signature_is_extracted()
        assert self.signature.name == ANONYMOUS

    def test_parameters_after_dots(self):
        """Parameters after ... are split from those before it."""
        self.given_text("f <- function(x, ..., na.rm = FALSE) x")
        self.when_signature_is_extracted()
        assert self.signature.before_variadic == ("x",)
        assert self.signature.after_variadic == ("na.rm",)

    def test_multi_line_definition(self):
        """Parameter lists and bodies may span lines."""
        self.given_text("f <- function(x,\n              ...) {\n  g(x, ...)\n}\n")
        self.when_signature_is_extracted()
        assert self.signature.parameters == ("x", "...")

    def test_rejects_non_definition(self):
        """Text that is not a function definition fails."""
        self.given_text("x <- 1")
        self.then_parse_fails_with("not a function definition")

    def test_rejects_unterminated_parameter_list(self):
        """A parameter list without its closing parenthesis fails."""
        self.given_text("f <- function(x")
        self.then_parse_fails_with("unterminated parameter list")

    def test_rejects_unterminated_body(self):
        """A body without its closing brace fails."""
        self.given_text("f <- function(x) {\n  x\n")
        self.then_parse_fails_with("unterminated function body")

    def test_rejects_invalid_parameter(self):
        """Parameters must be names or ..."""
        self.given_text("f <- function(x, 1) x")
        self.then_parse_fails_with("invalid parameter")

    def test_rejects_duplicate_parameter(self):
        """A parameter may only be declared once."""
        self.given_text("f <- function(x, x) x")
        self.then_parse_fails_with("duplicate parameter 'x'")

    def test_rejects_missing_body(self):
        """A header with nothing after it fails."""
        self.given_text("f <- function(x)")
        self.then_parse_fails_with("missing function body")

    def test_rejects_trailing_code(self):
        """Only one definition is accepted."""
        self.given_text("f <- function(x) x\ny <- 2")
        self.then_parse_fails_with("after function definition")

    def test_backtick_brace_name_is_an_expression_body(self):
        """A `{` name is an ordinary expression, not a block."""
        self.given_text("f <- function(x) `{`\n")
        self.when_signature_is_extracted()
        assert self.signature.parameters == ("x",)

    def test_backtick_paren_name_is_not_a_parameter_list(self):
        """A `(` name after function is rejected."""
        self.given_text("f <- function `(`x) x")
        self.then_parse_fails_with(r"expected '\(' after 'function'")

    def test_parse_error_carries_line_number(self):
        """ParseError records where the definition starts."""
        self.given_text("\n\nf <- function(x")
        with pytest.raises(ParseError) as excinfo:
            extract_signature(self.text)
        assert excinfo.value.line_number == 3


class TestExtractDefinitions:
    def given_source(self, source):
        self.source = source

    def when_definitions_are_extracted(self):
        self.definitions, self.errors = extract_definitions(self.source, "test.R")
        self.names = [d.signature.name for d in self.definitions]

    def test_finds_every_named_definition(self):
        """All assigned definitions are found in source order."""
        self.given_source(
            "f <- function(...) c(...)\n"
            "g <- function(x) {\n"
            "  x\n"
            "}\n"
            "h <<- function(y) y\n"
        )
        self.when_definitions_are_extracted()
        assert self.names == ["f", "g", "h"]
        assert self.errors == []

    def test_records_file_and_line(self):
        """Signatures carry the file path and definition line."""
        self.given_source("\n\nf <- function(...) c(...)\n")
        self.when_definitions_are_extracted()
        signature = self.definitions[0].signature
        assert signature.file_path == "test.R"
        assert signature.line_number == 3

    def test_named_argument_is_not_a_definition(self):
        """FUN = function(x) inside a call is an anonymous function."""
        self.given_source("res <- lapply(xs, FUN = function(x) x)\n")
        self.when_definitions_are_extracted()
        assert self.names == [ANONYMOUS]

    def test_nested_definitions_are_found(self):
        """Definitions inside function bodies are extracted too."""
        self.given_source(
            "outer <- function(...) {\n"
            "  inner <- function(...) c(...)\n"
            "  inner(1)\n"
            "}\n"
        )
        self.when_definitions_are_extracted()
        assert self.names == ["outer", "inner"]

    def test_single_expression_body_stops_at_line_end(self):
        """A body without braces ends with its line."""
        self.given_source("f <- function(...) c(...)\nc(1, 2)\n")
        self.when_definitions_are_extracted()
        body_texts = [t.text for t in self.definitions[0].body]
        assert body_texts == ["c", "(", "...", ")"]

    def test_body_continues_after_trailing_operator(self):
        """A trailing operator carries the body onto the next line."""
        self.given_source("f <- function(x) x +\n  1\ny <- 2\n")
        self.when_definitions_are_extracted()
        body_texts = [t.text for t in self.definitions[0].body if t.kind != "newline"]
        assert body_texts == ["x", "+", "1"]

    def test_malformed_definition_does_not_stop_scan(self):
        """A definition that fails is reported and later ones still parse."""
        self.given_source(
            "broken <- function(x) {\n"
            "  x + 1\n"
            "\n"
            "fine <- function(...) list(...)\n"
        )
        self.when_definitions_are_extracted()
        assert len(self.errors) == 1
        assert self.errors[0].line_number == 1
        assert self.names == ["fine"]
