"""
Unit tests for SqlValidator.

Tests SQL validation including:
- SELECT-only gate
- Deny-list matching (all violations reported)
- Statement and quote/parenthesis balance checks
- Performance warnings
- sanitize/format text transforms
"""

import pydantic
import pytest

from schoolchat.agents.validator import SqlValidator
from schoolchat.models import ValidationResult


class TestSqlValidator:
    """Test suite for SqlValidator."""

    @pytest.fixture
    def validator(self):
        return SqlValidator()

    # ============================================================================
    # Accepted queries
    # ============================================================================

    def test_benign_query_is_valid(self, validator):
        result = validator.validate(
            "SELECT name, age FROM students WHERE age > 10 ORDER BY age LIMIT 10;"
        )

        assert result.is_valid is True
        assert result.errors == []
        assert result.warnings == []

    def test_leading_whitespace_and_lowercase_select(self, validator):
        result = validator.validate("   select school_name from schools")

        assert result.is_valid is True

    def test_balanced_quotes_do_not_force_rejection(self, validator):
        result = validator.validate(
            "SELECT `school_name` FROM schools WHERE school_type = 'Public' "
            "AND city = \"Toronto\""
        )

        assert result.is_valid is True

    # ============================================================================
    # Rejections
    # ============================================================================

    @pytest.mark.parametrize(
        "query",
        [
            "DELETE FROM schools",
            "UPDATE schools SET name = 'x'",
            "DROP TABLE schools",
            "show tables",
            "WITH x AS (SELECT 1) SELECT * FROM x",
        ],
    )
    def test_non_select_rejected(self, validator, query):
        result = validator.validate(query)

        assert result.is_valid is False
        assert result.errors == ["Only SELECT queries are allowed"]

    @pytest.mark.parametrize(
        "query",
        [
            "SELECT * FROM t; DROP TABLE t;",
            "SELECT * FROM t WHERE 1=1",
            "SELECT SLEEP(5)",
            "SELECT a FROM t UNION SELECT password FROM users",
            "SELECT * FROM information_schema.tables",
            "SELECT * FROM t --",
            "SELECT * FROM t /* hidden */",
            "SELECT LOAD_FILE('/etc/passwd')",
            "SELECT a FROM t INTO OUTFILE '/tmp/x'",
            "SELECT @@version",
            "SELECT BENCHMARK(1000000, MD5('a'))",
            "SELECT * FROM users WHERE name = 'admin'",
            "SELECT * FROM t WHERE a = '' or ''",
            "SELECT current_user",
            "SELECT DATABASE()",
            "SELECT CONCAT(a, b) FROM t",
        ],
    )
    def test_deny_list_rejects(self, validator, query):
        result = validator.validate(query)

        assert result.is_valid is False
        assert any("dangerous SQL pattern" in error for error in result.errors)

    def test_all_deny_list_matches_are_reported(self, validator):
        result = validator.validate("SELECT SLEEP(5) FROM information_schema.tables WHERE 1=1")

        dangerous = [e for e in result.errors if e.startswith("Potentially dangerous")]
        assert len(dangerous) == 3
        assert len(set(dangerous)) == 3

    def test_multiple_statements_rejected(self, validator):
        result = validator.validate("SELECT a FROM t; SELECT b FROM u;")

        assert "Multiple statements not allowed" in result.errors

    def test_inner_semicolon_rejected(self, validator):
        result = validator.validate("SELECT a FROM t; SELECT b FROM u")

        assert "Semicolon must only appear at the end of the query" in result.errors

    @pytest.mark.parametrize(
        ("query", "message"),
        [
            ("SELECT * FROM t WHERE name = 'abc", "Unmatched single quotes detected"),
            ('SELECT * FROM t WHERE name = "abc', "Unmatched double quotes detected"),
            ("SELECT `name FROM t", "Unmatched backticks detected"),
            ("SELECT COUNT(* FROM t", "Unmatched parentheses detected"),
        ],
    )
    def test_unbalanced_tokens_rejected(self, validator, query, message):
        result = validator.validate(query)

        assert result.is_valid is False
        assert message in result.errors

    @pytest.mark.parametrize("query", [None, 42, "", ["SELECT 1"]])
    def test_non_string_or_empty_rejected(self, validator, query):
        result = validator.validate(query)

        assert result.is_valid is False
        assert result.errors == ["Query must be a non-empty string"]

    def test_whitespace_only_rejected(self, validator):
        result = validator.validate("   \n ")

        assert result.errors == ["Query cannot be empty"]

    # ============================================================================
    # Warnings
    # ============================================================================

    def test_long_query_warns(self, validator):
        columns = ", ".join(f"column_{i}" for i in range(1500))
        result = validator.validate(f"SELECT {columns} FROM schools")

        assert result.is_valid is True
        assert "Query is very long and may impact performance" in result.warnings

    def test_nested_subqueries_warn(self, validator):
        query = (
            "SELECT * FROM a WHERE x IN (SELECT x FROM b WHERE y IN "
            "(SELECT y FROM c WHERE z IN (SELECT z FROM d WHERE w IN "
            "(SELECT w FROM e))))"
        )

        result = validator.validate(query)

        assert result.is_valid is True
        assert result.warnings == [
            "Query has many nested subqueries which may impact performance"
        ]

    def test_validation_is_deterministic(self, validator):
        query = "SELECT * FROM t WHERE 1=1 AND name = 'x"

        assert validator.validate(query) == validator.validate(query)

    # ============================================================================
    # Result consistency
    # ============================================================================

    def test_result_rejects_inconsistent_state(self):
        with pytest.raises(pydantic.ValidationError):
            ValidationResult(is_valid=True, errors=["boom"])

    # ============================================================================
    # sanitize / format
    # ============================================================================

    def test_sanitize_strips_comments_and_whitespace(self, validator):
        sanitized = validator.sanitize("SELECT a  -- note\nFROM   t /* c */ WHERE b = 1")

        assert "--" not in sanitized
        assert "/*" not in sanitized
        assert "  " not in sanitized
        assert sanitized.startswith("SELECT a FROM t")
        assert sanitized.endswith(";")

    def test_sanitize_keeps_single_trailing_semicolon(self, validator):
        assert validator.sanitize("SELECT 1;") == "SELECT 1;"

    def test_sanitize_non_string(self, validator):
        assert validator.sanitize(None) == ""

    def test_format_uppercases_keywords_and_spaces_operators(self, validator):
        formatted = validator.format("select a,b from t where x>=1 and y<>2")

        assert formatted == "SELECT a, b FROM t WHERE x >= 1 AND y <> 2"

    def test_format_leaves_identifiers_alone(self, validator):
        formatted = validator.format("select date_opened from schools")

        assert formatted == "SELECT date_opened FROM schools"

    def test_command_kind(self):
        assert SqlValidator.command_kind("SELECT 1") == "SELECT"
        assert SqlValidator.command_kind("DELETE FROM t") == "DELETE"
