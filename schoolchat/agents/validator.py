"""
SqlValidator: pattern-based safety gate for generated SQL.

Rule-based checks over a single SQL string:
- Only SELECT statements are accepted
- A fixed deny-list of injection, probing and side-effect patterns
- One statement at most, with the semicolon only at the very end
- Balanced quotes, backticks and parentheses
- Performance warnings for very long queries and deep subquery nesting

NO LLM calls and no SQL grammar. These are best-effort regular expressions:
a comment marker or keyword inside a string literal is matched like any other
text, and that is accepted behaviour.
"""

import logging
import re

import sqlparse

from schoolchat.models.query import ValidationResult

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 10_000
MAX_SUBQUERIES = 3


def _i(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


class SqlValidator:
    """
    Static SQL safety gate.

    Every deny-list match adds its own error; validation reports all
    violations instead of stopping at the first one.
    """

    DENY_PATTERNS: tuple[re.Pattern[str], ...] = (
        # Statement chaining into writes or DDL
        _i(r";\s*drop\s+"),
        _i(r";\s*delete\s+"),
        _i(r";\s*update\s+"),
        _i(r";\s*insert\s+"),
        _i(r";\s*create\s+"),
        _i(r";\s*alter\s+"),
        _i(r";\s*truncate\s+"),
        _i(r"union\s+select"),
        # Comment markers
        re.compile(r"--\s*$"),
        re.compile(r"/\*[\s\S]*?\*/"),
        # Command execution
        _i(r"xp_cmdshell"),
        _i(r"sp_executesql"),
        _i(r"exec\s*\("),
        _i(r"execute\s*\("),
        _i(r"';\s*exec"),
        _i(r"';\s*execute"),
        # File I/O
        _i(r"load_file\s*\("),
        _i(r"into\s+outfile"),
        _i(r"into\s+dumpfile"),
        # Timing probes
        _i(r"benchmark\s*\("),
        _i(r"sleep\s*\("),
        _i(r"pg_sleep\s*\("),
        _i(r"waitfor\s+delay"),
        # Metadata probing
        _i(r"information_schema"),
        _i(r"mysql\.user"),
        _i(r"pg_user"),
        _i(r"sysobjects"),
        _i(r"syscolumns"),
        _i(r"msysaces"),
        _i(r"msysqueries"),
        # Tautologies and classic injection idioms
        _i(r"admin\s*'"),
        re.compile(r"1=1"),
        _i(r"'or'1'='1"),
        _i(r'"or"1"="1'),
        _i(r"'\s+or\s+'"),
        _i(r'"\s+or\s+"'),
        # String building and environment functions
        _i(r"concat\s*\("),
        _i(r"group_concat\s*\("),
        _i(r"@@version"),
        _i(r"@@hostname"),
        _i(r"user\s*\(\)"),
        _i(r"database\s*\(\)"),
        _i(r"version\s*\(\)"),
        _i(r"current_user"),
        _i(r"current_database"),
        _i(r"getdate\s*\(\)"),
        _i(r"rand\s*\(\)"),
    )

    KEYWORDS: tuple[str, ...] = (
        "SELECT", "FROM", "WHERE", "JOIN", "INNER JOIN", "LEFT JOIN", "RIGHT JOIN",
        "FULL JOIN", "ON", "AS", "ORDER BY", "GROUP BY", "HAVING", "LIMIT",
        "DISTINCT", "COUNT", "SUM", "AVG", "MIN", "MAX", "AND", "OR", "NOT",
        "IN", "BETWEEN", "LIKE", "IS", "NULL", "DESC", "ASC", "CASE", "WHEN",
        "THEN", "ELSE", "END", "IF", "IFNULL", "COALESCE", "CONCAT", "SUBSTRING",
        "LENGTH", "UPPER", "LOWER", "TRIM", "CAST", "CONVERT", "DATE", "TIME",
        "DATETIME", "YEAR", "MONTH", "DAY", "HOUR", "MINUTE", "SECOND",
        "DATE_FORMAT", "STR_TO_DATE", "NOW", "CURDATE", "CURTIME",
    )  # fmt: skip

    _KEYWORD_RE = re.compile(r"\b(" + "|".join(KEYWORDS) + r")\b", re.IGNORECASE)
    # Longer operators first so "<=" is not split into "<" and "=".
    _OPERATOR_RE = re.compile(r"\s*(<=|>=|<>|!=|=|<|>)\s*")
    _SUBQUERY_RE = re.compile(r"\(\s*select", re.IGNORECASE)

    def validate(self, query: object) -> ValidationResult:
        """
        Check one SQL string.

        Args:
            query: Candidate SQL. Anything other than a non-empty string fails.

        Returns:
            ValidationResult with every violation found
        """
        if not isinstance(query, str) or not query:
            return ValidationResult.from_findings(["Query must be a non-empty string"])

        sql = query.strip()
        if not sql:
            return ValidationResult.from_findings(["Query cannot be empty"])

        if not sql.lower().startswith("select"):
            return ValidationResult.from_findings(["Only SELECT queries are allowed"])

        errors: list[str] = []
        warnings: list[str] = []

        for pattern in self.DENY_PATTERNS:
            if pattern.search(sql):
                errors.append(f"Potentially dangerous SQL pattern detected: {pattern.pattern}")

        errors.extend(self._check_statements(sql))
        errors.extend(self._check_balance(sql))

        if len(sql) > MAX_QUERY_LENGTH:
            warnings.append("Query is very long and may impact performance")
        if len(self._SUBQUERY_RE.findall(sql)) > MAX_SUBQUERIES:
            warnings.append("Query has many nested subqueries which may impact performance")

        result = ValidationResult.from_findings(errors, warnings)
        if result.is_valid:
            logger.debug(f"SQL accepted ({len(warnings)} warnings)")
        else:
            logger.info(
                f"SQL rejected with {len(errors)} errors",
                extra={"errors": errors, "command": self.command_kind(sql)},
            )
        return result

    def _check_statements(self, sql: str) -> list[str]:
        semicolons = sql.count(";")
        if semicolons > 1:
            return ["Multiple statements not allowed"]
        if semicolons == 1 and not sql.endswith(";"):
            return ["Semicolon must only appear at the end of the query"]
        return []

    def _check_balance(self, sql: str) -> list[str]:
        errors = []
        if sql.count("'") % 2:
            errors.append("Unmatched single quotes detected")
        if sql.count('"') % 2:
            errors.append("Unmatched double quotes detected")
        if sql.count("`") % 2:
            errors.append("Unmatched backticks detected")
        if sql.count("(") != sql.count(")"):
            errors.append("Unmatched parentheses detected")
        return errors

    @staticmethod
    def command_kind(sql: str) -> str:
        """Statement type as reported by sqlparse (SELECT, INSERT, UNKNOWN...)."""
        statements = sqlparse.parse(sql)
        return statements[0].get_type() if statements else "UNKNOWN"

    def sanitize(self, query: object) -> str:
        """Strip comments, collapse whitespace and ensure a trailing semicolon.

        Pure text transform. The output is not re-validated.
        """
        if not isinstance(query, str) or not query.strip():
            return ""
        stripped = sqlparse.format(query.strip(), strip_comments=True)
        sanitized = re.sub(r"\s+", " ", stripped).strip()
        if not sanitized.endswith(";"):
            sanitized += ";"
        return sanitized

    def format(self, query: object) -> str:
        """Uppercase known keywords and normalize spacing around commas and operators."""
        if not isinstance(query, str) or not query.strip():
            return ""
        formatted = self._KEYWORD_RE.sub(lambda m: m.group(0).upper(), query.strip())
        formatted = re.sub(r"\s*,\s*", ", ", formatted)
        formatted = self._OPERATOR_RE.sub(lambda m: f" {m.group(1)} ", formatted)
        return re.sub(r"\s+", " ", formatted).strip()
