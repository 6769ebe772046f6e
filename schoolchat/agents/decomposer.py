"""
QueryDecomposer: split a SELECT into table, select list and clauses.

The remote query proxy's structured mode takes {table, select, conditions}
instead of raw SQL. This is a regex reading of the statement, not a parser:
it finds the first FROM boundary, then looks for each clause keyword and
captures up to the next recognised keyword or the end of the string.
Keywords inside string literals or subqueries can confuse it.
"""

import logging
import re

from schoolchat.models.errors import DecompositionError
from schoolchat.models.query import DecomposedQuery

logger = logging.getLogger(__name__)

_FLAGS = re.IGNORECASE | re.DOTALL

_SELECT_FROM = re.compile(
    r"select\s+((?:(?!from\s).)*?)\s+from\s+([`\w.]+(?:\s+as\s+\w+)?)", _FLAGS
)
_SIMPLE_SELECT_FROM = re.compile(r"select\s+(.*?)\s+from\s+(\S+)", _FLAGS)

_END = r"\s*;?\s*$"

# Fixed emission order, independent of where each clause sits in the text.
_CLAUSES: tuple[tuple[str, re.Pattern[str]], ...] = (
    (
        "WHERE",
        re.compile(
            r"\bwhere\s+((?:(?!(?:group\s+by|order\s+by|limit|having)\s).)*?)"
            r"(?:\s+(?:group\s+by|order\s+by|limit|having)|" + _END + ")",
            _FLAGS,
        ),
    ),
    (
        "GROUP BY",
        re.compile(
            r"\bgroup\s+by\s+((?:(?!(?:having|order\s+by|limit)\s).)*?)"
            r"(?:\s+(?:having|order\s+by|limit)|" + _END + ")",
            _FLAGS,
        ),
    ),
    (
        "HAVING",
        re.compile(
            r"\bhaving\s+((?:(?!(?:order\s+by|limit)\s).)*?)"
            r"(?:\s+(?:order\s+by|limit)|" + _END + ")",
            _FLAGS,
        ),
    ),
    (
        "ORDER BY",
        re.compile(
            r"\border\s+by\s+((?:(?!limit\s).)*?)(?:\s+limit|" + _END + ")",
            _FLAGS,
        ),
    ),
    (
        "LIMIT",
        re.compile(r"\blimit\s+(\d+)(?:\s+offset\s+\d+)?" + _END, _FLAGS),
    ),
)


class QueryDecomposer:
    """Best-effort SELECT decomposition for the structured proxy call."""

    def decompose(self, query: str) -> DecomposedQuery | None:
        """
        Decompose a SELECT statement.

        Returns:
            DecomposedQuery, or None when no SELECT ... FROM shape is found.
            Callers treat None as fatal for that query and do not retry.
        """
        if not isinstance(query, str):
            return None
        sql = query.strip()
        if not sql.lower().startswith("select"):
            logger.debug(f"Not a SELECT statement: {sql[:50]}")
            return None

        match = _SELECT_FROM.search(sql)
        if not match:
            simple = _SIMPLE_SELECT_FROM.search(sql)
            if not simple:
                logger.debug(f"Could not find SELECT/FROM in: {sql[:100]}")
                return None
            return DecomposedQuery(
                table=self._clean_table(simple.group(2)),
                select_list=simple.group(1).strip() or "*",
            )

        clauses = []
        for keyword, pattern in _CLAUSES:
            clause = pattern.search(sql)
            if clause and clause.group(1).strip():
                clauses.append(f"{keyword} {clause.group(1).strip()}")

        decomposed = DecomposedQuery(
            table=self._clean_table(match.group(2)),
            select_list=match.group(1).strip() or "*",
            clauses=clauses,
        )
        logger.debug(
            f"Decomposed query on table {decomposed.table}",
            extra={"clauses": decomposed.clauses},
        )
        return decomposed

    def decompose_or_raise(self, query: str) -> DecomposedQuery:
        decomposed = self.decompose(query)
        if decomposed is None:
            raise DecompositionError(
                f"Unable to parse SELECT query: {query}", context={"query": query}
            )
        return decomposed

    @staticmethod
    def _clean_table(raw: str) -> str:
        return re.sub(r"[`;]", "", raw.strip())
