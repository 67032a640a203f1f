"""Query rewriting for counting, incremental filtering and single-key lookup.

Templates are plain SQL with `{{offset}}` / `{{limit}}` placeholders in a
trailing paging clause (`ORDER BY ... OFFSET ... ROWS FETCH NEXT ... ROWS ONLY`
on SQL Server, `ORDER BY ... LIMIT ... OFFSET ...` elsewhere). Rewrites only
look at the trailing SELECT and at top-level clauses (outside parentheses), so
CTE prefixes and subqueries are left untouched.
"""

import re
from datetime import datetime
from typing import Optional, Tuple

from relsync.core.datetime_utils import to_naive_utc
from relsync.platform.sources._base import render_template, template_placeholders

_CTE_START = re.compile(r"^\s*WITH\s+", re.IGNORECASE)
_CTE_MAIN_SELECT = re.compile(r"\)\s+(SELECT[\s\S]+)$", re.IGNORECASE)
_PAGING_KEYWORDS = re.compile(r"\b(ORDER\s+BY|OFFSET|FETCH\s+NEXT|LIMIT)\b", re.IGNORECASE)
_AFTER_WHERE_KEYWORDS = re.compile(
    r"\b(GROUP\s+BY|HAVING|ORDER\s+BY|OFFSET|FETCH\s+NEXT|LIMIT)\b", re.IGNORECASE
)
_WHERE_KEYWORD = re.compile(r"\bWHERE\b", re.IGNORECASE)

WATERMARK_FORMAT = "%Y-%m-%d %H:%M:%S"


def _depth_at(sql: str, index: int) -> int:
    depth = 0
    in_string = False
    for ch in sql[:index]:
        if ch == "'":
            in_string = not in_string
        elif not in_string:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
    return depth


def _first_top_level(pattern: "re.Pattern[str]", sql: str) -> Optional["re.Match[str]"]:
    for match in pattern.finditer(sql):
        if _depth_at(sql, match.start()) == 0:
            return match
    return None


def split_cte(query: str) -> Tuple[str, str]:
    """Split a query into its CTE prefix and trailing SELECT.

    Args:
        query: SQL text

    Returns:
        (prefix, select); prefix is empty for queries without a CTE
    """
    query = query.strip()
    if _CTE_START.match(query):
        match = _CTE_MAIN_SELECT.search(query)
        if match:
            return query[: match.start() + 1], match.group(1)
    return "", query


def split_paging_tail(select: str) -> Tuple[str, str]:
    """Split a SELECT into its body and its ORDER BY / OFFSET / FETCH / LIMIT tail."""
    match = _first_top_level(_PAGING_KEYWORDS, select)
    if match is None:
        return select.strip(), ""
    return select[: match.start()].rstrip(), select[match.start() :].strip()


def strip_paging(query: str) -> str:
    """Remove the paging tail, keeping any CTE prefix."""
    prefix, select = split_cte(query)
    body, _ = split_paging_tail(select)
    return f"{prefix}\n{body}" if prefix else body


def build_count_query(query: str) -> str:
    """Derive a `SELECT COUNT(*) AS total` query from a paged template.

    Args:
        query: Paged query template

    Returns:
        Count query; CTE prefixes are kept and only the trailing SELECT is wrapped
    """
    prefix, select = split_cte(query)
    body, _ = split_paging_tail(select)
    if prefix:
        return f"{prefix}\nSELECT COUNT(*) AS total FROM (\n{body}\n) AS count_subquery"
    return f"SELECT COUNT(*) AS total FROM ({body}) AS count_subquery"


def format_watermark(value: datetime) -> str:
    """Render a watermark as `YYYY-MM-DD HH:MM:SS` in UTC."""
    return to_naive_utc(value).strftime(WATERMARK_FORMAT)


def build_incremental_query(query: str, watermark_column: str, since: datetime) -> str:
    """Restrict a paged template to rows changed after `since`.

    The condition is ANDed into the trailing SELECT's WHERE clause (or added as a
    new WHERE) ahead of GROUP BY / ORDER BY / paging, so the paging placeholders
    survive.

    Args:
        query: Paged query template
        watermark_column: Column holding the row's last-modified time
        since: Lower bound, exclusive

    Returns:
        Rewritten template
    """
    condition = f"{watermark_column} > '{format_watermark(since)}'"
    prefix, select = split_cte(query)

    where = _first_top_level(_WHERE_KEYWORD, select)
    if where is None:
        split_at = _first_top_level(_AFTER_WHERE_KEYWORDS, select)
        if split_at is None:
            rewritten = f"{select.rstrip()} WHERE {condition}"
        else:
            head = select[: split_at.start()].rstrip()
            rewritten = f"{head} WHERE {condition} {select[split_at.start():].strip()}"
    else:
        head = select[: where.start()].rstrip()
        rest = select[where.end() :]
        split_at = _first_top_level(_AFTER_WHERE_KEYWORDS, rest)
        if split_at is None:
            existing, tail = rest.strip(), ""
        else:
            existing, tail = rest[: split_at.start()].strip(), rest[split_at.start() :].strip()
        rewritten = f"{head} WHERE ({existing}) AND {condition}"
        if tail:
            rewritten = f"{rewritten} {tail}"

    return f"{prefix}\n{rewritten}" if prefix else rewritten


def quote_literal(value: str) -> str:
    """Quote a value as a SQL string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def build_single_key_query(query: str, id_field: str, code: str) -> str:
    """Fetch one source row by primary key.

    The template is rendered with `offset=0, limit=1` (for placeholders outside
    the tail), stripped of its paging tail, and wrapped as a subquery filtered
    on the id column.

    Args:
        query: Paged query template
        id_field: Column holding the primary key; a qualified name such as
            `p.code` is filtered by its output name `code`
        code: Primary key value

    Returns:
        Single-row query
    """
    rendered = render_template(query, {"offset": 0, "limit": 1})
    prefix, select = split_cte(rendered)
    body, _ = split_paging_tail(select)
    column = id_field.split(".")[-1]
    single = f"SELECT * FROM ({body}) AS single_record WHERE {column} = {quote_literal(code)}"
    return f"{prefix}\n{single}" if prefix else single


def has_paging_placeholders(query: str) -> bool:
    """Whether the template pages with `{{offset}}`."""
    return "offset" in template_placeholders(query)
