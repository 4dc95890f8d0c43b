"""
SQL extraction and mutation guard.

Functions
---------
extract_sql(raw: str) -> str
    Pull the statement out of a model reply (code fences, reasoning traces).
validate_sql(candidate: str) -> SqlVerdict
    Reject any statement containing a data- or schema-mutating keyword.

The guard is a keyword filter, not a parser: it also rejects read-only
statements that merely contain one of the words (for example a column named
``comment``). That false positive is accepted; false negatives are not.
"""

import re
from typing import Optional

from pydantic import BaseModel

FORBIDDEN_KEYWORDS = (
    "insert",
    "update",
    "delete",
    "drop",
    "alter",
    "truncate",
    "create",
    "rename",
    "comment",
    "grant",
    "revoke",
    "merge",
    "replace",
)

FORBIDDEN_PATTERN = re.compile(r"\b(" + "|".join(FORBIDDEN_KEYWORDS) + r")\b", re.IGNORECASE)

REASONING_END_TAG = "</think>"

REFUSAL_MESSAGE = (
    "Lo siento, pero por razones de seguridad no puedo ejecutar consultas que modifiquen datos. "
    "\n¿En qué más puedo ayudarte?"
)
"""Reply given when the guard rejects a statement."""

FORBIDDEN_MUTATION = "forbidden-mutation"


class SqlVerdict(BaseModel):
    """Outcome of :func:`validate_sql`."""
    accepted: bool
    sql: str
    reason: Optional[str] = None
    keyword: Optional[str] = None


def extract_sql(raw: str) -> str:
    """
    Extract the SQL statement from a model reply.

    Steps, in order:
        1) If the text contains a ```` ```sql ```` fence, drop the first
           ```` ```sql ```` marker and then the first remaining ```` ``` ````.
        2) If the text contains ``</think>``, look only after its first
           occurrence: keep from the first case-insensitive ``select`` through
           the next ``;`` inclusive (or to the end). No ``select`` → ``""``.
        3) Strip surrounding whitespace.

    Applying it to its own output returns the same string.
    """
    text = raw or ""
    if "```sql" in text:
        text = text.replace("```sql", "", 1).replace("```", "", 1)

    if REASONING_END_TAG in text:
        after_think = text.split(REASONING_END_TAG, 1)[1]
        select_index = after_think.lower().find("select")
        if select_index == -1:
            return ""
        after_select = after_think[select_index:]
        semicolon_index = after_select.find(";")
        text = after_select[: semicolon_index + 1] if semicolon_index != -1 else after_select

    return text.strip()


def validate_sql(candidate: str) -> SqlVerdict:
    """
    Check a statement against the forbidden keyword list.

    Args:
        candidate (str): Extracted SQL.

    Returns:
        SqlVerdict: ``accepted=False`` with ``reason="forbidden-mutation"`` and the
        matched keyword (lower-cased) when any forbidden word appears as a whole
        word, in any case; otherwise ``accepted=True`` with the statement unchanged.
        An empty statement is accepted; it fails later, at execution.
    """
    match = FORBIDDEN_PATTERN.search(candidate)
    if match:
        return SqlVerdict(
            accepted=False,
            sql=candidate,
            reason=FORBIDDEN_MUTATION,
            keyword=match.group(1).lower(),
        )
    return SqlVerdict(accepted=True, sql=candidate)
