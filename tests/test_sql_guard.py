import pytest

from crm_backend.api.sql_guard import (
    FORBIDDEN_KEYWORDS,
    FORBIDDEN_MUTATION,
    REFUSAL_MESSAGE,
    extract_sql,
    validate_sql,
)


def test_plain_select_passes_through():
    assert extract_sql("SELECT count(*) FROM oportunity;") == "SELECT count(*) FROM oportunity;"


def test_sql_code_fence_is_removed():
    raw = "```sql\nSELECT fullname FROM lead LIMIT 10;\n```"
    assert extract_sql(raw) == "SELECT fullname FROM lead LIMIT 10;"


def test_fence_stripping_is_idempotent():
    once = extract_sql("```sql SELECT id FROM product; ```")
    assert extract_sql(once) == once


def test_reasoning_trace_keeps_only_the_statement():
    raw = "<think>the user wants a table t</think> Sure, here it is: SELECT a FROM t; Hope this helps."
    assert extract_sql(raw) == "SELECT a FROM t;"


def test_reasoning_trace_select_match_is_case_insensitive():
    raw = "<think>hmm</think>\nselect a from t where b = 1"
    assert extract_sql(raw) == "select a from t where b = 1"


def test_reasoning_trace_without_select_yields_empty_candidate():
    assert extract_sql("<think>thinking</think> I cannot answer that.") == ""


def test_select_before_the_trace_delimiter_is_ignored():
    raw = "<think>SELECT wrong FROM x;</think> SELECT right FROM y;"
    assert extract_sql(raw) == "SELECT right FROM y;"


def test_fence_inside_reasoning_output():
    raw = "<think>ok</think>```sql\nSELECT 1;\n```"
    assert extract_sql(raw) == "SELECT 1;"


@pytest.mark.parametrize(
    "sql",
    [
        "SELECT count(*) FROM oportunity;",
        'SELECT fullname FROM "user" WHERE fullname ILIKE \'%alexis%\';',
        "SELECT created_at, updated_at FROM lead;",
        "",
    ],
)
def test_read_only_statements_are_accepted(sql):
    verdict = validate_sql(sql)
    assert verdict.accepted
    assert verdict.sql == sql
    assert verdict.reason is None


@pytest.mark.parametrize("keyword", FORBIDDEN_KEYWORDS)
def test_every_forbidden_keyword_is_rejected(keyword):
    verdict = validate_sql(f"{keyword.upper()} something FROM lead;")
    assert not verdict.accepted
    assert verdict.reason == FORBIDDEN_MUTATION
    assert verdict.keyword == keyword


def test_keyword_match_is_case_insensitive_and_whole_word():
    assert not validate_sql("DeLeTe FROM lead;").accepted
    # substrings of longer identifiers do not match
    assert validate_sql("SELECT created_at, deleted_flag FROM lead;").accepted


def test_refusal_message_text():
    assert REFUSAL_MESSAGE == (
        "Lo siento, pero por razones de seguridad no puedo ejecutar consultas que modifiquen datos. "
        "\n¿En qué más puedo ayudarte?"
    )
