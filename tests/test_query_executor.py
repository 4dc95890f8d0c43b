import pytest
from sqlalchemy.exc import DBAPIError

from crm_backend.api.query_executor import CrmQueryExecutor


@pytest.fixture
def executor(tmp_path):
    return CrmQueryExecutor(url=f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}")


@pytest.mark.asyncio
async def test_rows_come_back_as_dicts(executor):
    rows = await executor.execute("SELECT 5 AS count, 'Ganado' AS stage")
    assert rows == [{"count": 5, "stage": "Ganado"}]
    await executor.dispose()


@pytest.mark.asyncio
async def test_statement_text_is_sent_verbatim(executor):
    # ':name' and '%' inside literals must not be treated as bind parameters
    rows = await executor.execute("SELECT 'hora: 10:30' AS label, '%alexis%' AS pattern;")
    assert rows == [{"label": "hora: 10:30", "pattern": "%alexis%"}]
    await executor.dispose()


@pytest.mark.asyncio
async def test_engine_is_created_once_and_reused(executor):
    first = executor.engine
    await executor.execute("SELECT 1 AS value")
    assert executor.engine is first
    await executor.dispose()
    assert executor._engine is None


@pytest.mark.asyncio
async def test_statement_without_rows_returns_empty_list(executor):
    assert await executor.execute("CREATE TABLE scratch (a INTEGER)") == []
    await executor.dispose()


@pytest.mark.asyncio
async def test_database_errors_propagate(executor):
    with pytest.raises(DBAPIError):
        await executor.execute("SELECT missing_column FROM missing_table")
    await executor.dispose()



@pytest.mark.asyncio
@pytest.mark.parametrize("sql", ["", "   ", "\n"])
async def test_blank_statement_is_rejected_before_reaching_the_database(executor, sql):
    with pytest.raises(ValueError):
        await executor.execute(sql)
    assert executor._engine is None
