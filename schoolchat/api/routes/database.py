"""
Database Routes

Connection test and schema introspection for the configured database
(local MySQL or the remote query proxy, depending on DATABASE_MODE).
"""

from fastapi import APIRouter, Depends

from schoolchat.api.deps import get_pipeline
from schoolchat.models.query import ConnectionCheck, TableListResult, TableSchemaResult
from schoolchat.pipeline.orchestrator import AnalysisPipeline

router = APIRouter(prefix="/database")


@router.get("/test", response_model=ConnectionCheck)
async def test_connection(pipeline: AnalysisPipeline = Depends(get_pipeline)) -> ConnectionCheck:
    return await pipeline.test_connection()


@router.get("/tables", response_model=TableListResult)
async def list_tables(pipeline: AnalysisPipeline = Depends(get_pipeline)) -> TableListResult:
    return await pipeline.get_available_tables()


@router.get("/tables/{table_name}/schema", response_model=TableSchemaResult)
async def table_schema(
    table_name: str, pipeline: AnalysisPipeline = Depends(get_pipeline)
) -> TableSchemaResult:
    return await pipeline.get_table_schema(table_name)
