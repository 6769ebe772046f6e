"""
Analysis Routes

Full pipeline runs, SQL validation and validated custom SQL. Every endpoint
answers 200 with a success flag; failures are described in the body.
"""

import logging

from fastapi import APIRouter, Depends

from schoolchat.api.deps import get_pipeline
from schoolchat.models.api import AnalysisRequest, SqlRequest
from schoolchat.models.pipeline import AnalysisResponse, CustomSqlResponse
from schoolchat.models.query import ValidationResult
from schoolchat.pipeline.orchestrator import AnalysisPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis")


@router.post("/query", response_model=AnalysisResponse)
async def process_query(
    request: AnalysisRequest, pipeline: AnalysisPipeline = Depends(get_pipeline)
) -> AnalysisResponse:
    logger.info(f"Analysis request received: {request.question[:100]}...")
    return await pipeline.process_query(request.question, request.options)


@router.post("/validate", response_model=ValidationResult)
async def validate_sql(
    request: SqlRequest, pipeline: AnalysisPipeline = Depends(get_pipeline)
) -> ValidationResult:
    return pipeline.validate_only(request.sql)


@router.post("/sql", response_model=CustomSqlResponse)
async def execute_sql(
    request: SqlRequest, pipeline: AnalysisPipeline = Depends(get_pipeline)
) -> CustomSqlResponse:
    return await pipeline.execute_custom_sql(request.sql, request.options)
