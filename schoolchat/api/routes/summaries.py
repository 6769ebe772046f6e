"""Summary Routes"""

from fastapi import APIRouter, Depends

from schoolchat.api.deps import get_pipeline
from schoolchat.models.api import CompareSummaryRequest, SummaryRequest, TrendSummaryRequest
from schoolchat.models.pipeline import ComparisonResponse, SummaryResponse, TrendResponse
from schoolchat.pipeline.orchestrator import AnalysisPipeline

router = APIRouter()


@router.post("/summaries", response_model=SummaryResponse)
async def create_summary(
    request: SummaryRequest, pipeline: AnalysisPipeline = Depends(get_pipeline)
) -> SummaryResponse:
    return await pipeline.generate_custom_summary(request.data, request.context)


@router.post("/summaries/compare", response_model=ComparisonResponse)
async def compare_summary(
    request: CompareSummaryRequest, pipeline: AnalysisPipeline = Depends(get_pipeline)
) -> ComparisonResponse:
    return await pipeline.compare_datasets(request.datasets, request.labels, request.context)


@router.post("/summaries/trend", response_model=TrendResponse)
async def trend_summary(
    request: TrendSummaryRequest, pipeline: AnalysisPipeline = Depends(get_pipeline)
) -> TrendResponse:
    return await pipeline.analyze_trend(
        request.data, request.date_column, request.value_column, request.context
    )
