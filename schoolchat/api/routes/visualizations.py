"""
Visualization Routes

Build charts from caller-supplied rows, list and delete stored artifacts.
The artifacts themselves are served as static files under the configured
URL prefix.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from schoolchat.api.deps import get_pipeline
from schoolchat.models.api import DeleteResponse, VisualizationRequest
from schoolchat.models.pipeline import VisualizationResponse
from schoolchat.models.visualization import VisualizationFile
from schoolchat.pipeline.orchestrator import AnalysisPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/visualizations")


@router.post("", response_model=VisualizationResponse)
async def create_visualization(
    request: VisualizationRequest, pipeline: AnalysisPipeline = Depends(get_pipeline)
) -> VisualizationResponse:
    return await pipeline.create_custom_visualization(request.data, request.options)


@router.get("", response_model=list[VisualizationFile])
async def list_visualizations(
    pipeline: AnalysisPipeline = Depends(get_pipeline),
) -> list[VisualizationFile]:
    return pipeline.list_visualizations()


@router.delete("/{filename}", response_model=DeleteResponse)
async def delete_visualization(
    filename: str, pipeline: AnalysisPipeline = Depends(get_pipeline)
) -> DeleteResponse:
    if not pipeline.delete_visualization(filename):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Visualization not found: {filename}",
        )
    logger.info(f"Deleted visualization {filename}")
    return DeleteResponse(success=True, filename=filename)
