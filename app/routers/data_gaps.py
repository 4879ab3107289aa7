# app/routers/data_gaps.py

from fastapi import APIRouter, Depends

from app.base.dependencies import get_data_gap_service
from app.base.models import CompanyGapRequest, DataGapRequest, GapAnalysisResponse
from app.services.gap_analysis_service import DataGapService

router = APIRouter(tags=["Data Gaps"])


@router.post("/analyze", summary="Analyze questionnaire answers for memo readiness", response_model=GapAnalysisResponse)
def analyze_responses(req: DataGapRequest, service: DataGapService = Depends(get_data_gap_service)):
    return service.analyze_responses(req.responses)


@router.post("/company", summary="Analyze a company's stored answers", response_model=GapAnalysisResponse)
def analyze_company(req: CompanyGapRequest, service: DataGapService = Depends(get_data_gap_service)):
    return service.analyze_company(req.company_id)
