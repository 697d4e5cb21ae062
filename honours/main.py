"""FastAPI application for the Honours Degree Tracker."""

import logging
import os
import traceback
from typing import Dict, List, Optional, Sequence

from dotenv import load_dotenv
from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from honours.campus import build_campus_stats
from honours.classification import (
    boundary_for,
    calculate_classification,
    completion_percentage,
    next_tier,
    solve_grade_needed,
)
from honours.insights import generate_insights
from honours.leverage import calculate_leverage
from honours.models import (
    CampusRequest,
    CampusStats,
    ClassificationResult,
    DegreeAnalysis,
    GradeNeeded,
    GradeNeededRequest,
    Insight,
    LeverageResult,
    Module,
    ModulesRequest,
    ProjectionResult,
    RiskAnalysisResult,
    SimulationRequest,
)
from honours.parsers import SUPPORTED_EXTENSIONS, parse_module_sheet
from honours.risk import DEFAULT_RISK_MARGINS, analyze_risk
from honours.simulator import UnknownAssessmentError, project_scenario

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def parse_risk_margins(value: str) -> Dict[str, float]:
    """Parse 'safe:10,watch:5' into a margins dict."""
    margins = dict(DEFAULT_RISK_MARGINS)
    for item in value.split(','):
        if not item.strip():
            continue
        key, number = item.split(':')
        margins[key.strip()] = float(number.strip())
    return margins


# Configuration
RISK_MARGINS = parse_risk_margins(os.getenv('RISK_MARGINS', 'safe:10,watch:5'))
MAX_UPLOAD_SIZE_MB = int(os.getenv('MAX_UPLOAD_SIZE_MB', '10'))
MAX_UPLOAD_SIZE = MAX_UPLOAD_SIZE_MB * 1024 * 1024
DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'

app = FastAPI(title="Honours Degree Tracker", version="1.0.0")

# CORS configuration
allow_origins = os.getenv('ALLOW_ORIGINS', '*').split(',')
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler_json(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions and return JSON."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail}
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler_json(request: Request, exc: RequestValidationError):
    """Handle validation errors and return JSON."""
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors())}
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions and return JSON."""
    logger.error("Unhandled error on %s: %s", request.url.path, exc)
    error_detail = str(exc)
    if DEBUG:
        error_detail = f"{str(exc)}\n\n{traceback.format_exc()}"

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Internal server error: {error_detail}",
            "type": type(exc).__name__
        }
    )


def build_analysis(modules: Sequence[Module]) -> DegreeAnalysis:
    """Run the whole engine over one student's modules."""
    classification = calculate_classification(modules)
    risk = analyze_risk(
        modules,
        classification.classification,
        classification.weighted_average,
        thresholds=RISK_MARGINS,
    )
    leverage = calculate_leverage(modules)
    insights = generate_insights(modules, classification)

    tier = next_tier(classification.classification)
    next_tier_needed = solve_grade_needed(modules, tier) if tier is not None else None

    assessments = [a for m in modules for a in m.assessments]
    summary = {
        'Modules': len(modules),
        'Assessments': len(assessments),
        'Graded': sum(1 for a in assessments if a.is_graded),
        'Completion %': completion_percentage(modules),
        'Boundary Crossings': sum(1 for r in leverage if r.crosses_boundary),
    }

    return DegreeAnalysis(
        classification=classification,
        risk=risk,
        leverage=leverage,
        insights=insights,
        next_tier=next_tier_needed,
        summary=summary,
    )


@app.get("/health")
async def health_check():
    """Health check endpoint to test server connectivity."""
    return JSONResponse(content={"status": "ok", "message": "Server is running"})


@app.post("/classification", response_model=ClassificationResult)
async def classification_endpoint(request: ModulesRequest):
    """Projected classification for a set of modules."""
    return calculate_classification(request.modules)


@app.post("/grade-needed", response_model=Optional[GradeNeeded])
async def grade_needed_endpoint(request: GradeNeededRequest):
    """Average needed on remaining work to reach the target; null when fully graded."""
    if boundary_for(request.target) is None:
        raise HTTPException(status_code=400, detail=f"Unsupported target classification: {request.target}")
    return solve_grade_needed(request.modules, request.target)


@app.post("/leverage", response_model=List[LeverageResult])
async def leverage_endpoint(request: ModulesRequest):
    """Ungraded assessments ranked by impact on the final average."""
    return calculate_leverage(request.modules)


@app.post("/risk", response_model=RiskAnalysisResult)
async def risk_endpoint(request: ModulesRequest):
    """Margin above the current classification boundary."""
    classification = calculate_classification(request.modules)
    return analyze_risk(
        request.modules,
        classification.classification,
        classification.weighted_average,
        thresholds=RISK_MARGINS,
    )


@app.post("/insights", response_model=List[Insight])
async def insights_endpoint(request: ModulesRequest):
    """Rule-based insights for a set of modules."""
    classification = calculate_classification(request.modules)
    return generate_insights(request.modules, classification)


@app.post("/analysis", response_model=DegreeAnalysis)
async def analysis_endpoint(request: ModulesRequest):
    """Classification, risk, leverage and insights in one response."""
    return build_analysis(request.modules)


@app.post("/simulate", response_model=ProjectionResult)
async def simulate_endpoint(request: SimulationRequest):
    """Apply what-if grades to a copy of the modules and compare projections."""
    try:
        return project_scenario(request.modules, request.overrides, request.target)
    except UnknownAssessmentError as e:
        raise HTTPException(status_code=404, detail=e.args[0])
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.post("/campus", response_model=CampusStats)
async def campus_endpoint(request: CampusRequest):
    """Cohort-wide classification breakdown and module statistics."""
    stats = build_campus_stats(request.students)
    logger.info(
        "Campus stats: %d students, %d modules",
        stats.total_students, len(stats.module_stats),
    )
    return stats


@app.post("/upload", response_model=DegreeAnalysis)
async def upload_file(file: UploadFile = File(...)):
    """Upload an assessment sheet (.xlsx or .csv) and analyse it."""
    file_bytes = await file.read()
    if len(file_bytes) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {MAX_UPLOAD_SIZE_MB}MB"
        )

    filename = file.filename or ""
    if not filename.lower().endswith(SUPPORTED_EXTENSIONS):
        raise HTTPException(
            status_code=400,
            detail="Invalid file type. Please upload an Excel (.xlsx) or CSV (.csv) file"
        )

    try:
        modules = parse_module_sheet(file_bytes, filename)
    except ValueError as e:
        logger.warning("Rejected upload %s: %s", filename, e)
        raise HTTPException(status_code=400, detail=str(e))

    if not modules:
        raise HTTPException(status_code=400, detail="No modules found in the uploaded file.")

    analysis = build_analysis(modules)
    logger.info(
        "Results: %s (%.1f%%) from %d modules, %d ungraded assessments ranked",
        analysis.classification.classification.value,
        analysis.classification.weighted_average,
        len(modules),
        len(analysis.leverage),
    )
    return analysis


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv('PORT', '8000')))
