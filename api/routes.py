"""
api/routes.py
REST endpoints.
"""
import time
import uuid

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.models import (
    BreakdownOut,
    CalculationRequest,
    CalculationResponse,
    ErrorResponse,
    GuardrailReport,
    ReloadResponse,
)
from calculation_engine.engine import CalculationEngine
from calculation_engine.exceptions import InvalidRequest
from config.settings import settings
from guardrails.guardrail_layer import GuardrailLayer
from query_processor.parser import RequestParser
from rate_store.json_store import JSONRateStore

router = APIRouter()

_store     = JSONRateStore()
_parser    = RequestParser()
_guardrail = GuardrailLayer()


def _log():
    from monitoring import get_logger
    return get_logger(__name__)


@router.post(
    "/calculate",
    response_model=CalculationResponse,
    responses={422: {"model": ErrorResponse}},
    summary="Price every route option and pick the cheapest",
    description="""
Combine the rate tables into one cost breakdown per route option.

```json
{ "pol": "BUSAN", "pod": "QINGDAO", "destination_id": "OSH", "weight": 5000,
  "reference_date": "2025-06-01", "include_dp": true }
```

Rate gaps never fail the call: the affected category counts as 0, the option
is flagged `expired` and a warning explains why.
""",
)
async def calculate_cost(request: CalculationRequest) -> CalculationResponse:
    log = _log()
    request_id = str(uuid.uuid4())[:8]
    t0 = time.perf_counter()

    log.info(
        "Calculation request",
        request_id=request_id,
        pol=request.pol, pod=request.pod, destination=request.destination_id,
        historical=request.historical,
    )

    try:
        calc_request = _parser.from_payload(
            request.model_dump(exclude={"historical"}, exclude_none=True)
        )
        if request.historical:
            snapshot = _store.snapshot_as_of(request.reference_date)
        else:
            snapshot = _store.snapshot

        engine = CalculationEngine(snapshot, guardrail=_guardrail, is_historical=request.historical)
        result = engine.calculate(calc_request)
    except InvalidRequest as exc:
        log.warning("Invalid calculation request", request_id=request_id, issues=exc.issues)
        body = ErrorResponse(error=exc.code, detail={"errors": exc.issues}, request_id=request_id)
        return JSONResponse(status_code=422, content=body.model_dump())

    gr = _guardrail.validate_output(result)

    elapsed = time.perf_counter() - t0
    log.info(
        "Calculation complete",
        request_id=request_id,
        elapsed_ms=round(elapsed * 1000),
        options=len(result.breakdowns),
        best_total=result.best.total if result.best else None,
    )

    return CalculationResponse(
        success          =True,
        request_id       =request_id,
        currency         =settings.currency,
        reference_date   =result.reference_date.isoformat(),
        is_historical    =result.is_historical,
        best             =BreakdownOut(**result.best.to_dict()) if result.best else None,
        breakdowns       =[BreakdownOut(**b.to_dict()) for b in result.breakdowns],
        guardrail_report =GuardrailReport(**gr),
        warnings         =result.warnings,
    )


# GET /health

@router.get("/health", summary="Health check")
async def health() -> dict:
    stats = _store.stats()
    return {
        "status": "healthy",
        "rate_snapshot": {
            "path":     stats["path"],
            "loaded":   stats["loaded"],
            "tables":   stats["tables"],
            "rejected": stats["rejected"],
            "validity": _store.validity_summary(),
        },
        "currency": settings.currency,
    }


# GET /ports

@router.get("/ports", summary="List route codes present in the rate tables")
async def list_ports() -> dict:
    return {"ports": _store.ports()}


# POST /reload

@router.post("/reload", response_model=ReloadResponse, summary="Re-read the rate snapshot file")
async def reload_snapshot() -> ReloadResponse:
    snapshot = _store.reload()
    return ReloadResponse(success=True, tables=snapshot.counts(), rejected=_store.rejected)
