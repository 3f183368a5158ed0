"""
api/app.py
FastAPI application entry point.
Run with:  uvicorn api.app:app --port 8000
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorResponse
from calculation_engine.exceptions import CalculationError, InvalidRequest
from config.settings import settings


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description=(
            "Freight cost calculation over date-gated rate tables. "
            "Combines sea freight, local charges, DTHC, rail, truck or combined inland freight, "
            "weight surcharges and DP cost into one breakdown per route option "
            "and picks the cheapest."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CalculationError)
    async def _calculation_error(request: Request, exc: CalculationError) -> JSONResponse:
        if isinstance(exc, InvalidRequest):
            body = ErrorResponse(error=exc.code, detail={"errors": exc.issues})
            return JSONResponse(status_code=422, content=body.model_dump())
        body = ErrorResponse(error=exc.code, detail=exc.message)
        return JSONResponse(status_code=400, content=body.model_dump())

    @app.exception_handler(Exception)
    async def _global_handler(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error", "detail": str(exc)},
        )

    from api.routes import router
    app.include_router(router, prefix="/api/v1", tags=["Freight Cost"])

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.app:app", host=settings.api_host, port=settings.api_port, log_level="info")
