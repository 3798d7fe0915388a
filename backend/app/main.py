from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from dualsolver import SI_PREFIXES, NewtonSettings, calculate, check_source
from dualsolver.config import DEFAULT_NEWTON_SETTINGS, DEFAULT_PRECISION
from dualsolver.project import VariableDefinition

app = FastAPI(title="DualSolver API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class VariableModel(BaseModel):
    id: int
    name: str
    value: float = 0.0
    imag: float = 0.0
    locked: bool = False
    si_prefix: str = ""
    unit: str = ""
    description: str = ""


class SettingsModel(BaseModel):
    tolerance: float = Field(DEFAULT_NEWTON_SETTINGS.tolerance, gt=0)
    max_iterations: int = Field(DEFAULT_NEWTON_SETTINGS.max_iterations, ge=1)


class CalculateRequest(BaseModel):
    source_code: str
    variables: list[VariableModel] = []
    settings: Optional[SettingsModel] = None
    precision: int = Field(DEFAULT_PRECISION, ge=1, le=17)


class ErrorInfo(BaseModel):
    message: str
    line: int
    column: int
    offset: int
    rendered: str


class IterationInfo(BaseModel):
    iteration: int
    residual: float
    alpha: float


class CalculateResponse(BaseModel):
    ok: bool
    source_code: str
    variables: list[VariableModel]
    errors: list[ErrorInfo]
    failure: Optional[str]
    message: str
    iterations: int
    history: list[IterationInfo]
    summary: dict


class CheckRequest(BaseModel):
    source_code: str


class CheckResponse(BaseModel):
    ok: bool
    errors: list[ErrorInfo]


class PrefixInfo(BaseModel):
    symbol: str
    factor: float


@app.post("/api/calculate", response_model=CalculateResponse)
def calculate_endpoint(req: CalculateRequest):
    if not req.source_code.strip():
        raise HTTPException(status_code=400, detail="Source code cannot be empty.")

    variables = [VariableDefinition(**v.model_dump()) for v in req.variables]
    settings = None
    if req.settings is not None:
        settings = NewtonSettings(tolerance=req.settings.tolerance,
                                  max_iterations=req.settings.max_iterations)
    try:
        result = calculate(req.source_code, variables,
                           settings=settings, precision=req.precision)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Solver error: {str(e)}")

    return result.to_dict()


@app.post("/api/check", response_model=CheckResponse)
def check_endpoint(req: CheckRequest):
    errors = check_source(req.source_code)
    return {"ok": not errors, "errors": [e.to_dict() for e in errors]}


@app.get("/api/prefixes", response_model=list[PrefixInfo])
def prefixes_endpoint():
    return [{"symbol": p.symbol, "factor": p.factor} for p in SI_PREFIXES]
