"""
FastAPI service exposing the MathKit computation core.

Endpoints are thin: they parse the request, call the core and shape the
response. Classified core errors are turned into 422 responses by the
registered error handlers.
"""

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware

from mathkit.core import get_context_logger, settings, setup_logging
from mathkit.engine import CalculationResult, calculate
from mathkit.math import Matrix, SurfaceGrid, format_with_precision, limit, sample_surface, solve_linear_system, suggest
from mathkit.math.formatting import PrecisionResult
from mathkit.parser import (
    Context,
    Parser,
    StepTrace,
    Validator,
    default_context,
    differentiate,
    evaluate,
    evaluate_with_steps,
    free_variables,
    to_string,
)

from .errors import register_error_handlers
from .models import (
    DifferentiateRequest,
    DifferentiateResponse,
    EvaluateRequest,
    ExpressionRequest,
    FormatRequest,
    FormatResponse,
    LimitRequest,
    LimitResponse,
    MatrixOperation,
    MatrixRequest,
    MatrixResponse,
    SolveRequest,
    SolveResponse,
    SurfaceRequest,
    ValidateRequest,
    ValidateResponse,
)

# Setup logging
setup_logging()
logger = get_context_logger(__name__, component="api")


# Lifecycle management
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    logger.info(
        "Starting MathKit API",
        extra_data={"environment": settings.ENVIRONMENT, "debug": settings.DEBUG},
    )
    yield
    logger.info("Shutting down MathKit API")


app = FastAPI(
    title=settings.APP_NAME,
    description="REST API for expression evaluation, limits, linear algebra and formatting",
    version=settings.APP_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

register_error_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


# Dependency injection
def get_context_dep() -> Context:
    """Get the evaluation context"""
    return default_context()


# API Routes

@app.get("/")
async def read_root():
    """API root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "endpoints": {
            "validate": "/validate",
            "evaluate": "/evaluate",
            "steps": "/steps",
            "differentiate": "/differentiate",
            "limit": "/limit",
            "format": "/format",
            "matrix": "/matrix/{operation}",
            "solve": "/solve",
            "surface": "/surface",
            "health": "/health",
        },
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.post("/validate", response_model=ValidateResponse)
def validate_expression(request: ValidateRequest, context: Context = Depends(get_context_dep)):
    """Run the structural checks; an invalid expression is still a 200"""
    result = Validator(context, allow_unary_minus=request.allow_unary_minus).validate(request.expression)
    hints = suggest(request.expression, result.error, context) if result.error else []
    return ValidateResponse(is_valid=result.is_valid, error=result.error, hints=hints)


@app.post("/evaluate", response_model=CalculationResult)
def evaluate_expression(request: EvaluateRequest, context: Context = Depends(get_context_dep)):
    """Validate, parse, evaluate and format an expression"""
    logger.info("Evaluating expression", extra_data={"expression": request.expression})
    return calculate(request.expression, request.variables, request.settings, context)


@app.post("/steps", response_model=StepTrace)
def evaluate_steps(request: ExpressionRequest, context: Context = Depends(get_context_dep)):
    """Evaluate an expression and return each step taken"""
    Validator(context).check(request.expression)
    ast = Parser(context).parse(request.expression)
    return evaluate_with_steps(ast, request.variables, context)


@app.post("/differentiate", response_model=DifferentiateResponse)
def differentiate_expression(request: DifferentiateRequest, context: Context = Depends(get_context_dep)):
    """Symbolic derivative, evaluated too when every variable has a value"""
    Validator(context).check(request.expression)
    ast = Parser(context).parse(request.expression)
    derivative = differentiate(ast, request.variable)

    value = None
    known = {name.lower() for name in request.variables}
    if all(name in known or context.is_constant(name) for name in free_variables(derivative)):
        value = evaluate(derivative, request.variables, context)

    return DifferentiateResponse(
        expression=request.expression,
        variable=request.variable,
        derivative=to_string(derivative, context),
        value=value,
    )


@app.post("/limit", response_model=LimitResponse)
def approximate_limit(request: LimitRequest, context: Context = Depends(get_context_dep)):
    """Numerically approximate a limit"""
    Validator(context).check(request.expression)
    ast = Parser(context).parse(request.expression)
    result = limit(ast, request.variable, request.approaching, scope=request.variables, context=context)
    return LimitResponse(
        expression=request.expression,
        variable=request.variable,
        approaching=request.approaching,
        result=result,
    )


@app.post("/format", response_model=FormatResponse)
def format_value(request: FormatRequest, context: Context = Depends(get_context_dep)):
    """Render a value (or an expression's value) under precision settings"""
    source = request.expression if request.expression is not None else request.value
    outcome = format_with_precision(source, request.settings, request.variables, context)
    if isinstance(outcome, PrecisionResult):
        return FormatResponse(result=outcome)
    return FormatResponse(error=outcome)


@app.post("/matrix/{operation}", response_model=MatrixResponse)
def matrix_operation(operation: MatrixOperation, request: MatrixRequest):
    """Matrix arithmetic, determinant, inverse and transpose"""
    a = Matrix(request.a)

    if operation == "determinant":
        return MatrixResponse(operation=operation, value=a.determinant())
    if operation == "inverse":
        return MatrixResponse(operation=operation, matrix=a.inverse().to_list())
    if operation == "transpose":
        return MatrixResponse(operation=operation, matrix=a.transpose().to_list())

    if operation == "multiply" and request.b is None and request.scalar is not None:
        return MatrixResponse(operation=operation, matrix=a.multiply(request.scalar).to_list())

    if request.b is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Operation '{operation}' requires a second matrix 'b'",
        )

    b = Matrix(request.b)
    if operation == "add":
        result = a.add(b)
    elif operation == "subtract":
        result = a.subtract(b)
    else:
        result = a.multiply(b)
    return MatrixResponse(operation=operation, matrix=result.to_list())


@app.post("/solve", response_model=SolveResponse)
def solve_system(request: SolveRequest):
    """Solve a square linear system"""
    solution = solve_linear_system(request.coefficients, request.constants, method=request.method)
    return SolveResponse(solution=solution)


@app.post("/surface", response_model=SurfaceGrid)
def sample(request: SurfaceRequest, context: Context = Depends(get_context_dep)):
    """Sample z = f(x, y) on a grid for plotting"""
    if request.resolution > settings.MAX_SURFACE_RESOLUTION:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Resolution must not exceed {settings.MAX_SURFACE_RESOLUTION}",
        )
    Validator(context).check(request.expression)
    ast = Parser(context).parse(request.expression)
    return sample_surface(
        ast,
        request.x_range,
        request.y_range,
        request.resolution,
        scope=request.variables,
        context=context,
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mathkit_api.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
