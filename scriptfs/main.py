"""
scriptfs Main module - command line and HTTP entry points
"""

import json
import logging
import time
from typing import Any, List, Optional

import typer
import uvicorn
from fastapi import FastAPI, HTTPException, status
from fastapi.routing import APIRouter
from pydantic import BaseModel, Field

from scriptfs.features import (
    Feature,
    FeatureRegistry,
    OperationResult,
    handle_list_primitives,
)
from scriptfs.policy import runtime_policy, serve_policy_from_env
from scriptfs.version import get_version

# Module-level logger
logger = logging.getLogger("scriptfs.main")


class ErrorResponse(BaseModel):
    """Standard error response model"""

    detail: Any


# Create CLI app with Typer
app = typer.Typer(
    name="scriptfs",
    help="scriptfs - filesystem primitives for scripts",
    add_completion=False,
)

# Create FastAPI app for API server
api_app = FastAPI(
    title="scriptfs API",
    description="Evaluate scripts and call filesystem primitives",
    version=get_version(),
)

# API router for versioned endpoints
api_router = APIRouter(prefix="/api/v1")


# Request models
class RunRequest(BaseModel):
    program: str


class CallRequest(BaseModel):
    name: str
    args: List[Any] = Field(default_factory=list)


# ----------------- Helper Functions -----------------


class ElapsedMsFormatter(logging.Formatter):
    """Formatter that shows milliseconds since program start, right-aligned for up to 9999 seconds."""
    def __init__(self, fmt=None, datefmt=None, *args, **kwargs):
        super().__init__(fmt, datefmt, *args, **kwargs)
        self.start_time = time.monotonic()
        self.width = 8  # Enough for '9999000ms'

    def format(self, record):
        elapsed_ms = int((time.monotonic() - self.start_time) * 1000)
        if elapsed_ms < 10**7:  # up to 9999.999s
            elapsed = f"[{elapsed_ms:>{self.width}}ms]"
        else:
            elapsed = f"[{elapsed_ms}ms]"
        record.elapsed = elapsed
        return super().format(record)


VERBOSE_LEVEL = 15  # Between INFO (20) and DEBUG (10)
logging.addLevelName(VERBOSE_LEVEL, "VERBOSE")


def setup_logging(debug: bool = False, verbose: bool = False) -> None:
    """Set up logging configuration"""
    if debug:
        log_level = logging.DEBUG
    elif verbose:
        log_level = VERBOSE_LEVEL
    else:
        log_level = logging.INFO
    formatter = ElapsedMsFormatter('%(elapsed)s %(message)s')
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.handlers = []  # Remove any existing handlers
    root.addHandler(handler)
    root.setLevel(log_level)

    if not debug:
        for noisy in ("uvicorn.access", "asyncio"):
            logging.getLogger(noisy).setLevel(logging.WARNING)


def _feature_or_exit(feature_name: str) -> Feature:
    feature = FeatureRegistry.get_feature(feature_name)
    if not feature:
        logger.error("Unknown feature: %s", feature_name)
        raise typer.Exit(code=1)
    return feature


def _handle_cli_result(feature_name: str, result: OperationResult) -> Any:
    """Exit non-zero on failure, otherwise hand back the result data"""
    if not result.success:
        kind = f" [{result.error_kind}]" if result.error_kind else ""
        logger.error("%s failed%s: %s", feature_name, kind, result.error)
        raise typer.Exit(code=1)
    return result.data


def _raise_http_error(result: OperationResult) -> None:
    payload: dict[str, Any] = {
        "kind": result.error_kind or "Error",
        "message": result.error or "An error occurred",
    }
    if isinstance(result.data, dict):
        payload.update({key: value for key, value in result.data.items() if key != "error"})
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=payload)


# ----------------- CLI Commands -----------------


@app.command()
def version() -> None:
    """Show the scriptfs version"""
    setup_logging(False)
    data = _handle_cli_result("version", _feature_or_exit("version").handler())
    logger.info("scriptfs version: %s", data.get("version", "unknown"))


@app.command()
def run(
    filename: str = typer.Argument(..., help="Script file to evaluate"),
    json_output: bool = typer.Option(False, "--json", help="Print results as JSON"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable verbose logging (between info and debug)"),
) -> None:
    """Run a script of filesystem primitive calls"""
    setup_logging(debug, verbose)
    logger.log(VERBOSE_LEVEL, "scriptfs version: %s", get_version())

    # Read the program from file
    try:
        with open(filename, "r", encoding="utf-8") as f:
            program = f.read()
    except FileNotFoundError:
        logger.error("File not found: %s", filename)
        raise typer.Exit(code=1)
    except OSError as e:
        logger.error("Error reading file %s: %s", filename, str(e))
        raise typer.Exit(code=1)

    result = _feature_or_exit("run").handler(program=program, filename=filename)
    if result.data:
        if json_output:
            print(json.dumps(result.data, indent=2))
        else:
            for item in result.data.get("results", []):
                print(f"{item['form']} => {json.dumps(item['value'])}")
    _handle_cli_result("run", result)


@app.command()
def call(
    name: str = typer.Argument(..., help="Primitive name, e.g. is-dir? or filesystem.read-dir"),
    args: Optional[List[str]] = typer.Argument(None, help="Primitive arguments"),
) -> None:
    """Call a single primitive and print its result as JSON"""
    setup_logging(False)
    data = _handle_cli_result(
        "call", _feature_or_exit("call").handler(name=name, args=list(args or []))
    )
    print(json.dumps(data["value"]))


@app.command("list-primitives")
def list_primitives(
    namespace: Optional[str] = typer.Argument(None, help="Namespace to filter primitives (optional)")
) -> None:
    """List available primitives"""
    setup_logging(False)

    result = handle_list_primitives(namespace=namespace)
    data = _handle_cli_result("list-primitives", result)

    if data.get('namespace_filter'):
        print(f"Primitives in namespace '{data['namespace_filter']}':")
    else:
        print("All available primitives:")

    primitives = data.get('primitives', {})
    if not primitives:
        print("  No primitives found.")
    else:
        for name, description in sorted(primitives.items()):
            print(f"  {name:<40} {description}")

    # Show available namespaces if listing all
    if not data.get('namespace_filter'):
        namespaces = data.get('namespaces', [])
        if namespaces:
            print(f"\nAvailable namespaces: {', '.join(sorted(namespaces))}")
            print("Use 'scriptfs list-primitives <namespace>' to filter by namespace.")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind the API server"),
    port: int = typer.Option(8000, help="Port to bind the API server"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode"),
):
    """Start the scriptfs API server"""
    setup_logging(debug)

    policy = serve_policy_from_env()
    logger.info(
        f"Starting scriptfs API server version {get_version()} on {host}:{port}"
    )
    logger.info(
        "Allowed roots: %s", ", ".join(str(root) for root in policy.allowed_roots)
    )
    if not policy.allow_effects:
        logger.info("Mutating primitives are disabled")
    logger.info(f"API documentation available at http://{host}:{port}/docs")

    uvicorn.run(api_app, host=host, port=port)


# ----------------- API Endpoints -----------------


def _dispatch(feature_name: str, **kwargs: Any) -> Any:
    feature = FeatureRegistry.get_feature(feature_name)
    if not feature:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Feature not found: {feature_name}",
        )
    try:
        with runtime_policy(serve_policy_from_env()):
            result = feature.handler(**kwargs)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("Error in %s endpoint: %s", feature_name, str(e), exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from e

    if not result.success:
        _raise_http_error(result)
    return result.data


@api_router.get("/version")
def get_version_endpoint():
    """Get scriptfs version"""
    return _dispatch("version")


@api_router.post("/run", responses={400: {"model": ErrorResponse}})
def run_program_endpoint(request: RunRequest):
    """Evaluate a script under the serve-mode policy"""
    return _dispatch("run", program=request.program)


@api_router.post("/call", responses={400: {"model": ErrorResponse}})
def call_primitive_endpoint(request: CallRequest):
    """Call one primitive under the serve-mode policy"""
    return _dispatch("call", name=request.name, args=request.args)


@api_router.get("/primitives")
def list_primitives_endpoint(namespace: Optional[str] = None):
    """List available primitives"""
    return _dispatch("list_primitives", namespace=namespace)


# Include the router in the FastAPI app
api_app.include_router(api_router)


if __name__ == "__main__":
    app()
