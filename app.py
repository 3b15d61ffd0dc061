import logging
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ga_report import DatasetError, GaDataParams, ReportData, ReportGenerator, load_dataset
from mcp_servers.ga_server_stdio import mcp
from settings import Settings, get_settings

logger = logging.getLogger(__name__)


# ----------------------------
# Helpers
# ----------------------------

def schema_type(prop: Dict[str, Any]) -> str:
    """
    JSON-schema property -> discovery type name.
    Optional[str] shows up as anyOf [string, null].
    """
    if "type" in prop:
        return prop["type"]
    for option in prop.get("anyOf", []):
        t = option.get("type")
        if t and t != "null":
            return t
    return "string"


def tool_manifest(tool) -> Dict[str, Any]:
    schema = tool.inputSchema or {}
    required = set(schema.get("required", []))
    parameters = [
        {
            "name": name,
            "type": schema_type(prop),
            "description": prop.get("description", ""),
            "required": name in required,
        }
        for name, prop in schema.get("properties", {}).items()
    ]
    return {
        "name": tool.name,
        "description": tool.description or "",
        "parameters": parameters,
        "endpoint": f"/tools/{tool.name}",
        "http_method": "POST",
    }


def unwrap_parameters(payload: Dict[str, Any]) -> Dict[str, Any]:
    """
    Discovery clients send {"parameters": {...}}; plain callers send the
    parameters object itself. Accept both.
    """
    inner = payload.get("parameters")
    if isinstance(inner, dict):
        return inner
    return payload


def get_report_generator(settings: Settings = Depends(get_settings)) -> ReportGenerator:
    # Fresh read per request, nothing shared between calls
    return ReportGenerator(load_dataset(settings.dataset_path), rng=settings.make_rng())


# ----------------------------
# FastAPI
# ----------------------------

app = FastAPI(title="GA Data Tool")

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DatasetError)
async def dataset_error_handler(request: Request, exc: DatasetError) -> JSONResponse:
    logger.error("ga_data invocation failed: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "healthy"}


@app.get("/discovery")
async def discovery() -> Dict[str, List[Dict[str, Any]]]:
    tools = await mcp.list_tools()
    return {"functions": [tool_manifest(t) for t in tools]}


@app.post("/tools/ga_data", response_model=ReportData)
def ga_data(
    payload: Optional[Dict[str, Any]] = Body(None),
    generator: ReportGenerator = Depends(get_report_generator),
) -> ReportData:
    try:
        params = GaDataParams.model_validate(unwrap_parameters(payload or {}))
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e
    return generator.generate(params)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Discovery endpoint: http://localhost:%s/discovery", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)
