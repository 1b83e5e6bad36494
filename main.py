from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from label_modules.config import FIELD_TYPES, MASKING_STRATEGIES, Settings, load_settings
from label_modules.errors import InternalError, ValidationError, WorkflowError
from label_modules.field_detector import FieldDetector, LocalFieldDetector
from label_modules.inpainting import ImagenInpainter
from label_modules.llm import MinIntervalRateLimiter, OpenAIVisionBackend, VisionLLMClient
from label_modules.ocr import GoogleVisionOCR
from label_modules.reconciler import OCRReconciler
from label_modules.restore import DetailRestorer, RestoreOptions
from label_modules.workflow import GcsStore, OCRInpaintingWorkflow, ProcessImageRequest
from utils import logger

# --- Shared collaborators ---
services: Dict[str, Any] = {}


def build_services(settings: Settings) -> Dict[str, Any]:
    """Wire every collaborator once per process; the rate limiter is shared by all model calls."""
    limiter = MinIntervalRateLimiter(settings.llm_min_interval_s)
    backend = OpenAIVisionBackend(
        base_url=settings.llm_base_url,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        timeout=settings.llm_timeout_s,
    )
    llm = VisionLLMClient(
        backend,
        limiter,
        max_retries=settings.llm_max_retries,
        backoff_base_s=settings.llm_backoff_base_s,
    )
    restorer = DetailRestorer()
    workflow = OCRInpaintingWorkflow(
        settings=settings,
        store=GcsStore(settings.input_bucket, settings.output_bucket),
        ocr=GoogleVisionOCR(timeout=settings.llm_timeout_s),
        detector=FieldDetector(
            llm,
            LocalFieldDetector(
                proximity_px=settings.fallback_proximity_px,
                gap_ratio=settings.distance_gap_ratio,
            ),
        ),
        reconciler=OCRReconciler(llm),
        inpainter=ImagenInpainter(
            project_id=settings.project_id,
            location=settings.location,
            model=settings.inpaint_model,
            sample_count=settings.inpaint_sample_count,
            timeout=settings.inpaint_timeout_s,
        ),
        restorer=restorer,
    )
    return {"settings": settings, "workflow": workflow, "restorer": restorer}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Build collaborators on startup and drop them on shutdown.
    """
    logger.info("Loading services...")
    services.update(build_services(load_settings()))
    logger.info(f"Services ready: {', '.join(services.keys())}")

    yield

    logger.info("Shutting down and cleaning up...")
    services.clear()


app = FastAPI(lifespan=lifespan)


# --- Error payloads ---

def failure_payload(err: WorkflowError) -> Dict[str, Any]:
    return {
        "type": err.error_type,
        "err": err.message,
        "metadata": {
            "processedAt": datetime.now(timezone.utc).isoformat(),
            "success": False,
            "note": "Auto field detection failed",
            "searchMode": "auto_field_detection",
            "supportedFieldTypes": list(FIELD_TYPES),
            "possibleMaskingStrategies": list(MASKING_STRATEGIES),
            "stepsCompleted": err.details.get("stepsCompleted", []),
            "details": {k: v for k, v in err.details.items() if k != "stepsCompleted"},
        },
    }


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    return JSONResponse(status_code=exc.status_code, content=failure_payload(exc))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}")
    err = InternalError(str(exc))
    return JSONResponse(status_code=err.status_code, content=failure_payload(err))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(p) for p in e['loc'] if p != 'body')}: {e['msg']}" for e in exc.errors()
    )
    if request.url.path == "/ocr/restoreDetails":
        return JSONResponse(status_code=400, content={"error": "Invalid input", "details": problems})
    err = ValidationError(f"Invalid request: {problems}")
    return JSONResponse(status_code=err.status_code, content=failure_payload(err))


# --- Endpoints ---

@app.get("/health")
def health_check():
    return {"status": "ok", "services": list(services.keys())}


@app.post("/ocr/processImage")
def process_image(req: ProcessImageRequest):
    workflow: OCRInpaintingWorkflow = services["workflow"]
    result = workflow.run(req)
    return {"type": "Success", "data": result.to_response()}


@app.post("/ocr/restoreDetails")
def restore_details(
    original: Optional[UploadFile] = File(None),
    mask: Optional[UploadFile] = File(None),
    inpainted: Optional[UploadFile] = File(None),
    featherRadius: float = Form(1.0),
    blendMode: str = Form("normal"),
    maskChannel: str = Form("red"),
):
    try:
        missing = [n for n, f in (("original", original), ("mask", mask), ("inpainted", inpainted)) if f is None]
        if missing:
            raise ValidationError(f"Missing image files: {', '.join(missing)}")
        options = RestoreOptions(feather_radius=featherRadius, blend_mode=blendMode, mask_channel=maskChannel)
        restorer: DetailRestorer = services["restorer"]
        png = restorer.restore(original.file.read(), mask.file.read(), inpainted.file.read(), options)
    except ValidationError as e:
        logger.warning(f"Detail restore rejected: {e}")
        return JSONResponse(status_code=400, content={"error": "Invalid input", "details": e.message})
    except Exception as e:
        logger.error(f"Detail restore failed: {e}")
        return JSONResponse(status_code=500, content={"error": "Detail restoration failed", "details": str(e)})

    stem = (original.filename or "image").rsplit(".", 1)[0]
    return Response(
        content=png,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{stem}_detail_restored.png"'},
    )
