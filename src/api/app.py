import os
import time
import json
import logging
from concurrent.futures import Future
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import Response, JSONResponse
from pydantic import ValidationError
from prometheus_client import Counter, Gauge, Histogram, generate_latest
from starlette.concurrency import run_in_threadpool

from src.api.schemas import (
    ChestPainTypesResponse,
    HeartRiskRequest,
    PredictionResponse,
)
from src.models.errors import (
    FormatError,
    HeartRiskError,
    PredictionError,
    SessionStateError,
)
from src.models.predictor import HeartRiskPredictor


# =================================================
# Environment
# =================================================
BASE_DIR = os.path.dirname(
    os.path.dirname(
        os.path.dirname(__file__)
    )
)
ENV_PATH = os.path.join(BASE_DIR, ".env")
load_dotenv(dotenv_path=ENV_PATH)

APP_NAME = os.getenv("APP_NAME", "Heart Risk Predictor")
MODEL_PATH = os.getenv("MODEL_PATH")
MODEL_CONFIG_PATH = os.getenv("MODEL_CONFIG_PATH", "models/heart_model.json")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


# =================================================
# Structured JSON logging
# =================================================
class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "service": APP_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


handler = logging.StreamHandler()
handler.setFormatter(JsonFormatter())

logger = logging.getLogger(APP_NAME)

# The pipeline modules log under the "src" package.
for _logger in (logger, logging.getLogger("src")):
    _logger.setLevel(LOG_LEVEL)
    _logger.handlers = [handler]
    _logger.propagate = False


# =================================================
# Prometheus metrics
# =================================================
REQUEST_COUNT = Counter(
    "api_requests_total",
    "Total API requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "api_request_latency_seconds",
    "API request latency",
    ["endpoint"],
)

PREDICTIONS_TOTAL = Counter(
    "model_predictions_total",
    "Total number of predictions",
    ["label"],
)

PREDICTION_ERRORS_TOTAL = Counter(
    "model_prediction_errors_total",
    "Total prediction errors",
    ["kind"],
)

PREDICTION_LATENCY = Histogram(
    "model_prediction_latency_seconds",
    "Prediction latency",
)

MODEL_READY = Gauge(
    "model_ready",
    "1 when the inference session is loaded",
)


# =================================================
# FastAPI app
# =================================================
app = FastAPI(title=APP_NAME)


# =================================================
# Global predictor
# =================================================
predictor: Optional[HeartRiskPredictor] = None


def resolve_path(path: str) -> str:
    return path if os.path.isabs(path) else os.path.join(BASE_DIR, path)


def _on_model_loaded(future: Future) -> None:
    if future.exception() is None and predictor is not None and predictor.is_ready:
        MODEL_READY.set(1)
    else:
        MODEL_READY.set(0)


# =================================================
# Startup: load model in the background
# =================================================
@app.on_event("startup")
def load_model():
    global predictor

    if not MODEL_PATH:
        logger.warning("MODEL_PATH not set – API running without model")
        return

    model_path = resolve_path(MODEL_PATH)

    if not os.path.exists(model_path):
        logger.warning("Model file not found at %s", model_path)
        return

    try:
        predictor = HeartRiskPredictor.from_paths(
            model_path, resolve_path(MODEL_CONFIG_PATH)
        )
    except HeartRiskError:
        logger.exception("Model config could not be loaded")
        return

    predictor.start().add_done_callback(_on_model_loaded)
    logger.info("Model loading started (version=%s)", predictor.config.version)


@app.on_event("shutdown")
def release_model():
    if predictor is not None:
        predictor.close()
        MODEL_READY.set(0)


# =================================================
# Middleware: logging + metrics
# =================================================
@app.middleware("http")
async def log_and_metrics(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    REQUEST_COUNT.labels(
        method=request.method,
        endpoint=request.url.path,
        status=str(response.status_code),
    ).inc()

    REQUEST_LATENCY.labels(
        endpoint=request.url.path
    ).observe(duration)

    logger.info(
        "%s %s status=%s latency=%.4fs",
        request.method,
        request.url.path,
        response.status_code,
        duration,
    )

    return response


# =================================================
# Health check
# =================================================
@app.get("/")
def health():
    if predictor is None:
        return {"status": "ok", "model_state": "unavailable", "model_version": None}
    return {
        "status": "ok",
        "model_state": predictor.state.value,
        "model_version": predictor.config.version,
    }


# =================================================
# Chest pain options
# =================================================
@app.get("/chest-pain-types", response_model=ChestPainTypesResponse)
def chest_pain_types():
    if predictor is None:
        raise HTTPException(
            status_code=503,
            detail="model_not_loaded",
        )
    return {"chest_pain_types": predictor.config.chest_pain_types}


# =================================================
# Prediction endpoint
# =================================================
@app.post("/predict", response_model=PredictionResponse)
async def predict(request: Request):
    start_time = time.time()

    try:
        body = await request.json()
        data = HeartRiskRequest(**body)
    except ValidationError as exc:
        PREDICTION_ERRORS_TOTAL.labels(kind="validation").inc()
        return JSONResponse(
            status_code=422,
            content={"details": exc.errors(include_url=False)},
        )
    except Exception:
        PREDICTION_ERRORS_TOTAL.labels(kind="invalid_json").inc()
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_json"},
        )

    current = predictor
    if current is None:
        PREDICTION_ERRORS_TOTAL.labels(kind="not_loaded").inc()
        raise HTTPException(
            status_code=503,
            detail="model_not_loaded",
        )

    allowed = current.config.chest_pain_types
    if allowed and data.chest_pain not in allowed:
        PREDICTION_ERRORS_TOTAL.labels(kind="validation").inc()
        return JSONResponse(
            status_code=422,
            content={
                "details": [
                    {
                        "loc": ["chest_pain"],
                        "msg": f"chest_pain must be one of {allowed}",
                    }
                ]
            },
        )

    try:
        assessment = await run_in_threadpool(current.assess, data.to_raw_input())
    except FormatError as exc:
        PREDICTION_ERRORS_TOTAL.labels(kind="format").inc()
        return JSONResponse(
            status_code=422,
            content={"details": [{"loc": [exc.field], "msg": str(exc)}]},
        )
    except SessionStateError:
        PREDICTION_ERRORS_TOTAL.labels(kind="not_loaded").inc()
        raise HTTPException(
            status_code=503,
            detail="model_not_loaded",
        )
    except PredictionError:
        PREDICTION_ERRORS_TOTAL.labels(kind="prediction").inc()
        logger.exception("Prediction failed")
        raise HTTPException(
            status_code=500,
            detail="prediction_failed",
        )

    PREDICTIONS_TOTAL.labels(label=assessment.color_category).inc()
    PREDICTION_LATENCY.observe(time.time() - start_time)

    logger.info(
        json.dumps(
            {
                "event": "prediction",
                "label": assessment.label,
                "score": round(assessment.score, 4),
            }
        )
    )

    return {
        "label": assessment.label,
        "percentage": assessment.percentage_text,
        "message": assessment.message,
        "recommendation": assessment.recommendation,
        "color_category": assessment.color_category,
        "text_color": assessment.text_color,
        "background_color": assessment.background_color,
        "score": round(assessment.score, 4),
        "model_version": current.config.version,
    }


# =================================================
# Metrics endpoint
# =================================================
@app.get("/metrics")
def metrics():
    return Response(
        generate_latest(),
        media_type="text/plain",
    )
