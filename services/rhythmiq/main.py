# File: services/rhythmiq/main.py

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
import uvicorn

from .core.ensemble_council import EnsembleCouncil
from .lib import config
from .lib.chat_relay import ChatRelay
from .lib.errors import RhythmIQError
from .lib.gateway import AIGatewayClient
from .models import AnalysisResult, AnalyzeRequest, ChatReply, ChatRequest, ErrorEnvelope

# --- INITIALIZATION ---
load_dotenv()
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

CORS_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ", ".join(CORS_ALLOWED_HEADERS),
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not config.is_gateway_configured():
        logger.warning("AI_GATEWAY_API_KEY is not set; analysis and chat requests will fail until it is.")
    logger.info("RhythmIQ backend started")
    yield
    logger.info("RhythmIQ backend shutting down")


# --- APP CONFIGURATION ---
app = FastAPI(
    title="RhythmIQ ECG Ensemble Backend",
    description="Ensemble ECG image analysis and results chat relay",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=CORS_ALLOWED_HEADERS,
)


# Registered after CORSMiddleware so it sits outside it and sees OPTIONS first.
@app.middleware("http")
async def answer_preflight(request: Request, call_next):
    if request.method == "OPTIONS":
        return Response(status_code=200, headers=CORS_HEADERS)
    return await call_next(request)


# --- DEPENDENCIES ---
def get_gateway() -> AIGatewayClient:
    """Fresh gateway per request; the credential is read now, not at import."""
    return AIGatewayClient.from_env()


# --- ERROR ENVELOPES ---
@app.exception_handler(RhythmIQError)
async def rhythmiq_error_handler(request: Request, exc: RhythmIQError):
    logger.error(f"Error in {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected malformed body on {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unexpected error in {request.url.path}")
    # served by ServerErrorMiddleware, outside CORSMiddleware
    return JSONResponse(
        status_code=500,
        content={"error": str(exc) or "Request failed"},
        headers=CORS_HEADERS,
    )


# --- MAIN ENDPOINTS ---
@app.post(
    "/analyze-ecg",
    response_model=AnalysisResult,
    response_model_exclude_none=True,
    responses={500: {"model": ErrorEnvelope}},
)
async def analyze_ecg_endpoint(body: AnalyzeRequest, gateway: AIGatewayClient = Depends(get_gateway)):
    """Run the three-persona ensemble on an encoded ECG image."""
    council = EnsembleCouncil(gateway)
    return await council.run_ensemble_analysis(body.image)


@app.post(
    "/ecg-chat",
    response_model=ChatReply,
    responses={402: {"model": ErrorEnvelope}, 429: {"model": ErrorEnvelope}, 500: {"model": ErrorEnvelope}},
)
async def ecg_chat_endpoint(body: ChatRequest, gateway: AIGatewayClient = Depends(get_gateway)):
    """Answer the latest question about an analysis result."""
    relay = ChatRelay(gateway)
    message = await relay.reply(body.messages, body.analysis)
    return ChatReply(message=message)


# --- UTILITY ENDPOINTS ---
@app.get("/")
async def root():
    return {
        "service": "RhythmIQ ECG Ensemble Backend",
        "status": "operational",
        "endpoints": ["/analyze-ecg", "/ecg-chat"],
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "gateway_configured": config.is_gateway_configured(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def run():
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))


# --- DEV SERVER ---
if __name__ == "__main__":
    run()
