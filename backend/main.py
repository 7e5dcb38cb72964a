import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from config import settings

logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Audio Studio backend starting up...")
    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set; transcription and TTS will return 503")
    yield
    logger.info("Backend shutting down.")


app = FastAPI(
    title="Audio Studio",
    version=VERSION,
    description="Speech-to-text and text-to-speech with Gemini, served as WAV",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Content-Disposition", "X-History-Id", "X-Audio-Digest"],
)


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "audio-studio", "version": VERSION}


from routers.audio_router import router as audio_router

app.include_router(audio_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
