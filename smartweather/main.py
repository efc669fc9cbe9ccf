# smartweather/main.py

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smartweather.api.weather import router as weather_router
from smartweather.core.config import settings

app = FastAPI(
    title="SmartWeather Backend",
    description="Gemini-grounded weather for the dashboard front-end",
    version="0.1.0",
)

# The dashboard is served from its own origin (Vite dev server, Vercel previews)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.get("/health")
def health_check():
    # Process liveness only; /api/diagnostics/oracle checks the Gemini key
    return {"status": "ok"}


app.include_router(weather_router, prefix="/api")


def run() -> None:
    """Entry point for the `smartweather` console script."""
    uvicorn.run(
        "smartweather.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )
