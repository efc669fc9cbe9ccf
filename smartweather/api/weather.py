# smartweather/api/weather.py

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from smartweather.agents.weather_agent import WeatherAgent
from smartweather.core.config import settings
from smartweather.core.exceptions import CredentialMissingError, OracleResponseInvalidError
from smartweather.core.logging_config import logger
from smartweather.models.schemas import (
    ErrorDetail,
    LocationDescriptor,
    OracleStatus,
    WeatherSnapshot,
)

router = APIRouter()

weather_agent = WeatherAgent(settings)


def get_weather_agent() -> WeatherAgent:
    return weather_agent


def classify_error(exc: Exception) -> ErrorDetail:
    """
    Map a failed fetch to something the dashboard can show.

    Matches on the status code text inside the message ("429", "403",
    "404"), the same way the browser dashboard always has.
    """
    if isinstance(exc, CredentialMissingError):
        return ErrorDetail(
            type="credential_missing",
            message="尚未設定 API 金鑰",
            detail="請在環境變數或 .env 中設定 GEMINI_API_KEY 後重新啟動服務。",
        )

    error_msg = str(exc) or exc.__class__.__name__

    # Parse errors quote offsets and reply text, so never match codes in them
    if isinstance(exc, OracleResponseInvalidError):
        return ErrorDetail(type="invalid_response", message="AI 回應格式錯誤", detail=error_msg)

    if "429" in error_msg:
        return ErrorDetail(
            type="quota",
            message="搜尋配額耗盡 (429)",
            detail="API 金鑰正確，但 Google 的免費搜尋次數已達上限。請稍後再試或檢查帳單設定。",
            code=429,
            cooldownSeconds=settings.QUOTA_COOLDOWN_SECONDS,
        )
    if "403" in error_msg:
        return ErrorDetail(
            type="auth",
            message="金鑰權限錯誤 (403)",
            detail="您的 API 金鑰拒絕了來自此網址的請求。請檢查 Google Cloud 的「網站限制」設定是否包含此網域。",
            code=403,
        )
    if "404" in error_msg:
        return ErrorDetail(
            type="not_found",
            message="找不到資源 (404)",
            detail=f"找不到指定的模型或 API 路徑。請確認模型名稱設定為 '{settings.GEMINI_MODEL}'。",
            code=404,
        )

    return ErrorDetail(type="general", message="連線異常", detail=error_msg)


def _http_status_for(error: ErrorDetail) -> int:
    if error.code is not None:
        return error.code
    if error.type == "credential_missing":
        return 503
    return 502


def _build_location(
    q: Optional[str], lat: Optional[float], lng: Optional[float]
) -> LocationDescriptor:
    has_coords = lat is not None or lng is not None
    if q is not None and has_coords:
        raise HTTPException(status_code=422, detail="Use either q or lat/lng, not both")

    try:
        if has_coords:
            if lat is None or lng is None:
                raise HTTPException(status_code=422, detail="Both lat and lng are required")
            return LocationDescriptor.from_coordinates(lat, lng)
        # No geolocation and no search text: fall back to the default city
        return LocationDescriptor.from_place(q if q is not None else settings.DEFAULT_LOCATION)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


@router.get(
    "/weather",
    response_model=WeatherSnapshot,
    responses={
        403: {"model": ErrorDetail},
        404: {"model": ErrorDetail},
        429: {"model": ErrorDetail},
        502: {"model": ErrorDetail},
        503: {"model": ErrorDetail},
    },
)
async def get_weather(
    q: Optional[str] = Query(None, description="Place name, e.g. 台南"),
    lat: Optional[float] = Query(None, description="Latitude from device geolocation"),
    lng: Optional[float] = Query(None, description="Longitude from device geolocation"),
    search: bool = Query(True, description="Ask Gemini to ground the answer with Google Search"),
    agent: WeatherAgent = Depends(get_weather_agent),
):
    """
    Weather for a place name or coordinates.
    Example: /api/weather?lat=25.03&lng=121.56
    """
    location = _build_location(q, lat, lng)

    try:
        return await agent.fetch_weather(location, search_enabled=search)
    except Exception as exc:
        error = classify_error(exc)
        logger.error(f"Weather request for {location.describe()!r} failed: [{error.type}] {exc}")
        return JSONResponse(
            status_code=_http_status_for(error),
            content=error.model_dump(),
        )


@router.get("/diagnostics/oracle", response_model=OracleStatus)
async def oracle_diagnostics(agent: WeatherAgent = Depends(get_weather_agent)):
    """
    API health check for the Gemini key itself, independent of search quota.
    """
    return OracleStatus(ok=await agent.test_connection())
