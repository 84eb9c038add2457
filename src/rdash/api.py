"""
FastAPI backend for the retail dashboard.

This module exposes the order feed, the monthly sales records, the
forecasting engine and the AI commentary over HTTP. Orders are loaded once
at startup and kept in memory for the life of the process.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import uvicorn

from . import __version__
from .backtest import compare_models, best_model
from .commentary import CommentaryError, CommentaryService, extract_order_id
from .config import get_config
from .constants import ForecastModel, MIN_PRODUCT_HISTORY
from .data_loader import DataLoadError
from .models.forecast_api import (
    InsufficientHistoryError,
    NonFiniteForecastError,
    UnknownModelError,
    UnknownProductError,
    forecast,
)
from .schemas import ChatMessage, ForecastInsights, LoadReport, Order, ProductForecast, SalesRecord
from .session import DashboardState, DataNotLoadedError, RequestSequencer

logger = logging.getLogger(__name__)

# Process-wide session state
state = DashboardState()
sequencer = RequestSequencer()
commentary: Optional[CommentaryService] = None
started_at = time.monotonic()


def get_commentary() -> CommentaryService:
    """Get the AI commentary service, creating it from the configuration on first use."""
    global commentary
    if commentary is None:
        ai = get_config().ai
        commentary = CommentaryService(
            api_key=ai.api_key,
            model=ai.model,
            analysis_temperature=ai.analysis_temperature,
            chat_temperature=ai.chat_temperature,
            history_messages=ai.history_messages,
        )
    return commentary


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    cfg = get_config()
    if cfg.data.load_on_startup:
        try:
            await asyncio.to_thread(state.reload, cfg.data.data_url, cfg.data.request_timeout)
        except DataLoadError:
            logger.warning("Starting without order data; data endpoints will report the load error")
    yield
    logger.info("Application shutdown")


app = FastAPI(
    title="Retail Insights API",
    description="Order support chat and monthly demand forecasting for retail operators",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Pydantic models
class SeriesForecastRequest(BaseModel):
    series: List[float] = Field(..., description="Historical values, oldest first")
    model: str = Field(ForecastModel.HOLT_WINTERS.value, description="Model identifier or label")
    horizon: int = Field(1, ge=1, description="Forecast horizon in months")

    class Config:
        json_schema_extra = {
            "example": {
                "series": [10, 12, 11, 14],
                "model": "holt",
                "horizon": 1
            }
        }


class SeriesForecastResponse(BaseModel):
    forecast: List[float]
    horizon: int
    model_requested: ForecastModel
    model_used: ForecastModel
    fell_back: bool


class ProductForecastRequest(BaseModel):
    product: str = Field(..., description="Product name")
    model: str = Field(ForecastModel.HOLT_WINTERS.value, description="Model identifier or label")
    horizon: int = Field(1, ge=1, description="Forecast horizon in months")


class AnalysisRequest(BaseModel):
    product: str = Field(..., description="Product name")
    model: str = Field(ForecastModel.HOLT_WINTERS.value, description="Model identifier or label")
    client_id: str = Field("default", description="Caller identity used to detect superseded requests")


class AnalysisResponse(BaseModel):
    forecast: ProductForecast
    insights: ForecastInsights
    token: int
    stale: bool = Field(..., description="A newer analysis was requested by the same client")


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, description="User message")
    history: List[ChatMessage] = Field(default_factory=list, description="Transcript so far")


class ChatResponse(BaseModel):
    reply: ChatMessage
    order_id: Optional[str] = None
    order_found: bool = False


class DataStatusResponse(BaseModel):
    loaded: bool
    error: Optional[str] = None
    report: Optional[LoadReport] = None


def _require_data() -> None:
    try:
        state.require_loaded()
    except DataNotLoadedError as e:
        raise HTTPException(status_code=503, detail=str(e))


def _product_forecast(product: str, model: str, horizon: int) -> ProductForecast:
    _require_data()
    try:
        return state.forecaster().forecast_product(product, model=model, horizon=horizon)
    except UnknownProductError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (UnknownModelError, InsufficientHistoryError, NonFiniteForecastError) as e:
        raise HTTPException(status_code=422, detail=str(e))


# Health endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "version": __version__,
        "uptime": time.monotonic() - started_at,
        "data_loaded": state.is_loaded
    }


# Data endpoints
@app.get("/data/status", response_model=DataStatusResponse)
async def data_status():
    """Outcome of the last order feed load."""
    return DataStatusResponse(loaded=state.is_loaded, error=state.error, report=state.report)


@app.post("/data/reload", response_model=LoadReport)
async def reload_data():
    """Reload the configured order feed and rebuild the sales records."""
    cfg = get_config()

    try:
        return await asyncio.to_thread(state.reload, cfg.data.data_url, cfg.data.request_timeout)
    except DataLoadError as e:
        raise HTTPException(status_code=502, detail=str(e))


@app.get("/orders", response_model=List[Order])
async def list_orders(status: Optional[str] = Query(None, description="Filter by order status")):
    """List the loaded orders."""
    _require_data()
    if status:
        return [o for o in state.orders if o.status.value == status]
    return state.orders


@app.get("/orders/{order_id}", response_model=Order)
async def get_order(order_id: str):
    """Get one order by id."""
    _require_data()
    order = state.find_order(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return order


@app.get("/sales", response_model=List[SalesRecord])
async def list_sales(product: Optional[str] = Query(None, description="Filter by product name")):
    """Monthly sales records sorted by product and month."""
    _require_data()
    records = state.sales_records
    if product:
        records = [r for r in records if r.product_name == product]
    return sorted(records, key=lambda r: (r.product_name, r.month))


@app.get("/products")
async def list_products():
    """Products with at least one realized sale."""
    _require_data()
    products = state.forecaster().products()
    return {"products": products, "total": len(products)}


@app.get("/products/{product}/history", response_model=List[SalesRecord])
async def product_history(product: str):
    """Monthly sales of one product, oldest first."""
    _require_data()
    try:
        return state.forecaster().history(product)
    except UnknownProductError as e:
        raise HTTPException(status_code=404, detail=str(e))


# Forecast endpoints
@app.post("/forecast", response_model=SeriesForecastResponse)
async def forecast_series(request: SeriesForecastRequest):
    """Forecast an arbitrary series."""
    try:
        result = forecast(request.model, request.series, request.horizon)
    except UnknownModelError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return SeriesForecastResponse(
        forecast=result.values,
        horizon=request.horizon,
        model_requested=result.model_requested,
        model_used=result.model_used,
        fell_back=result.fell_back
    )


@app.post("/forecast/product", response_model=ProductForecast)
async def forecast_product(request: ProductForecastRequest):
    """Forecast the monthly demand of a product."""
    return _product_forecast(request.product, request.model, request.horizon)


@app.get("/backtest/{product}")
async def backtest_product(product: str):
    """Compare the models on a product's history with one-step-ahead backtests."""
    _require_data()
    try:
        series = state.forecaster().series(product)
    except UnknownProductError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if len(series) <= MIN_PRODUCT_HISTORY:
        raise HTTPException(
            status_code=422,
            detail=f"Backtesting needs at least {MIN_PRODUCT_HISTORY + 1} months of history"
        )

    results = compare_models(series)
    winner = best_model(results)

    return {
        "product": product,
        "months": len(series),
        "best_model": winner.value if winner else None,
        "results": {
            model.value: {
                "origins": result["origins"],
                "metrics": result["metrics"],
                "models_used": sorted({m.value for m in result["models_used"]}),
            }
            for model, result in results.items()
        }
    }


# AI endpoints
@app.post("/analysis", response_model=AnalysisResponse)
async def analyze_product(request: AnalysisRequest):
    """Forecast a product and ask the AI service for business commentary."""
    token = sequencer.issue(request.client_id)
    product_forecast = _product_forecast(request.product, request.model, horizon=1)

    try:
        insights = await get_commentary().analyze_forecast(
            product_forecast.product_name,
            product_forecast.history,
            product_forecast.demand_forecast,
            product_forecast.model_used
        )
    except CommentaryError as e:
        raise HTTPException(status_code=502, detail=str(e))

    stale = not sequencer.is_current(request.client_id, token)
    if stale:
        logger.info(f"Analysis {token} for {request.product} was superseded")

    return AnalysisResponse(
        forecast=product_forecast.model_copy(update={"insights": insights}),
        insights=insights,
        token=token,
        stale=stale
    )


@app.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest):
    """Answer a customer support message, using the order it mentions if found."""
    order_id = extract_order_id(request.message)
    order = state.find_order(order_id) if order_id else None

    try:
        text = await get_commentary().support_reply(request.message, order, request.history)
    except CommentaryError as e:
        raise HTTPException(status_code=502, detail=str(e))

    return ChatResponse(
        reply=ChatMessage(sender="bot", text=text),
        order_id=order_id,
        order_found=order is not None
    )


if __name__ == "__main__":
    uvicorn.run(app, host=get_config().api.host, port=get_config().api.port)
