"""FastAPI application — signal posting, thread tags and market-data proxies."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
import websockets
import websockets.exceptions
from fastapi import Depends, FastAPI, Header, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import Field

from signal_desk.charting import LiveChart, compute_chart
from signal_desk.config import AppConfig, config_path, load_config
from signal_desk.errors import (
    Forbidden,
    InvalidInput,
    MessagingPlatformError,
    NotFound,
    SignalDeskError,
    TooManyTags,
    Unauthorized,
    UpstreamUnavailable,
)
from signal_desk.exchange.market_data import normalize_interval, to_trading_pair, validate_symbol
from signal_desk.logging import bind_request_context, get_logger
from signal_desk.models import Candle, Identity, SignalDraft, SignalUpdate
from signal_desk.models.signal import CamelModel
from signal_desk.services import Services, build_services

logger = get_logger(__name__)

# Most specific first; the first isinstance match wins.
_STATUS_BY_ERROR: tuple[tuple[type[SignalDeskError], int], ...] = (
    (TooManyTags, 400),
    (InvalidInput, 400),
    (Unauthorized, 401),
    (Forbidden, 403),
    (NotFound, 404),
    (UpstreamUnavailable, 502),
    (MessagingPlatformError, 502),
)


def status_for(exc: SignalDeskError) -> int:
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


def _candle_payload(c: Candle) -> dict:
    return {
        "time": c.open_time,
        "open": c.open,
        "high": c.high,
        "low": c.low,
        "close": c.close,
        "volume": c.volume,
    }


def _dump(model) -> dict:
    return model.model_dump(by_alias=True, mode="json")


class TagsRequest(CamelModel):
    tag_ids: list[str] = Field(default_factory=list)


class ServerSettingsRequest(CamelModel):
    server_id: str
    default_channel_id: str


# ═══════════════════════════════════════════════════════════════
# Dependencies
# ═══════════════════════════════════════════════════════════════


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_identity(
    authorization: Optional[str] = Header(None),
    x_user_id: Optional[str] = Header(None),
    x_user_name: Optional[str] = Header(None),
    x_user_avatar: Optional[str] = Header(None),
) -> Identity:
    """Caller identity as forwarded by the auth layer in front of this API."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise Unauthorized("missing bearer credential")
    token = authorization[7:].strip()
    if not token or not x_user_id:
        raise Unauthorized("missing caller identity")
    structlog.contextvars.bind_contextvars(user_id=x_user_id)
    return Identity(
        user_id=x_user_id,
        display_name=x_user_name,
        avatar_url=x_user_avatar,
        access_token=token,
    )


def create_app(config: AppConfig | None = None, services: Services | None = None) -> FastAPI:
    """Build the API app.

    With *services* given (tests), the app uses them as-is and leaves their
    lifecycle to the caller; otherwise they are built from *config* at
    startup and closed at shutdown.
    """
    if config is None:
        config = services.config if services is not None else load_config(config_path())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = None
        if getattr(app.state, "services", None) is None:
            owned = build_services(config)
            app.state.services = owned
            logger.info("services_started", bot_api_url=config.messaging.bot_api_url)
        try:
            yield
        finally:
            if owned is not None:
                await owned.aclose()

    app = FastAPI(
        title="Signal Desk API",
        description="Trading signals posted to Discord forum threads, with market-data charting",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        rid = bind_request_context(
            request.headers.get("x-request-id"),
            method=request.method,
            path=request.url.path,
        )
        response = await call_next(request)
        response.headers["X-Request-Id"] = rid
        return response

    @app.exception_handler(SignalDeskError)
    async def signal_desk_error(request: Request, exc: SignalDeskError):
        status = status_for(exc)
        log = logger.warning if status < 500 else logger.error
        log("request_failed", error_type=type(exc).__name__, error=str(exc), status=status)
        return JSONResponse(status_code=status, content={"error": str(exc)})

    _register_routes(app, config)
    return app


def _register_routes(app: FastAPI, config: AppConfig) -> None:
    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    # ═══════════════════════════════════════════════════════════════
    # Signals
    # ═══════════════════════════════════════════════════════════════

    @app.post("/api/signals", status_code=201)
    async def post_signal(
        draft: SignalDraft,
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        """Open the forum thread and record the signal."""
        signal = await services.signals.post(draft, identity)
        return {"signal": _dump(signal)}

    @app.get("/api/signals")
    async def list_signals(
        server_id: Optional[str] = Query(None, alias="serverId"),
        limit: int = Query(50, ge=1, le=500),
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        signals = services.store.list_by_server(identity.user_id, server_id, limit)
        return {"signals": [_dump(s) for s in signals]}

    @app.get("/api/signals/{signal_id}")
    async def get_signal(
        signal_id: str,
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        """Signal plus its change log, newest entry first."""
        return _dump(services.store.get(signal_id, identity.user_id))

    @app.patch("/api/signals/{signal_id}")
    async def update_signal(
        signal_id: str,
        changes: SignalUpdate,
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        result = services.signals.update(signal_id, identity, changes)
        return _dump(result)

    @app.delete("/api/signals/{signal_id}")
    async def delete_signal(
        signal_id: str,
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        signal = services.signals.delete(signal_id, identity)
        return {"deleted": signal.id, "threadId": signal.thread_id}

    @app.get("/api/signals/{signal_id}/tags")
    async def get_signal_tags(
        signal_id: str,
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        return {"tags": await services.signals.thread_tags(signal_id, identity)}

    @app.put("/api/signals/{signal_id}/tags")
    async def set_signal_tags(
        signal_id: str,
        req: TagsRequest,
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        return {"tags": await services.signals.set_tags(signal_id, identity, req.tag_ids)}

    @app.get("/api/channels/{channel_id}/tags")
    async def get_channel_tags(
        channel_id: str,
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        """Tag definitions available on a forum channel."""
        return {"tags": await services.signals.channel_tags(channel_id, identity)}

    # ═══════════════════════════════════════════════════════════════
    # Servers
    # ═══════════════════════════════════════════════════════════════

    @app.get("/api/admin/server-stats")
    async def server_stats(
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        stats = services.store.aggregate_by_server()
        return {"servers": [_dump(s) for s in stats], "totalServers": len(stats)}

    @app.get("/api/server-settings/{server_id}")
    async def get_server_settings(
        server_id: str,
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        settings = services.settings.get(server_id)
        if settings is None:
            raise NotFound(f"no settings for server {server_id}")
        return _dump(settings)

    @app.post("/api/server-settings")
    async def save_server_settings(
        req: ServerSettingsRequest,
        identity: Identity = Depends(get_identity),
        services: Services = Depends(get_services),
    ):
        settings = services.settings.save(
            req.server_id,
            req.default_channel_id,
            updated_by=identity.display_name or identity.user_id,
        )
        return _dump(settings)

    # ═══════════════════════════════════════════════════════════════
    # Market data
    # ═══════════════════════════════════════════════════════════════

    @app.get("/api/binance/klines")
    async def get_klines(
        symbol: str,
        interval: str = "1h",
        limit: int = config.chart.default_limit,
        services: Services = Depends(get_services),
    ):
        candles = await services.market_data.fetch_candles(symbol, interval, limit)
        return {
            "symbol": symbol,
            "interval": normalize_interval(interval),
            "candles": [_candle_payload(c) for c in candles],
        }

    @app.get("/api/binance/price")
    async def get_price(symbol: str, services: Services = Depends(get_services)):
        pair = to_trading_pair(symbol)
        price = await services.market_data.fetch_latest_price(pair)
        return {"symbol": pair, "price": str(price)}

    @app.get("/api/binance/symbols")
    async def search_symbols(q: str = "", services: Services = Depends(get_services)):
        symbols = await services.symbols.search(q)
        return {"symbols": [_dump(s) for s in symbols]}

    @app.get("/api/chart/{symbol}")
    async def get_chart(
        symbol: str,
        interval: str = "1h",
        limit: int = config.chart.default_limit,
        ma_window: int = Query(config.chart.moving_average_window, alias="maWindow"),
        services: Services = Depends(get_services),
    ):
        """Candles with the moving average and oscillator, index-aligned."""
        candles = await services.market_data.fetch_candles(symbol, interval, limit)
        series = compute_chart(candles, ma_window)
        return {
            "symbol": symbol,
            "interval": normalize_interval(interval),
            "maWindow": ma_window,
            "points": [series.point_at(i).as_payload() for i in range(len(series))],
        }

    @app.websocket("/ws/chart/{symbol}/{interval}")
    async def live_chart(websocket: WebSocket, symbol: str, interval: str):
        """Snapshot of the chart, then one trailing point per live kline."""
        services: Services = websocket.app.state.services
        await websocket.accept()
        bind_request_context(symbol=symbol, interval=interval)
        interval = normalize_interval(interval)
        chart = LiveChart(
            symbol,
            interval,
            ma_window=config.chart.moving_average_window,
            max_bars=config.chart.max_live_bars,
        )
        try:
            validate_symbol(symbol)
            await chart.refresh(services.market_data, config.chart.default_limit)
            await websocket.send_json({
                "type": "snapshot",
                "symbol": symbol,
                "interval": interval,
                "points": [chart.series.point_at(i).as_payload() for i in range(len(chart.series))],
            })
            async for point in chart.follow(services.binance.stream_klines(symbol, interval)):
                await websocket.send_json({"type": "tick", "point": point.as_payload()})
        except WebSocketDisconnect:
            logger.info("chart_client_disconnected")
            return
        except SignalDeskError as exc:
            logger.warning("chart_stream_failed", error=str(exc))
            await websocket.send_json({"type": "error", "error": str(exc)})
        except (websockets.exceptions.WebSocketException, OSError) as exc:
            logger.warning("chart_stream_failed", error=str(exc), error_type=type(exc).__name__)
            await websocket.send_json({"type": "error", "error": "market stream unavailable"})
        await websocket.close()


app = create_app()
