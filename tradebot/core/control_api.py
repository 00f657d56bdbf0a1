import time
from typing import Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from tradebot.core.errors import EngineError
from tradebot.core.kill import activate_kill_switch, deactivate_kill_switch, is_kill_switch_active
from tradebot.core.logger import get_logger
from tradebot.core.config import settings
from tradebot.core.pricing import PriceValidator
from tradebot.core.state import LiquidityRatio, PriceQuote, TokenPair, VenueKind
from tradebot.strategies.arbitrage import DEFAULT_CYCLE, ArbitrageFinder, RouteKind, filter_profitable
from tradebot.strategies.rebalancer import LiquidityRebalancer

app = FastAPI(title="tradebot control")
log = get_logger(__name__)


class RouteScanRequest(BaseModel):
    pair: TokenPair
    quotes: List[PriceQuote]
    min_profit_bps: int = Field(ge=0, le=10_000)
    route_kinds: List[RouteKind] = Field(default_factory=lambda: list(DEFAULT_CYCLE))
    now: Optional[int] = None


class RebalanceRequest(BaseModel):
    current: Dict[VenueKind, int]
    targets: List[LiquidityRatio]


def verify(authorization: str | None = Header(None)):
    token = settings.CONTROL_API_TOKEN
    if not token:
        raise HTTPException(status_code=500, detail="Control token not configured")
    if authorization != f"Bearer {token}":
        raise HTTPException(status_code=401, detail="Unauthorized")


def _rejected(e: EngineError) -> HTTPException:
    log.warning("CONTROL_REQUEST_REJECTED", code=e.code, error=str(e))
    return HTTPException(status_code=422, detail=e.to_dict())


@app.get("/healthz")
async def healthz():
    return {"status": "ok", "kill_switch_active": is_kill_switch_active()}


@app.post("/kill/toggle")
async def toggle_kill(reason: str = "", auth: None = Depends(verify)):
    if is_kill_switch_active():
        deactivate_kill_switch()
    else:
        activate_kill_switch(reason or "manual override")
    return {"kill_switch_active": is_kill_switch_active()}


@app.post("/routes/scan")
async def scan_routes(request: RouteScanRequest = Body(...), auth: None = Depends(verify)):
    now = int(time.time()) if request.now is None else request.now
    try:
        quotes = PriceValidator().validate_all(request.quotes, now=now)
        finder = ArbitrageFinder(request.route_kinds)
        routes = finder.find_routes(quotes, request.min_profit_bps, request.pair, now)
    except EngineError as e:
        raise _rejected(e)
    routes = filter_profitable(routes, request.min_profit_bps)
    log.info("CONTROL_ROUTES_SCANNED", pair=request.pair.symbol, routes=len(routes))
    return {"routes": [route.model_dump(mode="json") for route in routes]}


@app.post("/rebalance/plan")
async def plan_rebalance(request: RebalanceRequest = Body(...), auth: None = Depends(verify)):
    try:
        moves = LiquidityRebalancer().compute_moves(request.current, request.targets)
    except EngineError as e:
        raise _rejected(e)
    return {"moves": [move.model_dump(mode="json") for move in moves]}
