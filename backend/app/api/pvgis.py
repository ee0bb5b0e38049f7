"""
API routes for PVGIS yield estimates.
"""

import asyncio
import threading
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request

from app.config import FIELD_INFO, INPUT_LABELS
from app.engine.errors import (
    AllCandidatesExhausted,
    CoverageLookupFailed,
    NoCoverageForLocation,
    ResolveCancelled,
    ResolveDeadlineExceeded,
)
from app.engine.resolver import resolve
from app.models.pvgis import (
    InputEcho,
    PvgisQueryInput,
    PvgisQueryOutput,
    Resolution,
)

router = APIRouter(prefix="/api/v1", tags=["pvgis"])

DISCONNECT_POLL_INTERVAL = 0.5  # seconds

# nginx's "client closed request"
CLIENT_CLOSED_REQUEST = 499


@router.post("/pvgis", response_model=PvgisQueryOutput)
async def query_pvgis(data: PvgisQueryInput, request: Request) -> PvgisQueryOutput:
    """
    Estimate monthly and yearly PV yield for a site.

    Tries the PVGIS databases covering the coordinate in priority order and
    returns the first complete result.
    """
    return await _run(data, request)


@router.get("/pvgis", response_model=PvgisQueryOutput)
async def query_pvgis_get(
    data: Annotated[PvgisQueryInput, Query()], request: Request
) -> PvgisQueryOutput:
    """Same as POST /pvgis, with parameters in the query string."""
    return await _run(data, request)


async def _run(data: PvgisQueryInput, request: Request) -> PvgisQueryOutput:
    # resolve() blocks in a worker thread while the loop watches the client
    cancel_event = threading.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel_event))
    try:
        resolution = await asyncio.to_thread(
            resolve, data.coordinate(), data.system_config(), cancel_event=cancel_event
        )
    except NoCoverageForLocation as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ResolveDeadlineExceeded as e:
        raise HTTPException(status_code=504, detail=str(e))
    except (CoverageLookupFailed, AllCandidatesExhausted) as e:
        raise HTTPException(status_code=502, detail=str(e))
    except ResolveCancelled as e:
        raise HTTPException(status_code=CLIENT_CLOSED_REQUEST, detail=str(e))
    finally:
        watcher.cancel()

    return PvgisQueryOutput(
        database=resolution.database,
        input=_echo_input(data, resolution),
        data=resolution.result,
        info=FIELD_INFO,
    )


async def watch_disconnect(
    request: Request,
    cancel_event: threading.Event,
    interval: float = DISCONNECT_POLL_INTERVAL,
) -> None:
    """Set cancel_event once the client disconnects."""
    while not cancel_event.is_set():
        if await request.is_disconnected():
            cancel_event.set()
            return
        await asyncio.sleep(interval)




def _echo_input(data: PvgisQueryInput, resolution: Resolution) -> dict[str, InputEcho]:
    values = {
        "database": resolution.database,
        "lat": data.lat,
        "lng": data.lng,
        "peakpower": data.peakpower,
        "loss": data.loss,
        "angle": data.angle,
        "aspect": data.aspect,
        "mounting": data.mounting.value,
        "pvtech": data.pvtech.value,
    }
    return {
        key: InputEcho(info=INPUT_LABELS[key], value=value)
        for key, value in values.items()
    }
