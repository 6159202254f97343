import fastapi
from fastapi import APIRouter
from fastapi import Depends

from pendant.schemas.jog import JogStatusResponse
from pendant.schemas.jog import JogStopResponse
from pendant.services.pendant import PendantService
from pendant import utils

async def jog_status_endpoint(
    service: PendantService = Depends(utils.get_pendant_service)
) -> JogStatusResponse:
    """
    Report the current jog session.

    Args:
        service: Running pendant service

    Returns:
        JogStatusResponse with mode, active axis, step, speed and acknowledgment state
    """
    return JogStatusResponse.from_session(service.controller.session)

async def jog_stop_endpoint(
    service: PendantService = Depends(utils.get_pendant_service)
) -> JogStopResponse:
    """
    Stop a running smooth jog as if the key had been released.

    Args:
        service: Running pendant service

    Returns:
        JogStopResponse with the session after stopping
    """
    stopped = service.stop_jog()
    return JogStopResponse(
        status="success",
        message="Smooth jog stopped" if stopped else "No smooth jog running",
        session=JogStatusResponse.from_session(service.controller.session)
    )

def factory(app: fastapi.FastAPI) -> APIRouter:
    """
    Create and configure the jog API router.

    Args:
        app: FastAPI application instance

    Returns:
        Configured APIRouter with jog endpoints:
        - GET /jog - Current jog session
        - POST /jog/stop - Stop a running smooth jog
    """
    router = APIRouter(prefix="/jog", tags=["jog"])

    router.add_api_route(
        "/",
        jog_status_endpoint,
        methods=["GET"],
        response_model=JogStatusResponse
    )

    router.add_api_route(
        "/stop",
        jog_stop_endpoint,
        methods=["POST"],
        response_model=JogStopResponse
    )

    return router
