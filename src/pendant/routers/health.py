import fastapi
from fastapi import APIRouter
from fastapi import Request

from pendant.schemas.health import HealthResponse

async def health_check(request: Request) -> HealthResponse:
    """
    Report liveness of the API and whether the pendant is reading input.
    """
    service = getattr(request.app.state, 'pendant_service', None)
    if service is None:
        return HealthResponse(status="ok")
    return HealthResponse(
        status="ok",
        pendant_running=bool(service.running),
        controller_port=service.grbl_connection.port
    )

def factory(app: fastapi.FastAPI) -> APIRouter:
    router = APIRouter(tags=["health"])

    router.add_api_route(
        "/health/",
        health_check,
        methods=["GET"],
        response_model=HealthResponse
    )
    return router
