import pydantic

class HealthResponse(pydantic.BaseModel):
    status: str
    pendant_running: bool = False
    controller_port: str | None = None
