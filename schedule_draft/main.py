from fastapi import FastAPI

from schedule_draft.api.v1.schedule import router as schedule_router
from schedule_draft.core.config import settings
from schedule_draft.core.log import configure_logging

configure_logging(settings.LOG_LEVEL)

app = FastAPI(title="Schedule Draft Console", version="1.0.0")
app.include_router(schedule_router, prefix="/api/v1/schedule", tags=["schedule"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "env": settings.ENV}
