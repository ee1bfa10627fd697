from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
import logging

from app.config import settings
from app.database import db
from app.exceptions import ConflictError, InvalidTransition, NotAuthorizedApprover, NotFound, WorkflowError
from app.api import auth, requisitions, approvals, inventory, dashboard
from app.tools.notification_tool import notification_tool

# Setup Logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidTransition: 409,
    ConflictError: 409,
    NotFound: 404,
    NotAuthorizedApprover: 403,
}

@asynccontextmanager
async def lifespan(app: FastAPI):
    db.connect()
    yield
    await notification_tool.drain()
    db.close()

app = FastAPI(
    title="Stores Requisition API",
    description="Sequential multi-approver workflow for stores requisitions",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS Config
origins = [
    "http://localhost:3000",
    "http://localhost:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.info(f"{request.method} {request.url.path} -> {status_code} {type(exc).__name__}: {exc}")
    # The user-facing message, not the internal detail
    return JSONResponse(status_code=status_code,
                        content={"detail": exc.user_message, "error": type(exc).__name__})

@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})

# Router Registration
app.include_router(auth.router)
app.include_router(requisitions.router)
app.include_router(approvals.router)
app.include_router(inventory.router)
app.include_router(dashboard.router)

# Health Check
@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT}

if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
